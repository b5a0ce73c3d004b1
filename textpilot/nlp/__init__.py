"""Natural-language routing package.

Contains the pattern-table intent router and the target-language table used to
turn a free-text request into a typed `RoutingResult`.
"""
