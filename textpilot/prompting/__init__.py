"""Prompt construction package.

Builds deterministic per-intent prompt strings from normalized requests.
"""
