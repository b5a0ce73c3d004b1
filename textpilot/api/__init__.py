"""Interface adapters package.

Provides the interactive CLI and the FastAPI HTTP adapter. Both delegate all
routing, memory and generation work to `textpilot.core.engine`.
"""
