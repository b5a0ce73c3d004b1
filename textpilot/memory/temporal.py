"""Chronological-cue detection for conversation memory retrieval.

Requests such as "what did we discuss earlier?" share no vocabulary with the
entry they refer to, so lexical ranking cannot find it. When one of these cues is
present, `ConversationMemory.retrieve_relevant` returns the newest entries
instead of BM25 hits.

Determinism:
    Pure pattern test over the lowercased query.
"""

import re


# =========================================================
# TEMPORAL REFERENCE MARKERS
# =========================================================

CHRONOLOGICAL_PATTERNS = [
    re.compile(pattern, flags=re.IGNORECASE)
    for pattern in (
        r"\bprevious(ly)?\b",
        r"\blast\b",
        r"\blatest\b",
        r"\brecent(ly)?\b",
        r"\bearlier\b",
        r"\bremind\s+me\b",
        r"\bwhat\s+did\s+(we|i|you)\b",
        r"\b(you|i|we)\s+just\s+(said|wrote|asked|discussed|did)\b",
        r"\bbefore\s+that\b",
        r"\ba\s+(moment|minute|while)\s+ago\b",
        r"\bgo\s+back\s+to\b",
    )
]


def detect_chronological_query(query: str) -> bool:
    """Return True when `query` refers to earlier turns by time, not by topic."""
    if not query or not isinstance(query, str):
        return False

    text = query.strip().lower()
    return any(pattern.search(text) for pattern in CHRONOLOGICAL_PATTERNS)
