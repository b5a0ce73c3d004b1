"""Index-term extraction for lexical memory ranking.

Pipeline:
    lowercase -> punctuation to spaces -> whitespace split -> drop short terms.

Short terms (under `MIN_TOKEN_LENGTH` characters) are dropped instead of using a
stop-word list; this removes "a", "an", "to", "is", "of" and similar.

Determinism:
    Pure functions; identical input always yields the identical token sequence.
"""

import re


MIN_TOKEN_LENGTH = 3

_PUNCTUATION = re.compile(r"[^\w\s]")
_UNDERSCORES = re.compile(r"_+")


def normalize_text(text: str) -> str:
    """Lowercase text and replace punctuation with spaces."""
    if not text:
        return ""

    text = str(text).lower()
    text = _PUNCTUATION.sub(" ", text)
    text = _UNDERSCORES.sub(" ", text)
    return text


def tokenize(text: str) -> list[str]:
    """Return ordered index terms for `text`.

    Edge cases:
        - Empty or `None` input returns `[]`.
        - Duplicates are kept; term frequency matters to BM25.
    """
    return [
        token
        for token in normalize_text(text).split()
        if len(token) >= MIN_TOKEN_LENGTH
    ]
