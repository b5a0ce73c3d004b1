"""Language-name table for translate requests.

Maps English language names (and a few common aliases) to BCP-47 codes.
Table order matters: multi-word names that contain a shorter name
("traditional chinese" vs "chinese") are listed first so the more specific
entry wins.
"""

import re


# =========================================================
# LANGUAGE TABLE
# =========================================================
# (code, display name, alternation of accepted spellings)

LANGUAGES = [
    ("zh-TW", "Traditional Chinese", r"traditional\s+chinese|taiwanese"),
    ("zh", "Chinese", r"simplified\s+chinese|chinese|mandarin"),
    ("en", "English", r"english"),
    ("es", "Spanish", r"spanish|espa[ñn]ol|castilian"),
    ("fr", "French", r"french|fran[çc]ais"),
    ("de", "German", r"german|deutsch"),
    ("it", "Italian", r"italian"),
    ("pt", "Portuguese", r"portuguese|brazilian"),
    ("ru", "Russian", r"russian"),
    ("ja", "Japanese", r"japanese"),
    ("ko", "Korean", r"korean"),
    ("ar", "Arabic", r"arabic"),
    ("hi", "Hindi", r"hindi"),
    ("nl", "Dutch", r"dutch|flemish"),
    ("pl", "Polish", r"polish"),
    ("tr", "Turkish", r"turkish"),
    ("vi", "Vietnamese", r"vietnamese"),
    ("th", "Thai", r"thai"),
    ("id", "Indonesian", r"indonesian|bahasa"),
    ("sv", "Swedish", r"swedish"),
    ("da", "Danish", r"danish"),
    ("fi", "Finnish", r"finnish"),
    ("no", "Norwegian", r"norwegian"),
    ("cs", "Czech", r"czech"),
    ("hu", "Hungarian", r"hungarian"),
    ("ro", "Romanian", r"romanian"),
    ("uk", "Ukrainian", r"ukrainian"),
    ("el", "Greek", r"greek"),
    ("he", "Hebrew", r"hebrew"),
]

# Alternation of every language spelling, reused by the translate intent pattern.
LANGUAGE_NAME_PATTERN = "|".join(spellings for _, _, spellings in LANGUAGES)


def _compile_tier(prefix: str) -> list[tuple[str, re.Pattern]]:
    return [
        (code, re.compile(rf"\b{prefix}(?:{spellings})\b", flags=re.IGNORECASE))
        for code, _, spellings in LANGUAGES
    ]


# Checked in order; the first tier with any match decides.
_TARGET_TIERS = [
    _compile_tier(r"(?:to|into)\s+"),
    _compile_tier(r"in\s+"),
    _compile_tier(""),
]

_DISPLAY_NAMES = {code: name for code, name, _ in LANGUAGES}


def _earliest_match(text: str, tier: list[tuple[str, re.Pattern]]) -> str | None:
    found = []
    for rank, (code, pattern) in enumerate(tier):
        match = pattern.search(text)
        if match:
            found.append((match.start(), rank, code))
    return min(found)[2] if found else None


def extract_target_language(text: str) -> str | None:
    """Return the BCP-47 code of the requested target language.

    Resolution order:
        1. Directional phrase: "to Spanish", "into French".
        2. "in" phrase: "in German".
        3. Any bare language mention ("Spanish translation please").

    Within a tier the match that starts earliest in the text wins; a tie at
    the same position goes to the table entry listed first.

    Edge cases:
        - Empty input or no known language returns `None`.
        - "translate this to German, keeping the names in English" resolves to
          `de`; a directional phrase outranks an "in" phrase anywhere.
        - "translate this Spanish text to English" resolves to `en`.
    """
    if not text:
        return None

    for tier in _TARGET_TIERS:
        code = _earliest_match(text, tier)
        if code:
            return code

    return None


def language_name(code: str | None) -> str:
    """Display name for a BCP-47 code; unknown codes are returned unchanged."""
    if not code:
        return "English"
    return _DISPLAY_NAMES.get(code, code)
