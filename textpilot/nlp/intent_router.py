"""Intent router producing `RoutingResult` and `NormalizedRequest` for core orchestration.

Intent classification logic:
- Intent patterns are evaluated in a fixed order, most specific first:
  translate -> summarize -> write -> proofread -> rewrite. The first match wins.
  Token sets overlap ("revise the email" holds both a rewrite verb and an output
  noun), so this order is the only tie-break.
- No match falls back to `rewrite` with score 0.7 and `via="fallback"`.
- Output type is the first match of a second ordered table; tones are every match
  of a third table.
- Translate requests additionally resolve a target language code.

Interaction with core:
- `SemanticRouter.route` returns the first-stage `RoutingResult`.
- `SemanticRouter.normalize` turns it into exactly one `NormalizedRequest` variant
  consumed by `textpilot.core.engine`.
- `SemanticRouter.route_with_model` optionally asks an injected classifier first
  and falls back to patterns on any failure.

Determinism:
- `route` and `normalize` are pure: same input, same output.

Failure handling:
- `route` never raises. Empty or non-string input yields the fallback result.
"""

import json
import logging
import re
from typing import Awaitable, Callable

from textpilot.core.routing_types import (
    Intent,
    NormalizedRequest,
    PromptRequest,
    ProofreadRequest,
    RewriteRequest,
    ROUTABLE_INTENTS,
    RoutingResult,
    SummarizeRequest,
    TONES,
    OUTPUT_TYPES,
    TranslateRequest,
    VIA_FALLBACK,
    VIA_MODEL,
    VIA_PATTERNS,
    WriteRequest,
)
from textpilot.nlp.languages import LANGUAGE_NAME_PATTERN, extract_target_language


logger = logging.getLogger(__name__)

PATTERN_SCORE = 0.9
FALLBACK_SCORE = 0.7
MODEL_SCORE = 0.95


def _compile(pattern: str) -> re.Pattern:
    return re.compile(pattern, flags=re.IGNORECASE)


# =========================================================
# INTENT PATTERNS (ORDER IS SIGNIFICANT)
# =========================================================

# Nouns that mark "produce a new piece of text" after a creation verb.
_WRITE_OBJECTS = (
    r"e-?mails?|letters?|posts?|blogs?|messages?|notes?|content|responses?|replies|reply"
    r"|announcements?|articles?|lists?|documents?|reports?|proposals?|memos?|essays?"
    r"|stor(?:y|ies)|bios?|tweets?|outlines?|invitations?|requests?|updates?|speech"
    r"|scripts?|paragraphs?|captions?|descriptions?|agendas?"
)

INTENT_PATTERNS = [
    (
        Intent.TRANSLATE,
        _compile(
            r"\b(translat(e|es|ed|ing|ion)"
            rf"|(convert|render|put)\b.*\b(in)?to\s+({LANGUAGE_NAME_PATTERN})"
            rf"|to\s+({LANGUAGE_NAME_PATTERN})(?!\s+(this|it|that|the|my|your|our)\b))\b"
        ),
    ),
    (
        Intent.SUMMARIZE,
        _compile(
            r"\b(summari[sz](e|es|ed|ing)|summary|tl;?dr|key\s*points|condensed?|condensing"
            r"|digest|sum\s*up|recap|overview|gist)\b"
        ),
    ),
    (
        Intent.WRITE,
        _compile(
            r"\b((write|draft|compose|create|prepare)\s+(me\s+)?(a\s+|an\s+|the\s+|some\s+)?"
            rf"([\w-]+\s+){{0,3}}?({_WRITE_OBJECTS})"
            r"|cover\s*letter|outreach\s*(email|message)|(respond|reply)\s+to"
            r"|based\s+on|with\s+reference\s+to)\b"
        ),
    ),
    (
        Intent.PROOFREAD,
        _compile(
            r"\b(proof-?read(ing)?|check\s+(for\s+|the\s+|my\s+)?(errors?|mistakes?|grammar|spelling|typos?)"
            r"|(fix|correct)\s+(the\s+|my\s+|any\s+|all\s+)?(grammar|grammatical|spelling|typos?|punctuation|mistakes?|errors?)"
            r"|grammar\s+check|spell\s*check|typos?|punctuation\s+(errors?|check))\b"
        ),
    ),
    (
        Intent.REWRITE,
        _compile(
            r"\b(make\s+(this|it|the\s+(text|content|message|email|paragraph))\s+"
            r"|change\s+(this|it)\s+|improve\s+(this|it|the)|revise|rewrite|rephrase|paraphrase"
            r"|re-write|re-phrase|polish|refine|adjust|modify|simplify|shorten|lengthen"
            r"|more\s+(formal|casual|professional|friendly|diplomatic|concise))\b"
        ),
    ),
]


# =========================================================
# OUTPUT TYPE PATTERNS (FIRST MATCH WINS)
# =========================================================

OUTPUT_TYPE_PATTERNS = [
    ("email", _compile(r"\b(e-?mails?|message|send|reach\s+out|contact|outreach|cold\s*email|follow.up|inquiry)\b")),
    ("letter", _compile(r"\b(cover\s*letter|letters?)\b")),
    ("post", _compile(r"\b(blog\s*post|social\s*media|posts?|article|content|linkedin|twitter|facebook|tweet)\b")),
    ("document", _compile(r"\b(document|report|proposal|memo|whitepaper|analysis|study|paper)\b")),
    ("list", _compile(r"\b(lists?|bullet\s*points?|checklist|steps|items|enumerat\w*|numbered|points)\b")),
    ("script", _compile(r"\b(script|dialogue|conversation|interview|presentation|speech|talk|pitch)\b")),
    ("summary", _compile(r"\b(summary|overview|brief|abstract|condensed|digest|tl;?dr|key\s*points)\b")),
    ("response", _compile(r"\b(response|reply|answer|feedback|comment|review|critique)\b")),
    ("announcement", _compile(r"\b(announcement|press\s*release|notice|alert|update|news|launch)\b")),
    ("tutorial", _compile(r"\b(tutorial|guide|how.to|instructions|walkthrough|step.by.step|explanation)\b")),
]


# =========================================================
# TONE PATTERNS (ALL MATCHES COLLECTED)
# =========================================================

TONE_PATTERNS = [
    ("formal", _compile(r"\b(formal|professional|business\s+(tone|style)|corporate|official)\b")),
    ("casual", _compile(r"\b(casual|informal|friendly|conversational|laid.back|relaxed)\b")),
    ("persuasive", _compile(r"\b(persuasive|convincing|compelling|sales\s+(tone|pitch)|marketing|pitch)\b")),
    ("urgent", _compile(r"\b(urgent|immediate|asap|as\s+soon\s+as\s+possible|quickly|rush|time.sensitive|high\s+priority|critical)\b")),
    ("diplomatic", _compile(r"\b(diplomatic|tactful|polite|carefully|sensitive|considerate)\b")),
    ("confident", _compile(r"\b(confident|assertive|strong\s+(tone|voice)|direct|bold|decisive)\b")),
    ("empathetic", _compile(r"\b(empathetic|understanding|compassionate|supportive|warm|caring)\b")),
]


CLASSIFIER_PROMPT_TEMPLATE = (
    "Classify the following user request into exactly one intent.\n"
    "Intents: proofread, rewrite, write, summarize, translate.\n"
    f"Optional outputType: one of {', '.join(OUTPUT_TYPES)}.\n"
    f"Optional tones: any of {', '.join(TONES)}.\n"
    "Respond with JSON only, for example:\n"
    '{{"intent": "write", "outputType": "email", "tones": ["formal"]}}\n\n'
    "Request: {request}"
)


# =========================================================
# DERIVED PARAMETERS
# =========================================================

def derive_goal(output_type: str | None, tones=()) -> str | None:
    """Build the human-readable rewrite goal from output type and tones.

    Returns `None` when neither an output type nor a tone is known.
    """
    tone_modifier = f" in a {', '.join(tones)} tone" if tones else ""

    goals = {
        "email": "Rewrite as a professional email",
        "letter": "Rewrite as a formal letter",
        "post": "Rewrite as engaging social media content",
        "document": "Rewrite as a structured document",
        "list": "Rewrite as a clear, organized list",
        "summary": "Rewrite as a concise summary",
    }

    if output_type in goals:
        return goals[output_type] + tone_modifier

    return f"Rewrite{tone_modifier}" if tone_modifier else None


def derive_format(output_type: str | None) -> str:
    """Structured output types render as markdown; everything else is plain text."""
    if output_type in ("list", "tutorial"):
        return "markdown"
    return "plain-text"


# =========================================================
# ROUTER
# =========================================================

class SemanticRouter:
    """Two-stage request classifier.

    Args:
        classifier: Optional async callable `prompt -> str` used only by
            `route_with_model`. Pattern routing never touches it.
    """

    def __init__(self, classifier: Callable[[str], Awaitable[str]] | None = None):
        self.classifier = classifier

    def route(self, text: str) -> RoutingResult:
        """Classify one request with the ordered pattern tables.

        Edge cases:
            - Empty/whitespace/non-string input -> fallback `rewrite`, score 0.7.
            - Target language is only resolved for `translate`.
        """
        if not isinstance(text, str):
            text = ""

        query = text.strip().lower()

        intent = None
        for candidate, pattern in INTENT_PATTERNS:
            if pattern.search(query):
                intent = candidate
                break

        output_type = self._match_output_type(query)
        tones = self._match_tones(query)

        if intent is None:
            result = RoutingResult(
                intent=Intent.REWRITE,
                output_type=output_type,
                tones=tones,
                score=FALLBACK_SCORE,
                via=VIA_FALLBACK,
            )
        else:
            result = RoutingResult(
                intent=intent,
                output_type=output_type,
                tones=tones,
                score=PATTERN_SCORE,
                via=VIA_PATTERNS,
                target_language=extract_target_language(query) if intent is Intent.TRANSLATE else None,
            )

        logger.debug(
            "Routed request: intent=%s output_type=%s tones=%s via=%s",
            result.intent.value,
            result.output_type,
            ",".join(result.tones),
            result.via,
        )
        return result

    async def route_with_model(self, text: str) -> RoutingResult:
        """Classify with the injected model classifier, falling back to patterns.

        The classifier answer must be a JSON object whose `intent` is one of the
        five routable intents. Anything else (no classifier, transport failure,
        invalid JSON, unknown intent) returns `route(text)` unchanged.
        """
        if self.classifier is None or not isinstance(text, str) or not text.strip():
            return self.route(text)

        try:
            raw = await self.classifier(CLASSIFIER_PROMPT_TEMPLATE.format(request=text.strip()))
            parsed = _parse_classifier_answer(raw)
        except Exception:
            logger.exception("Model routing failed; using pattern routing")
            return self.route(text)

        if parsed is None:
            logger.warning("Model routing returned an invalid answer; using pattern routing")
            return self.route(text)

        intent, output_type, tones = parsed
        query = text.strip().lower()
        if output_type is None:
            output_type = self._match_output_type(query)
        if not tones:
            tones = self._match_tones(query)

        return RoutingResult(
            intent=intent,
            output_type=output_type,
            tones=tones,
            score=MODEL_SCORE,
            via=VIA_MODEL,
            target_language=extract_target_language(query) if intent is Intent.TRANSLATE else None,
        )

    def normalize(self, text: str, routing: RoutingResult) -> NormalizedRequest:
        """Project a routing result onto the variant for its intent.

        Variant rules:
            - rewrite: `goal` from output type and tones.
            - write: `instructions` (the trimmed text) and `format`.
            - summarize: `key-points` for list output, else `paragraph`;
              `short` when the urgent tone is present, else `medium`.
            - translate: `target_language` from routing.
            - anything else: residual `PromptRequest`.
        """
        original = text if isinstance(text, str) else ""
        base = {
            "text": original.strip(),
            "output_type": routing.output_type,
            "tones": tuple(routing.tones),
            "original_query": original,
        }
        intent = routing.intent

        if intent is Intent.PROOFREAD:
            return ProofreadRequest(**base)

        if intent is Intent.REWRITE:
            return RewriteRequest(**base, goal=derive_goal(routing.output_type, routing.tones))

        if intent is Intent.WRITE:
            return WriteRequest(**base, instructions=base["text"], format=derive_format(routing.output_type))

        if intent is Intent.SUMMARIZE:
            return SummarizeRequest(
                **base,
                summary_type="key-points" if routing.output_type == "list" else "paragraph",
                length="short" if "urgent" in routing.tones else "medium",
            )

        if intent is Intent.TRANSLATE:
            return TranslateRequest(**base, target_language=routing.target_language)

        return PromptRequest(**base)

    @staticmethod
    def _match_output_type(query: str) -> str | None:
        for output_type, pattern in OUTPUT_TYPE_PATTERNS:
            if pattern.search(query):
                return output_type
        return None

    @staticmethod
    def _match_tones(query: str) -> tuple[str, ...]:
        return tuple(tone for tone, pattern in TONE_PATTERNS if pattern.search(query))


def _parse_classifier_answer(raw) -> tuple[Intent, str | None, tuple[str, ...]] | None:
    """Validate a classifier answer; returns `None` when it is unusable.

    Accepts JSON wrapped in prose or code fences by extracting the outermost
    `{...}` span.
    """
    if not isinstance(raw, str):
        return None

    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end <= start:
        return None

    try:
        data = json.loads(raw[start:end + 1])
    except json.JSONDecodeError:
        return None

    if not isinstance(data, dict):
        return None

    intent_value = str(data.get("intent", "")).strip().lower()
    intent = next((i for i in ROUTABLE_INTENTS if i.value == intent_value), None)
    if intent is None:
        return None

    output_type = data.get("outputType")
    if output_type not in OUTPUT_TYPES:
        output_type = None

    tones = data.get("tones") or []
    if not isinstance(tones, list):
        tones = []
    tones = tuple(t for t in TONES if t in tones)

    return intent, output_type, tones
