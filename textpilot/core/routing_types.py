"""Routing data contracts shared by the intent router and the orchestration engine.

Architectural role:
    Defines the closed set of intents, the first-stage `RoutingResult` produced by
    `SemanticRouter.route`, and the second-stage `NormalizedRequest` variants
    produced by `SemanticRouter.normalize`.

Control-flow interaction:
    `engine.AssistantEngine.process_request` routes the instruction, normalizes it
    into exactly one variant, and converts that variant into generation options.
    Each variant carries only the fields its intent needs.

Determinism:
    All types are immutable value objects. Determinism depends on the router that
    populates them, not on this module.
"""

from dataclasses import dataclass
from enum import Enum


class Intent(str, Enum):
    """Action a request maps to. `PROMPT` is the residual free-form variant."""

    PROOFREAD = "proofread"
    REWRITE = "rewrite"
    WRITE = "write"
    SUMMARIZE = "summarize"
    TRANSLATE = "translate"
    PROMPT = "prompt"


ROUTABLE_INTENTS = (
    Intent.PROOFREAD,
    Intent.REWRITE,
    Intent.WRITE,
    Intent.SUMMARIZE,
    Intent.TRANSLATE,
)

OUTPUT_TYPES = (
    "email",
    "letter",
    "post",
    "document",
    "list",
    "script",
    "summary",
    "response",
    "announcement",
    "tutorial",
)

TONES = (
    "formal",
    "casual",
    "persuasive",
    "urgent",
    "diplomatic",
    "confident",
    "empathetic",
)

VIA_PATTERNS = "patterns"
VIA_FALLBACK = "fallback"
VIA_MODEL = "model"


@dataclass(frozen=True)
class RoutingResult:
    """First-stage classification of one request.

    Attributes:
        intent: Winning intent (first matching pattern, or `REWRITE` on fallback).
        output_type: First matching output-type tag, or `None`.
        tones: All matching tone tags in table order.
        score: Confidence in [0, 1]; 0.9 for a pattern hit, 0.7 for fallback.
        via: `"patterns"`, `"fallback"` or `"model"`.
        target_language: BCP-47 code for translate requests, otherwise `None`.
    """

    intent: Intent
    output_type: str | None = None
    tones: tuple[str, ...] = ()
    score: float = 0.0
    via: str = VIA_PATTERNS
    target_language: str | None = None


@dataclass(frozen=True)
class NormalizedRequest:
    """Fields common to every normalized variant.

    Attributes:
        text: Trimmed instruction with original casing.
        output_type: Output-type hint carried over from routing.
        tones: Tone tags carried over from routing.
        original_query: Instruction exactly as received.
    """

    text: str
    output_type: str | None = None
    tones: tuple[str, ...] = ()
    original_query: str = ""

    @property
    def intent(self) -> Intent:
        return Intent.PROMPT


@dataclass(frozen=True)
class ProofreadRequest(NormalizedRequest):
    @property
    def intent(self) -> Intent:
        return Intent.PROOFREAD


@dataclass(frozen=True)
class RewriteRequest(NormalizedRequest):
    """Rewrite variant; `goal` is a human-readable target such as
    "Rewrite as a professional email in a formal tone" or `None`."""

    goal: str | None = None

    @property
    def intent(self) -> Intent:
        return Intent.REWRITE


@dataclass(frozen=True)
class WriteRequest(NormalizedRequest):
    instructions: str = ""
    format: str = "plain-text"

    @property
    def intent(self) -> Intent:
        return Intent.WRITE


@dataclass(frozen=True)
class SummarizeRequest(NormalizedRequest):
    summary_type: str = "paragraph"
    length: str = "medium"

    @property
    def intent(self) -> Intent:
        return Intent.SUMMARIZE


@dataclass(frozen=True)
class TranslateRequest(NormalizedRequest):
    target_language: str | None = None

    @property
    def intent(self) -> Intent:
        return Intent.TRANSLATE


@dataclass(frozen=True)
class PromptRequest(NormalizedRequest):
    """Residual free-form request with no specialized handling."""
