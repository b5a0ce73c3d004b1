"""Intent-aware text generation on top of the LLM transport.

Architectural role:
    Implements the text-generation capability consumed by the orchestration
    engine: `TextGenerator.generate(text, options)`. Each intent gets its own
    prompt (see `textpilot.prompting.prompt_builder`); all share one transport.

Model call flow:
    options -> prompt builder -> token-budget trim -> payload ->
    `client.send_request` (in a worker thread) -> stripped text.

Token behavior:
    Prompts above `PROMPT_TOKEN_BUDGET` (chars / 4 estimate) keep their head and
    tail and drop the middle, with a visible truncation marker.

Failure scenarios:
    Transport/provider failures propagate as `GenerationError` or
    `ConfigurationError`. An empty completion is also a `GenerationError`: callers
    never receive a silent empty string.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable

from textpilot.core.errors import GenerationError, ValidationError
from textpilot.core.routing_types import (
    Intent,
    NormalizedRequest,
    RewriteRequest,
    SummarizeRequest,
    TranslateRequest,
    WriteRequest,
)
from textpilot.llm.client import send_request
from textpilot.llm.provider_config import GENERATION_DEFAULTS, MODEL_NAME, SYSTEM_MESSAGE
from textpilot.nlp.languages import language_name
from textpilot.prompting import prompt_builder


logger = logging.getLogger(__name__)

PROMPT_TOKEN_BUDGET = 3500
CHARS_PER_TOKEN_ESTIMATE = 4


@dataclass(frozen=True)
class GenerationOptions:
    """Hints passed alongside the working text.

    Attributes:
        intent: Which specialized prompt to use.
        instruction: The user's request, verbatim but trimmed.
        goal: Rewrite goal derived by the router.
        output_type: Output-type hint (email, letter, ...).
        tones: Tone tags.
        format: `markdown` or `plain-text`.
        length: `short`, `medium` or `long`.
        summary_type: `key-points` or `paragraph`.
        target_language: BCP-47 target for translation.
        context: Retrieved memory context, possibly empty.
    """

    intent: Intent = Intent.PROMPT
    instruction: str = ""
    goal: str | None = None
    output_type: str | None = None
    tones: tuple[str, ...] = ()
    format: str | None = None
    length: str | None = None
    summary_type: str = "paragraph"
    target_language: str | None = None
    context: str = ""


def options_from_request(request: NormalizedRequest, context: str = "") -> GenerationOptions:
    """Translate a normalized request variant into generation options."""
    options = GenerationOptions(
        intent=request.intent,
        instruction=request.text,
        output_type=request.output_type,
        tones=tuple(request.tones),
        context=context or "",
    )

    if isinstance(request, RewriteRequest):
        return replace(options, goal=request.goal)
    if isinstance(request, WriteRequest):
        return replace(options, instruction=request.instructions or request.text, format=request.format)
    if isinstance(request, SummarizeRequest):
        return replace(options, summary_type=request.summary_type, length=request.length)
    if isinstance(request, TranslateRequest):
        return replace(options, target_language=request.target_language)
    return options


def _estimate_tokens(text: str) -> int:
    if not text:
        return 0
    return max(1, len(str(text)) // CHARS_PER_TOKEN_ESTIMATE)


def enforce_prompt_token_budget(prompt: str, budget: int = PROMPT_TOKEN_BUDGET) -> str:
    """Trim prompts that exceed the token budget estimate.

    Important behavior:
        - Preserves the head (instructions) and the tail (text and output cue).
        - Inserts a truncation marker where middle content is removed.
    """
    if not prompt:
        return ""

    token_estimate = _estimate_tokens(prompt)
    if token_estimate <= budget:
        return prompt

    max_chars = budget * CHARS_PER_TOKEN_ESTIMATE
    marker = "\n\n[TRUNCATED: PROMPT TOKEN BUDGET]\n\n"

    head_budget = int(max_chars * 0.55)
    tail_budget = max_chars - head_budget - len(marker)
    if tail_budget <= 0:
        trimmed = prompt[:max_chars]
    else:
        head = prompt[:head_budget].rstrip()
        tail = prompt[-tail_budget:].lstrip()
        trimmed = f"{head}{marker}{tail}"

    logger.warning(
        "Prompt exceeded budget and was truncated: est_tokens=%d -> est_tokens=%d (budget=%d)",
        token_estimate,
        _estimate_tokens(trimmed),
        budget,
    )
    return trimmed


class TextGenerator:
    """Text-generation capability backed by the configured LLM provider.

    Args:
        transport: Blocking `payload, provider -> str` callable; defaults to
            `client.send_request`.
        model: Model name put into every payload.
        provider: Optional provider override forwarded to the transport.
    """

    def __init__(
        self,
        transport: Callable[[dict, str | None], str] = send_request,
        model: str = MODEL_NAME,
        provider: str | None = None,
    ):
        self.transport = transport
        self.model = model
        self.provider = provider

    def build_prompt(self, text: str, options: GenerationOptions) -> str:
        """Select and fill the prompt for `options.intent`.

        `text` is the selected text. When it is empty, the instruction itself is
        the working text (for example "summarize: <pasted article>").
        """
        working = (text or "").strip() or options.instruction
        intent = options.intent

        if intent is Intent.PROOFREAD:
            return prompt_builder.build_proofread_prompt(working, options.context)

        if intent is Intent.REWRITE:
            return prompt_builder.build_rewrite_prompt(
                working,
                goal=options.goal,
                instruction=options.instruction if text else None,
                tones=options.tones,
                length=options.length,
                context=options.context,
            )

        if intent is Intent.WRITE:
            return prompt_builder.build_write_prompt(
                options.instruction,
                reference_text=text,
                output_type=options.output_type,
                tones=options.tones,
                format=options.format,
                context=options.context,
            )

        if intent is Intent.SUMMARIZE:
            return prompt_builder.build_summarize_prompt(
                working,
                summary_type=options.summary_type,
                length=options.length or "medium",
                context=options.context,
            )

        if intent is Intent.TRANSLATE:
            return prompt_builder.build_translate_prompt(working, language_name(options.target_language))

        return prompt_builder.build_free_prompt(options.instruction, text, options.context)

    def build_payload(self, prompt: str, max_tokens: int | None = None) -> dict:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_MESSAGE},
                {"role": "user", "content": prompt},
            ],
            **GENERATION_DEFAULTS,
            "stream": False,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        return payload

    async def complete(self, prompt: str, max_tokens: int | None = None) -> str:
        """Run one raw completion for an already-built prompt.

        Raises:
            ValidationError: Blank prompt.
            GenerationError: Transport failure or empty completion.
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt must not be empty", field="prompt")

        payload = self.build_payload(enforce_prompt_token_budget(prompt), max_tokens=max_tokens)
        result = await asyncio.to_thread(self.transport, payload, self.provider)

        text = str(result or "").strip()
        if not text:
            raise GenerationError("Model returned an empty response", provider=self.provider)
        return text

    async def generate(self, text: str, options: GenerationOptions) -> str:
        """Generate the output for one normalized request.

        Raises:
            ValidationError: Neither working text nor instruction was supplied.
            GenerationError / ConfigurationError: Propagated from the transport.
        """
        if not (text or "").strip() and not options.instruction.strip():
            raise ValidationError("Nothing to work on: text and instruction are empty", field="text")

        prompt = self.build_prompt(text, options)
        logger.debug("Generating for intent=%s (prompt chars=%d)", options.intent.value, len(prompt))
        return await self.complete(prompt)
