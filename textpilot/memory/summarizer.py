"""LLM-backed summarization capability for conversation memory.

Purpose:
    Compress oversized assistant outputs before they are stored as memory, so
    memory context stays small when it is injected into later prompts.

Contract:
    `await summarizer.summarize(text) -> str`. Safe to call repeatedly; it has no
    side effects beyond the model call.

Failure modes:
    Raises `SummarizationError` for empty input, provider failures, provider
    error text, and empty output. `ConversationMemory` recovers from every one of
    these by storing the original text.
"""

import logging
from typing import Protocol

from textpilot.core.errors import SummarizationError, TextPilotError
from textpilot.llm.service import TextGenerator


logger = logging.getLogger(__name__)

SUMMARY_MAX_TOKENS = 200
SUMMARY_CHARS_PER_TOKEN_ESTIMATE = 4
SUMMARY_INPUT_CHAR_BUDGET = 12000
SUMMARY_PROMPT = (
    "Summarize the following text as a short list of key points.\n"
    "Keep only facts, decisions, names and requested actions.\n"
    "Do not speculate or add new information. Use plain Markdown bullets.\n\n"
    "=== TEXT START ===\n"
    "{text}\n"
    "=== TEXT END ===\n\n"
    "Key points:"
)

# Provider error texts that must never be stored as a summary.
ERROR_SIGNALS = [
    "HTTP ERROR",
    "REQUEST FAILED",
    "KEY FILE NOT FOUND",
    "INVALID PROVIDER",
]


class Summarizer(Protocol):
    async def summarize(self, text: str) -> str:
        ...


def _trim_summary_to_max_tokens(summary_text: str) -> str:
    max_chars = SUMMARY_MAX_TOKENS * SUMMARY_CHARS_PER_TOKEN_ESTIMATE
    if len(summary_text) <= max_chars:
        return summary_text.strip()
    return summary_text[:max_chars].rstrip()


class LLMSummarizer:
    """Key-point summarizer using the shared `TextGenerator` transport."""

    def __init__(self, generator: TextGenerator | None = None):
        self.generator = generator or TextGenerator()

    async def summarize(self, text: str) -> str:
        """Return a key-point summary of `text`.

        Edge cases:
            - Input beyond `SUMMARY_INPUT_CHAR_BUDGET` is cut before prompting.
            - Output is trimmed to `SUMMARY_MAX_TOKENS` (character estimate).
        """
        if not text or not str(text).strip():
            raise SummarizationError("Cannot summarize empty text")

        source = str(text).strip()[:SUMMARY_INPUT_CHAR_BUDGET]

        try:
            summary = await self.generator.complete(
                SUMMARY_PROMPT.format(text=source),
                max_tokens=SUMMARY_MAX_TOKENS,
            )
        except TextPilotError as err:
            raise SummarizationError(f"Summary generation failed: {err.message}") from err

        if any(signal in summary.upper() for signal in ERROR_SIGNALS):
            logger.warning("Rejecting summary that looks like a provider error response")
            raise SummarizationError("Summary looks like a provider error response")

        return _trim_summary_to_max_tokens(summary)
