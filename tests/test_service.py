"""Tests for prompt selection and the text-generation capability."""

from unittest.mock import AsyncMock, Mock

import pytest

from textpilot.core.errors import GenerationError, SummarizationError, ValidationError
from textpilot.core.routing_types import Intent, SummarizeRequest, TranslateRequest, WriteRequest
from textpilot.llm.service import (
    GenerationOptions,
    TextGenerator,
    enforce_prompt_token_budget,
    options_from_request,
)
from textpilot.memory.summarizer import SUMMARY_MAX_TOKENS, LLMSummarizer
from textpilot.prompting import prompt_builder


@pytest.fixture
def transport():
    return Mock(return_value="  Result text  ")


@pytest.fixture
def text_generator(transport):
    return TextGenerator(transport=transport, model="test-model", provider="local")


def _sent_prompt(transport):
    payload, provider = transport.call_args.args
    assert provider == "local"
    return payload["messages"][-1]["content"]


def test_options_from_request_carries_variant_fields():
    write = WriteRequest(text="write a memo", output_type="document", instructions="write a memo", format="markdown")
    summarize = SummarizeRequest(text="summarize", summary_type="key-points", length="short")
    translate = TranslateRequest(text="translate to French", target_language="fr")

    assert options_from_request(write, context="ctx").format == "markdown"
    assert options_from_request(write, context="ctx").context == "ctx"
    assert options_from_request(summarize).summary_type == "key-points"
    assert options_from_request(summarize).length == "short"
    assert options_from_request(translate).target_language == "fr"
    assert options_from_request(translate).intent is Intent.TRANSLATE


@pytest.mark.asyncio
async def test_generate_translate_uses_language_name(text_generator, transport):
    options = GenerationOptions(intent=Intent.TRANSLATE, instruction="translate to French", target_language="fr")

    result = await text_generator.generate("Good morning", options)

    assert result == "Result text"
    prompt = _sent_prompt(transport)
    assert "into French" in prompt
    assert "Good morning" in prompt


@pytest.mark.asyncio
async def test_translate_prompt_omits_memory_context(text_generator, transport):
    options = GenerationOptions(intent=Intent.TRANSLATE, instruction="translate", context="SECRET CONTEXT")

    await text_generator.generate("Hello", options)

    assert "SECRET CONTEXT" not in _sent_prompt(transport)


@pytest.mark.asyncio
async def test_generate_without_selection_works_on_instruction(text_generator, transport):
    options = GenerationOptions(intent=Intent.SUMMARIZE, instruction="summarize: the quarterly numbers went up")

    await text_generator.generate("", options)

    prompt = _sent_prompt(transport)
    assert "summarize: the quarterly numbers went up" in prompt
    assert prompt.endswith("Summary:")


@pytest.mark.asyncio
async def test_write_prompt_includes_context_and_style(text_generator, transport):
    options = GenerationOptions(
        intent=Intent.WRITE,
        instruction="write an email to my landlord",
        output_type="email",
        tones=("formal",),
        format="plain-text",
        context="RELEVANT CONVERSATION CONTEXT:\n\n[1] Q: q\nA: a\n(Recent)",
    )

    await text_generator.generate("", options)

    prompt = _sent_prompt(transport)
    assert prompt.startswith("Write a new email following these instructions: write an email to my landlord")
    assert "Use a formal tone." in prompt
    assert "RELEVANT CONVERSATION CONTEXT" in prompt


@pytest.mark.asyncio
async def test_payload_shape(text_generator, transport):
    await text_generator.complete("Some prompt", max_tokens=50)

    payload = transport.call_args.args[0]
    assert payload["model"] == "test-model"
    assert payload["messages"][0]["role"] == "system"
    assert payload["max_tokens"] == 50
    assert payload["stream"] is False


@pytest.mark.asyncio
async def test_generate_rejects_nothing_to_work_on(text_generator, transport):
    with pytest.raises(ValidationError):
        await text_generator.generate("  ", GenerationOptions(intent=Intent.REWRITE, instruction=""))
    transport.assert_not_called()


@pytest.mark.asyncio
async def test_complete_rejects_empty_output(transport, text_generator):
    transport.return_value = "   "

    with pytest.raises(GenerationError):
        await text_generator.complete("prompt")


@pytest.mark.asyncio
async def test_transport_errors_propagate(transport, text_generator):
    transport.side_effect = GenerationError("LOCAL HTTP ERROR (500)", provider="local", status_code=500)

    with pytest.raises(GenerationError):
        await text_generator.complete("prompt")


def test_prompt_budget():
    assert enforce_prompt_token_budget("short prompt") == "short prompt"

    long_prompt = "head " + "x" * 20000 + " tail"
    trimmed = enforce_prompt_token_budget(long_prompt, budget=100)

    assert "[TRUNCATED: PROMPT TOKEN BUDGET]" in trimmed
    assert trimmed.startswith("head ")
    assert trimmed.endswith(" tail")
    assert len(trimmed) <= 400


def test_rewrite_prompt_falls_back_to_instruction():
    prompt = prompt_builder.build_rewrite_prompt("Some text", instruction="make it punchier")
    assert prompt.startswith("Rewrite the text as requested: make it punchier.")


# ---------------------------------------------------------
# Summarizer
# ---------------------------------------------------------

@pytest.mark.asyncio
async def test_llm_summarizer_calls_generator():
    generator = Mock()
    generator.complete = AsyncMock(return_value="- point one\n- point two")

    summary = await LLMSummarizer(generator).summarize("long text " * 100)

    assert summary == "- point one\n- point two"
    assert generator.complete.await_args.kwargs["max_tokens"] == SUMMARY_MAX_TOKENS


@pytest.mark.asyncio
async def test_llm_summarizer_wraps_generation_errors():
    generator = Mock()
    generator.complete = AsyncMock(side_effect=GenerationError("LOCAL HTTP ERROR"))

    with pytest.raises(SummarizationError):
        await LLMSummarizer(generator).summarize("text")


@pytest.mark.asyncio
async def test_llm_summarizer_rejects_error_text():
    generator = Mock()
    generator.complete = AsyncMock(return_value="OPENAI HTTP ERROR (429)")

    with pytest.raises(SummarizationError):
        await LLMSummarizer(generator).summarize("text")


@pytest.mark.asyncio
async def test_llm_summarizer_rejects_empty_input():
    with pytest.raises(SummarizationError):
        await LLMSummarizer(Mock()).summarize("  ")
