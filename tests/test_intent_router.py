"""Tests for pattern routing, model routing and request normalization."""

from unittest.mock import AsyncMock

import pytest

from textpilot.core.routing_types import (
    Intent,
    ProofreadRequest,
    RewriteRequest,
    RoutingResult,
    SummarizeRequest,
    TranslateRequest,
    WriteRequest,
)
from textpilot.nlp.intent_router import SemanticRouter, derive_format, derive_goal
from textpilot.nlp.languages import extract_target_language, language_name


@pytest.fixture
def router():
    return SemanticRouter()


@pytest.mark.parametrize(
    "text, intent",
    [
        ("translate this to Spanish", Intent.TRANSLATE),
        ("put this into German", Intent.TRANSLATE),
        ("tl;dr please", Intent.SUMMARIZE),
        ("give me the key points", Intent.SUMMARIZE),
        ("write an email to my boss asking for a raise", Intent.WRITE),
        ("reply to my landlord's email", Intent.WRITE),
        ("check my spelling", Intent.PROOFREAD),
        ("fix the grammar in this paragraph", Intent.PROOFREAD),
        ("make this more formal", Intent.REWRITE),
        ("rephrase it", Intent.REWRITE),
    ],
)
def test_route_intents(router, text, intent):
    result = router.route(text)

    assert result.intent is intent
    assert result.score == 0.9
    assert result.via == "patterns"


def test_intent_priority_is_fixed(router):
    """Earlier table entries win when several intents match."""
    assert router.route("summarize and translate to Spanish").intent is Intent.TRANSLATE
    assert router.route("draft a summary of the report").intent is Intent.SUMMARIZE
    assert router.route("proofread this email draft").intent is Intent.PROOFREAD
    assert router.route("proofread this email draft").output_type == "email"


def test_no_match_falls_back_to_rewrite(router):
    result = router.route("hello there")

    assert result == RoutingResult(intent=Intent.REWRITE, score=0.7, via="fallback")


def test_empty_and_non_string_input_fall_back(router):
    assert router.route("").via == "fallback"
    assert router.route("   ").intent is Intent.REWRITE
    assert router.route(None).score == 0.7


def test_tones_collect_every_match_in_table_order(router):
    result = router.route("rewrite this to be more professional and friendly")

    assert result.intent is Intent.REWRITE
    assert result.tones == ("formal", "casual")


def test_output_type_first_match(router):
    assert router.route("write a formal cover letter").output_type == "letter"
    assert router.route("write a list of steps to install python").output_type == "list"


@pytest.mark.parametrize(
    "text, intent, output_type",
    [
        ("Proofread this EMAIL draft!", Intent.PROOFREAD, "email"),
        ("Write a LETTER, please.", Intent.WRITE, "letter"),
        ("SUMMARIZE... as a Bullet-List?", Intent.SUMMARIZE, "list"),
    ],
)
def test_output_type_ignores_case_and_punctuation(router, text, intent, output_type):
    result = router.route(text)

    assert result.intent is intent
    assert result.output_type == output_type


def test_target_language_only_for_translate(router):
    assert router.route("translate this Spanish text to English").target_language == "en"
    assert router.route("make this friendlier for my Spanish colleague").target_language is None
    assert router.route("write an email").target_language is None


@pytest.mark.parametrize(
    "text, code",
    [
        ("translate this to German, keeping the names in English", "de"),
        ("translate this text in French into Spanish", "es"),
        ("translate into French, not to Spanish", "fr"),
        ("translate this in Italian", "it"),
    ],
)
def test_directional_target_outranks_in_phrase(router, text, code):
    result = router.route(text)

    assert result.intent is Intent.TRANSLATE
    assert result.target_language == code


def test_route_is_deterministic(router):
    text = "write a persuasive blog post about remote work"
    assert router.route(text) == router.route(text)


# ---------------------------------------------------------
# Normalization
# ---------------------------------------------------------

def test_normalize_rewrite_derives_goal(router):
    text = "make this more formal"
    request = router.normalize(text, router.route(text))

    assert isinstance(request, RewriteRequest)
    assert request.goal == "Rewrite in a formal tone"
    assert request.intent is Intent.REWRITE


def test_normalize_write(router):
    text = "  write a list of steps to install python "
    request = router.normalize(text, router.route(text))

    assert isinstance(request, WriteRequest)
    assert request.instructions == "write a list of steps to install python"
    assert request.format == "markdown"
    assert request.original_query == text


def test_normalize_summarize_list_and_urgent(router):
    text = "give me an urgent summary as a bullet list"
    request = router.normalize(text, router.route(text))

    assert isinstance(request, SummarizeRequest)
    assert request.summary_type == "key-points"
    assert request.length == "short"


def test_normalize_translate_and_proofread(router):
    translate = router.normalize("translate to French", router.route("translate to French"))
    proofread = router.normalize("proofread this", router.route("proofread this"))

    assert isinstance(translate, TranslateRequest)
    assert translate.target_language == "fr"
    assert isinstance(proofread, ProofreadRequest)


def test_derive_goal_and_format():
    assert derive_goal("email", ("formal",)) == "Rewrite as a professional email in a formal tone"
    assert derive_goal(None, ()) is None
    assert derive_format("tutorial") == "markdown"
    assert derive_format("email") == "plain-text"


# ---------------------------------------------------------
# Model routing
# ---------------------------------------------------------

@pytest.mark.asyncio
async def test_route_with_model_uses_classifier_answer():
    classifier = AsyncMock(
        return_value='Sure: {"intent": "translate", "outputType": "email", "tones": ["urgent", "bogus"]}'
    )
    router = SemanticRouter(classifier=classifier)

    result = await router.route_with_model("please handle this in German")

    assert result.intent is Intent.TRANSLATE
    assert result.output_type == "email"
    assert result.tones == ("urgent",)
    assert result.target_language == "de"
    assert result.score == 0.95
    assert result.via == "model"
    assert "please handle this in German" in classifier.await_args.args[0]


@pytest.mark.asyncio
async def test_route_with_model_falls_back_on_failure():
    router = SemanticRouter(classifier=AsyncMock(side_effect=RuntimeError("boom")))

    result = await router.route_with_model("check my spelling")

    assert result.intent is Intent.PROOFREAD
    assert result.via == "patterns"


@pytest.mark.asyncio
async def test_route_with_model_rejects_unknown_intent():
    router = SemanticRouter(classifier=AsyncMock(return_value='{"intent": "dance"}'))

    result = await router.route_with_model("hello there")

    assert result.via == "fallback"


@pytest.mark.asyncio
async def test_route_with_model_without_classifier(router):
    result = await router.route_with_model("summarize this")
    assert result.intent is Intent.SUMMARIZE


# ---------------------------------------------------------
# Languages
# ---------------------------------------------------------

def test_extract_target_language():
    assert extract_target_language("into traditional chinese please") == "zh-TW"
    assert extract_target_language("to mandarin") == "zh"
    assert extract_target_language("a Japanese version") == "ja"
    assert extract_target_language("no language here") is None


def test_language_name():
    assert language_name("es") == "Spanish"
    assert language_name(None) == "English"
    assert language_name("xx") == "xx"
