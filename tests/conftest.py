"""Shared fixtures for memory, engine and API tests."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from textpilot.core.engine import AssistantEngine
from textpilot.memory.conversation_memory import ConversationMemory
from textpilot.memory.storage import InMemoryStorage
from textpilot.nlp.intent_router import SemanticRouter


class FakeSummarizer:
    """Summarizer stub that records inputs and returns a fixed summary."""

    def __init__(self, summary="short summary", error=None, delay=0.0):
        self.summary = summary
        self.error = error
        self.delay = delay
        self.calls = []

    async def summarize(self, text):
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.summary


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def summarizer_factory():
    return FakeSummarizer


@pytest.fixture
def summarizer(summarizer_factory):
    return summarizer_factory()


@pytest.fixture
def memory(storage, summarizer):
    return ConversationMemory(storage=storage, summarizer=summarizer)


@pytest.fixture
def generator():
    """Generation capability stub returning a fixed completion."""
    gen = AsyncMock()
    gen.generate = AsyncMock(return_value="Generated text")
    return gen


@pytest.fixture
def engine(memory, generator):
    return AssistantEngine(router=SemanticRouter(), memory=memory, generator=generator, top_k=3)
