"""
conftest.py -- Shared fakes and fixtures for the consultation engine tests.

No test touches the network: the LLM and the store are replaced with
in-process fakes, and REST calls go through httpx.MockTransport.
"""

import asyncio
import json
import random

import pytest

from iching.caster import build_hexagram
from iching.errors import PersistenceError
from iching.models import ConsultationRecord, StoredConsultation

from engine.cache import InterpretationCache
from engine.cost_tracker import CostTracker
from engine.llm_client import LLMCompletion
from engine.orchestrator import ConsultationOrchestrator
from engine.persistence import InMemoryConsultationStore

VALID_INTERPRETATION = {
    "interpretation": (
        "This hexagram suggests a time of steady growth. Ancient wisdom counsels "
        "patience while your efforts take root."
    ),
    "guidance": "Consider where a small, consistent effort may bring the most benefit.",
    "practicalAdvice": "Set aside a quiet moment each morning to review your intentions.",
    "culturalContext": "Traditional commentators linked this figure to the turning of the seasons.",
}


class FakeLLMClient:
    """Returns a fixed completion and records every call."""

    def __init__(self, content=None, input_tokens=600, output_tokens=400):
        self.content = content if content is not None else json.dumps(VALID_INTERPRETATION)
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.calls: list[dict] = []

    async def complete(self, model, prompt, system_prompt):
        self.calls.append({"model": model, "prompt": prompt, "system_prompt": system_prompt})
        return LLMCompletion(
            content=self.content,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )


class FailingLLMClient:
    """Raises on every call, like an unreachable provider."""

    def __init__(self, exc: Exception | None = None):
        self.exc = exc or ConnectionError("network unreachable")
        self.calls = 0

    async def complete(self, model, prompt, system_prompt):
        self.calls += 1
        raise self.exc


class SlowLLMClient:
    """Never answers within any reasonable timeout."""

    def __init__(self, delay: float = 5.0):
        self.delay = delay
        self.calls = 0

    async def complete(self, model, prompt, system_prompt):
        self.calls += 1
        await asyncio.sleep(self.delay)
        return LLMCompletion(content=json.dumps(VALID_INTERPRETATION))


class RecordingStore(InMemoryConsultationStore):
    """In-memory store that also keeps the records it was asked to save."""

    def __init__(self):
        super().__init__()
        self.saved: list[ConsultationRecord] = []

    async def save(self, record: ConsultationRecord) -> StoredConsultation:
        self.saved.append(record)
        return await super().save(record)


class FailingStore(InMemoryConsultationStore):
    async def save(self, record: ConsultationRecord) -> StoredConsultation:
        raise PersistenceError("Store unreachable: connection refused")


@pytest.fixture
def llm():
    return FakeLLMClient()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def cache():
    return InterpretationCache()


@pytest.fixture
def cost_tracker():
    return CostTracker()


@pytest.fixture
def make_orchestrator(store, cache, cost_tracker):
    """Build an orchestrator around the given LLM client with isolated state."""

    def _make(llm_client, store_override=None, llm_timeout=15.0):
        return ConsultationOrchestrator(
            llm_client=llm_client,
            store=store_override or store,
            cache=cache,
            cost_tracker=cost_tracker,
            llm_timeout=llm_timeout,
            rng=random.Random(42),
        )

    return _make


@pytest.fixture
def moving_hexagram():
    """Hexagram 47 with lines 1 and 4 changing."""
    return build_hexagram([6, 7, 8, 9, 7, 8])


@pytest.fixture
def still_hexagram():
    """Hexagram 11 with no changing lines."""
    return build_hexagram([7, 7, 7, 8, 8, 8])
