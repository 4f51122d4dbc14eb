"""
Global test fixtures for neurostore tests.

Provides an in-memory store, a table-driven embedder and a completion stub
that splits text into sentences, so the engine can be exercised end to end
without any network or database.

Official Documentation References:
- pytest: https://docs.pytest.org/
- pytest-asyncio: https://pytest-asyncio.readthedocs.io/
"""

# Standard library imports
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

# Third-party imports
import pytest

from neurostore.config import NeuroStoreConfig
from neurostore.core.memory.memory_system import MemorySystem
from neurostore.providers.base import CompletionProvider, EmbeddingProvider
from neurostore.store.in_memory import InMemoryStore
from neurostore.utils.exceptions import ProviderError

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


class StubEmbedder(EmbeddingProvider):
    """Looks vectors up in a table; unknown texts get ``default``."""

    name = "stub"

    def __init__(self, vectors: Optional[Dict[str, Sequence[float]]] = None,
                 default: Sequence[float] = (0.0, 0.0, 1.0, 0.0),
                 fail_on: Sequence[str] = ()):
        self.vectors = {k: list(v) for k, v in (vectors or {}).items()}
        self.default = list(default)
        self.fail_on = set(fail_on)
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if text in self.fail_on:
            raise ProviderError(f"embedding backend unavailable for {text!r}")
        return list(self.vectors.get(text, self.default))

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        return [await self.embed(t) for t in texts]


class StubCompletion(CompletionProvider):
    """Splits the user prompt into sentences, or returns a canned reply."""

    name = "stub"

    def __init__(self, reply: Optional[Any] = None, strand: str = "factual",
                 temporal_facts: Optional[List[Dict[str, str]]] = None):
        self.reply = reply
        self.strand = strand
        self.temporal_facts = temporal_facts or []

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        return user_prompt

    async def complete_json(self, system_prompt: str, user_prompt: str) -> Any:
        if self.reply is not None:
            return self.reply
        facts = [s for s in re.split(r"(?<=\.)\s+", user_prompt.strip()) if s]
        return {"facts": facts, "strand": self.strand, "temporalFacts": self.temporal_facts}


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def config():
    return NeuroStoreConfig()


@pytest.fixture
def embedder():
    return StubEmbedder()


@pytest.fixture
def completion():
    return StubCompletion()


@pytest.fixture
def memory_system(store, embedder, completion, config):
    return MemorySystem(store, embedder, completion, config, clock=fixed_clock)
