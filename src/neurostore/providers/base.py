"""
Provider contracts.

Each role exposes exactly the operations the memory engine needs. The
concrete implementation is chosen from configuration once at start-up.
"""

from abc import ABC, abstractmethod
from typing import Any, List


class EmbeddingProvider(ABC):
    """Turns text into fixed-length vectors."""

    name: str = "abstract"

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        ...

    @abstractmethod
    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed many texts. Output order always matches input order."""


class CompletionProvider(ABC):
    """Text generation backend."""

    name: str = "abstract"

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...

    @abstractmethod
    async def complete_json(self, system_prompt: str, user_prompt: str) -> Any:
        """Return the model's reply parsed as JSON."""
