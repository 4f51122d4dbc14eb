"""
LiteLLM-backed providers.

LiteLLM gives one calling convention across OpenAI, Ollama, Azure and the
rest, so the model string alone selects the backend. Transient failures are
retried here with tenacity; anything left over is raised as ProviderError.

Official Documentation References:
- LiteLLM: https://docs.litellm.ai/docs/
- LiteLLM embeddings: https://docs.litellm.ai/docs/embedding/supported_embedding
- Tenacity: https://tenacity.readthedocs.io/en/stable/
"""

import json
from typing import Any, Dict, List, Optional

import litellm
import regex as re
from loguru import logger
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from neurostore.providers.base import CompletionProvider, EmbeddingProvider
from neurostore.utils.exceptions import ProviderError

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _field(item: Any, name: str) -> Any:
    """Read ``name`` from either a dict or an attribute-style response object."""
    if isinstance(item, dict):
        return item[name]
    return getattr(item, name)


def parse_json_reply(text: str) -> Any:
    """
    Parse a model reply as JSON, tolerating a markdown code fence around it.

    Raises:
        ProviderError: If the reply is empty or not valid JSON
    """
    if not text or not text.strip():
        raise ProviderError("Empty completion reply")
    cleaned = text.strip()
    match = _FENCE_PATTERN.match(cleaned)
    if match:
        cleaned = match.group(1)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ProviderError(f"Completion reply is not valid JSON: {e}", details=text[:200]) from e


class _RetryMixin:
    max_retries: int = 3

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(max(1, self.max_retries)),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
            reraise=True
        )


class LiteLLMEmbedder(_RetryMixin, EmbeddingProvider):
    name = "litellm"

    def __init__(self, model: str = "text-embedding-3-small", dimensions: Optional[int] = 1536,
                 api_key: Optional[str] = None, max_retries: int = 3, batch_size: int = 64):
        self.model = model
        self.dimensions = dimensions
        self.api_key = api_key
        self.max_retries = max_retries
        self.batch_size = batch_size

    async def embed(self, text: str) -> List[float]:
        result = await self.embed_batch([text])
        return result[0]

    async def _embed_chunk(self, texts: List[str]) -> List[List[float]]:
        kwargs: Dict[str, Any] = {"model": self.model, "input": texts}
        if self.dimensions:
            kwargs["dimensions"] = self.dimensions
        if self.api_key:
            kwargs["api_key"] = self.api_key

        async for attempt in self._retrying():
            with attempt:
                response = await litellm.aembedding(**kwargs)

        data = list(_field(response, "data"))
        if len(data) != len(texts):
            raise ProviderError(f"Embedding backend returned {len(data)} vectors for {len(texts)} inputs")
        # backends may answer out of order; the index tag is authoritative
        data.sort(key=lambda item: _field(item, "index"))
        return [list(_field(item, "embedding")) for item in data]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        logger.debug(f"Embedding batch of {len(texts)} with {self.model}")
        vectors: List[List[float]] = []
        try:
            for start in range(0, len(texts), self.batch_size):
                vectors.extend(await self._embed_chunk(texts[start:start + self.batch_size]))
        except ProviderError:
            raise
        except Exception as e:
            logger.error(f"Embedding request to {self.model} failed: {e}")
            raise ProviderError(f"Embedding failed: {e}") from e
        return vectors


class LiteLLMCompletion(_RetryMixin, CompletionProvider):
    name = "litellm"

    def __init__(self, model: str = "gpt-4o-mini", temperature: float = 0.0,
                 api_key: Optional[str] = None, timeout: float = 30.0, max_retries: int = 3):
        self.model = model
        self.temperature = temperature
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries

    async def _call(self, system_prompt: str, user_prompt: str, json_mode: bool) -> str:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.temperature,
            "timeout": self.timeout,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if self.api_key:
            kwargs["api_key"] = self.api_key

        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await litellm.acompletion(**kwargs)
        except Exception as e:
            logger.error(f"Completion request to {self.model} failed: {e}")
            raise ProviderError(f"Completion failed: {e}") from e

        return response.choices[0].message.content or ""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        return await self._call(system_prompt, user_prompt, json_mode=False)

    async def complete_json(self, system_prompt: str, user_prompt: str) -> Any:
        reply = await self._call(system_prompt, user_prompt, json_mode=True)
        return parse_json_reply(reply)
