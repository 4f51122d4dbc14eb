"""
Local embeddings with sentence-transformers.

The model is loaded once and encoding runs on a worker thread so the event
loop is never blocked by the CPU-bound forward pass. Requires the ``local``
extra.

Documentation References:
- Sentence Transformers: https://www.sbert.net/
- asyncio.to_thread: https://docs.python.org/3/library/asyncio-task.html#asyncio.to_thread
"""

import asyncio
from typing import List, Optional

from loguru import logger

from neurostore.providers.base import EmbeddingProvider
from neurostore.utils.exceptions import ProviderError


class SentenceTransformerEmbedder(EmbeddingProvider):
    name = "sentence-transformers"

    def __init__(self, model: str = "sentence-transformers/all-MiniLM-L6-v2",
                 device: Optional[str] = None):
        self.model_name = model
        self.device = device
        self._model = None

    def _load(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            logger.info(f"Loading SentenceTransformer model {self.model_name}")
            self._model = SentenceTransformer(self.model_name, device=self.device)
        return self._model

    def _encode(self, texts: List[str]) -> List[List[float]]:
        model = self._load()
        return model.encode(texts, normalize_embeddings=True).tolist()

    async def embed(self, text: str) -> List[float]:
        result = await self.embed_batch([text])
        return result[0]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        try:
            return await asyncio.to_thread(self._encode, texts)
        except Exception as e:
            logger.error(f"Local embedding with {self.model_name} failed: {e}")
            raise ProviderError(f"Embedding failed: {e}") from e
