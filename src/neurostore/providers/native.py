"""
Native providers - no network, no model weights.

``NativeCompletion`` hands the input straight back as a single fact, which is
the minimal reply any real completion backend must be able to produce.
``NativeEmbedder`` builds deterministic feature-hashed bag-of-words vectors,
good enough for offline use and exact/near-exact matching.
"""

import hashlib
from typing import Any, Dict, List

import numpy as np
from loguru import logger

from neurostore.providers.base import CompletionProvider, EmbeddingProvider
from neurostore.utils.text import tokenize


class NativeCompletion(CompletionProvider):
    name = "native"

    def __init__(self) -> None:
        logger.info("Using native completion provider (passthrough, no LLM needed)")

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        return user_prompt

    async def complete_json(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        return {"facts": [user_prompt], "strand": "general"}


class NativeEmbedder(EmbeddingProvider):
    name = "native"

    def __init__(self, dimensions: int = 256) -> None:
        if dimensions < 1:
            raise ValueError("dimensions must be positive")
        self.dimensions = dimensions

    def _bucket(self, token: str) -> int:
        digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
        return int.from_bytes(digest, "big") % self.dimensions

    def _vectorize(self, text: str) -> List[float]:
        vector = np.zeros(self.dimensions, dtype=float)
        tokens = tokenize(text)
        # unigrams plus adjacent bigrams so word order carries a little weight
        features = tokens + [f"{a}_{b}" for a, b in zip(tokens, tokens[1:])]
        for feature in features:
            vector[self._bucket(feature)] += 1.0
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.tolist()

    async def embed(self, text: str) -> List[float]:
        return self._vectorize(text)

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        return [self._vectorize(t) for t in texts]
