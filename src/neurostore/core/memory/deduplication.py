"""
Duplicate detection for incoming facts.

Two tiers: an exact content-hash lookup first, then cosine similarity against
the owner's nearest stored vectors. The cheap check handles verbatim repeats;
the vector check catches paraphrases.
"""

from typing import List

from loguru import logger

from neurostore.core.models import DuplicateCheck
from neurostore.store.base import DataStore
from neurostore.utils.logging import truncate_vector_for_display
from neurostore.utils.scoring import compute_hash, cosine_similarity

DEFAULT_THRESHOLD = 0.92
DEFAULT_CANDIDATES = 5


class Deduplicator:
    def __init__(self, store: DataStore, threshold: float = DEFAULT_THRESHOLD,
                 candidate_count: int = DEFAULT_CANDIDATES):
        self.store = store
        self.threshold = threshold
        self.candidate_count = candidate_count

    @staticmethod
    def compute_hash(content: str) -> str:
        return compute_hash(content)

    async def check_duplicate(self, owner_id: str, content: str, embedding: List[float]) -> DuplicateCheck:
        """
        Decide whether ``content`` already exists for ``owner_id``.

        Args:
            owner_id: Owner partition to search
            content: Fact text
            embedding: Embedding of ``content``

        Returns:
            DuplicateCheck; similarity is 1.0 for an exact hash match
        """
        hash_match = await self.store.find_by_content_hash(owner_id, compute_hash(content))
        if hash_match:
            logger.debug(f"Exact hash match found: {hash_match.id}")
            return DuplicateCheck(is_duplicate=True, existing=hash_match, similarity=1.0)

        candidates = await self.store.vector_search(owner_id, embedding, self.candidate_count)
        for engram, _ in candidates:
            if len(engram.embedding) != len(embedding):
                continue
            similarity = cosine_similarity(embedding, engram.embedding)
            if similarity >= self.threshold:
                logger.debug(f"Vector similarity match found: {engram.id} ({similarity:.4f})")
                return DuplicateCheck(is_duplicate=True, existing=engram, similarity=similarity)

        logger.debug(f"No duplicate among {len(candidates)} candidates for "
                     f"{truncate_vector_for_display(embedding)}")
        return DuplicateCheck(is_duplicate=False)
