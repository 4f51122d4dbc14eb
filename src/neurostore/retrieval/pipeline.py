"""
Hybrid retrieval pipeline.

A search embeds the query, over-fetches vector candidates, scores them with
BM25, expands through the synapse graph, and ranks by a weighted fusion of
vector similarity, keyword relevance, recency, signal and synapse boost.
Every hit carries the weighted components that produced its score.

Access recording for returned engrams runs in the background and never
delays or fails the search.
"""

import math
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from loguru import logger

from neurostore.config import RetrievalSettings
from neurostore.core.memory.associative_memory import traverse_synapses
from neurostore.core.models import (
    Engram,
    RetrievalTrace,
    SearchHit,
    SearchQuery,
    SearchResult,
    days_between,
    utcnow,
)
from neurostore.providers.base import EmbeddingProvider
from neurostore.retrieval.bm25 import BM25Scorer
from neurostore.store.base import DataStore
from neurostore.utils.background import BackgroundTasks
from neurostore.utils.scoring import clamp, min_max_normalize


def recency_term(days: float, half_life_days: float, max_days: float) -> float:
    """exp(-days / half_life) windowed linearly to zero at ``max_days``."""
    return math.exp(-days / half_life_days) * clamp(1.0 - days / max_days, 0.0, 1.0)


class RetrievalPipeline:
    def __init__(
        self,
        store: DataStore,
        embedder: EmbeddingProvider,
        settings: Optional[RetrievalSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        background: Optional[BackgroundTasks] = None
    ):
        self.store = store
        self.embedder = embedder
        self.settings = settings or RetrievalSettings()
        self.clock = clock or utcnow
        self.background = background or BackgroundTasks()
        self.bm25 = BM25Scorer()

    async def _expand(self, candidates: List[Tuple[Engram, float]], enabled: bool) -> Dict[str, float]:
        s = self.settings
        if not enabled or s.synapse_depth == 0 or s.seed_count == 0:
            return {}
        seeds = [engram.id for engram, _ in candidates[:s.seed_count]]
        return await traverse_synapses(self.store, seeds, depth=s.synapse_depth, decay=s.synapse_decay)

    def _trace(
        self,
        engram: Engram,
        norm_vector: float,
        norm_keyword: float,
        synapse_boost: float,
        now: datetime
    ) -> RetrievalTrace:
        s = self.settings
        days = days_between(now, engram.last_accessed_at)
        vector_score = s.vector_weight * norm_vector
        keyword_score = s.keyword_weight * norm_keyword
        recency_boost = s.recency_weight * recency_term(days, s.recency_half_life_days, s.recency_max_days)
        signal_boost = s.signal_weight * engram.signal
        synapse_score = s.synapse_weight * synapse_boost
        return RetrievalTrace(
            vector_score=vector_score,
            keyword_score=keyword_score,
            recency_boost=recency_boost,
            signal_boost=signal_boost,
            synapse_boost=synapse_score,
            final_score=vector_score + keyword_score + recency_boost + signal_boost + synapse_score,
        )

    async def _record_accesses(self, engram_ids: List[str]) -> None:
        for engram_id in engram_ids:
            await self.store.record_access(engram_id)

    async def search(self, query: SearchQuery) -> SearchResult:
        """
        Run a hybrid search.

        Args:
            query: Owner, query text, limit, optional strand filter and expansion toggle

        Returns:
            SearchResult with at most ``query.limit`` hits, best first

        Raises:
            ProviderError: If the query cannot be embedded
        """
        started = time.perf_counter()
        embedding = await self.embedder.embed(query.query)

        candidate_limit = query.limit * self.settings.candidate_multiplier
        candidates = await self.store.vector_search(query.owner_id, embedding, candidate_limit, query.strand)
        if not candidates:
            logger.info(f"Search '{query.query}' for {query.owner_id}: no candidates")
            return SearchResult(hits=[], total=0, query=query.query,
                                took_ms=(time.perf_counter() - started) * 1000)

        keyword_scores = self.bm25.score(query.query, [(e.id, e.content) for e, _ in candidates])
        norm_vector = min_max_normalize([score for _, score in candidates])
        norm_keyword = min_max_normalize([keyword_scores[e.id] for e, _ in candidates])
        synapse_boosts = await self._expand(candidates, query.expand_synapses)

        now = self.clock()
        scored = [
            (engram, self._trace(engram, norm_vector[i], norm_keyword[i], synapse_boosts.get(engram.id, 0.0), now))
            for i, (engram, _) in enumerate(candidates)
        ]
        # sorted() is stable with reverse=True, so ties keep candidate order
        ranked = sorted(scored, key=lambda pair: pair[1].final_score, reverse=True)[:query.limit]

        hits = [SearchHit(engram=engram.public_view(), trace=trace) for engram, trace in ranked]
        if hits:
            self.background.spawn(
                self._record_accesses([engram.id for engram, _ in ranked]),
                name=f"record-access-{query.owner_id}"
            )

        took_ms = (time.perf_counter() - started) * 1000
        logger.info(f"Search '{query.query}' for {query.owner_id}: {len(hits)} hits "
                    f"from {len(candidates)} candidates in {took_ms:.1f}ms")
        return SearchResult(hits=hits, total=len(hits), query=query.query, took_ms=took_ms)

    async def drain(self) -> None:
        """Wait for outstanding access recording."""
        await self.background.drain()
