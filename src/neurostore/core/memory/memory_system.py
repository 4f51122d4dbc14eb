#!/usr/bin/env python3
"""
Memory System - the orchestrator of the memory engine

Ingestion turns free text into engrams: facts are extracted once, then each
fact is embedded, checked for duplicates and either reinforces an existing
engram or becomes a new one. Facts learned together are linked by synapses.
Facts are processed strictly one after another, so each duplicate check sees
the engrams created earlier in the same call.

Ingestion is not transactional. If a later fact fails, the earlier ones stay
stored and the raised IngestionError reports them.

Two concurrent ingestions of the same content for one owner can both pass
the duplicate check before either commits and so store the content twice.
There is no cross-request locking.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union

import pydantic
from loguru import logger

from neurostore.config import NeuroStoreConfig
from neurostore.core.memory.associative_memory import form_synapse
from neurostore.core.memory.deduplication import Deduplicator
from neurostore.core.memory.fact_extraction import FactExtractor
from neurostore.core.memory.memory_decay import get_decay_statistics, reinforce_access, run_decay
from neurostore.core.models import (
    DEFAULT_SIGNAL,
    DecayReport,
    Engram,
    EngramCreateInput,
    EngramPage,
    EngramUpdateInput,
    FactOutcome,
    IngestionResult,
    SearchQuery,
    SearchResult,
    Strand,
)
from neurostore.providers.base import CompletionProvider, EmbeddingProvider
from neurostore.retrieval.pipeline import RetrievalPipeline
from neurostore.store.base import DataStore
from neurostore.utils.exceptions import IngestionError, NotFoundError, ValidationError
from neurostore.utils.scoring import compute_hash

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _validate(model: Type[ModelT], data: Union[ModelT, Dict[str, Any]]) -> ModelT:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid {model.__name__}", details=e.errors()) from e


class MemorySystem:
    """
    Ingests, retrieves and maintains engrams for many owners.

    Args:
        store: Persistence backend
        embedder: Embedding provider
        completion: Completion provider used for fact extraction
        config: Engine configuration; defaults apply when omitted
        clock: Source of the current time, used by ranking and decay
    """

    def __init__(
        self,
        store: DataStore,
        embedder: EmbeddingProvider,
        completion: CompletionProvider,
        config: Optional[NeuroStoreConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.store = store
        self.embedder = embedder
        self.completion = completion
        self.config = config or NeuroStoreConfig()
        self.clock = clock
        self.extractor = FactExtractor(completion)
        self.deduplicator = Deduplicator(
            store,
            threshold=self.config.deduplication.threshold,
            candidate_count=self.config.deduplication.candidate_count
        )
        self.pipeline = RetrievalPipeline(store, embedder, self.config.retrieval, clock=clock)

    # Ingestion

    async def _ingest_fact(self, data: EngramCreateInput, fact: str, strand: Strand) -> FactOutcome:
        embedding = await self.embedder.embed(fact)
        check = await self.deduplicator.check_duplicate(data.owner_id, fact, embedding)
        if check.is_duplicate:
            reinforced = await reinforce_access(self.store, check.existing.id, self.config.decay.duplicate_boost)
            logger.debug(f"Fact duplicates {reinforced.id} (similarity {check.similarity:.4f}), reinforced")
            return FactOutcome(fact=fact, engram=reinforced, created=False, similarity=check.similarity)

        engram = await self.store.create_engram({
            "owner_id": data.owner_id,
            "content": fact,
            "content_hash": compute_hash(fact),
            "embedding": embedding,
            "strand": strand,
            "tags": list(data.tags),
            "metadata": dict(data.metadata),
            "signal": data.signal if data.signal is not None else DEFAULT_SIGNAL,
            "pulse_rate": data.pulse_rate,
        })
        return FactOutcome(fact=fact, engram=engram, created=True)

    async def _link(self, owner_id: str, engrams: List[Engram]) -> None:
        ids = list(dict.fromkeys(e.id for e in engrams))
        settings = self.config.association
        for i, id_a in enumerate(ids):
            for id_b in ids[i + 1:]:
                await form_synapse(
                    self.store, id_a, id_b, owner_id,
                    weight=settings.co_occurrence_weight,
                    combine_mode=settings.combine_mode
                )

    async def add_memory(self, data: Union[EngramCreateInput, Dict[str, Any]]) -> IngestionResult:
        """
        Ingest free text for an owner.

        Args:
            data: EngramCreateInput or an equivalent dict

        Returns:
            IngestionResult with one outcome per extracted fact, in order

        Raises:
            ValidationError: If the input is malformed
            IngestionError: If a fact or the linking step fails; earlier facts stay stored
        """
        data = _validate(EngramCreateInput, data)
        extraction = await self.extractor.extract(data.content)
        strand = data.strand or extraction.strand
        result = IngestionResult(strand=strand, temporal_facts=extraction.temporal_facts)

        for fact in extraction.facts:
            try:
                outcome = await self._ingest_fact(data, fact, strand)
            except Exception as e:
                logger.error(f"Ingestion for {data.owner_id} stopped after "
                             f"{len(result.outcomes)}/{len(extraction.facts)} facts: {e}")
                raise IngestionError(f"Failed to ingest fact: {e}", result=result, failed_fact=fact) from e
            result.outcomes.append(outcome)

        try:
            await self._link(data.owner_id, result.engrams)
        except Exception as e:
            logger.error(f"Linking facts for {data.owner_id} failed: {e}")
            raise IngestionError(f"Failed to form synapses: {e}", result=result) from e

        logger.info(f"Ingested {len(result.outcomes)} facts for {data.owner_id} "
                    f"({result.created_count} new, strand={strand.value})")
        return result

    # Retrieval

    async def search(self, query: Union[SearchQuery, Dict[str, Any]]) -> SearchResult:
        if isinstance(query, dict) and "limit" not in query:
            query = {**query, "limit": self.config.retrieval.default_limit}
        return await self.pipeline.search(_validate(SearchQuery, query))

    # CRUD

    async def _require(self, engram_id: str) -> Engram:
        engram = await self.store.get_engram(engram_id)
        if engram is None:
            raise NotFoundError(f"Engram not found: {engram_id}")
        return engram

    async def get_engram(self, engram_id: str) -> Engram:
        """Fetch an engram and record the access."""
        await self._require(engram_id)
        await self.store.record_access(engram_id)
        return await self._require(engram_id)

    async def update_engram(self, engram_id: str, data: Union[EngramUpdateInput, Dict[str, Any]]) -> Engram:
        """
        Apply a partial update. Changed content is re-embedded and re-hashed.
        An explicit None for ``pulse_rate`` clears it.

        Raises:
            ValidationError: If the update is malformed
            NotFoundError: If the engram does not exist
        """
        data = _validate(EngramUpdateInput, data)
        current = await self._require(engram_id)
        fields = data.model_dump(exclude_unset=True)
        if not fields:
            return current

        if "content" in fields and fields["content"] != current.content:
            fields["embedding"] = await self.embedder.embed(fields["content"])
            fields["content_hash"] = compute_hash(fields["content"])

        updated = await self.store.update_engram(engram_id, fields)
        if updated is None:
            raise NotFoundError(f"Engram not found: {engram_id}")
        logger.info(f"Updated engram {engram_id}: {', '.join(sorted(fields))}")
        return updated

    async def delete_engram(self, engram_id: str) -> bool:
        if not await self.store.delete_engram(engram_id):
            raise NotFoundError(f"Engram not found: {engram_id}")
        logger.info(f"Deleted engram {engram_id}")
        return True

    async def list_engrams(
        self,
        owner_id: str,
        limit: int = 50,
        offset: int = 0,
        strand: Optional[Union[Strand, str]] = None
    ) -> EngramPage:
        if limit < 1 or offset < 0:
            raise ValidationError("limit must be positive and offset non-negative")
        strand_filter = None
        if strand is not None:
            strand_filter = Strand.get_case_insensitive(strand)
            if strand_filter is None:
                raise ValidationError(f"Unknown strand: {strand}")
        return await self.store.list_engrams(owner_id, limit=limit, offset=offset, strand=strand_filter)

    # Dynamics

    async def reinforce_engram(self, engram_id: str, boost: Optional[float] = None) -> Engram:
        if boost is None:
            boost = self.config.decay.reinforce_boost
        return await reinforce_access(self.store, engram_id, boost)

    async def run_decay(self, owner_id: str) -> DecayReport:
        settings = self.config.decay
        return await run_decay(
            self.store,
            owner_id,
            half_life_days=settings.half_life_days,
            min_delta=settings.min_delta,
            page_size=settings.page_size,
            clock=self.clock
        )

    async def get_decay_statistics(self, owner_id: str) -> Dict[str, Any]:
        return await get_decay_statistics(self.store, owner_id, page_size=self.config.decay.page_size)

    # Maintenance

    async def get_stats(self) -> Dict[str, int]:
        return await self.store.get_stats()

    async def health_check(self) -> Dict[str, Any]:
        store_status = await self.store.health_check()
        return {
            "ok": bool(store_status.get("ok")),
            "store": store_status,
            "embedder": self.embedder.name,
            "completion": self.completion.name,
        }

    async def drain(self) -> None:
        """Wait for background access recording to finish."""
        await self.pipeline.drain()

    async def close(self) -> None:
        await self.pipeline.drain()
        await self.store.close()
