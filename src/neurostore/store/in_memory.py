"""
In-process store.

Keeps engrams and synapses in dictionaries. Used for tests, the offline CLI
and anywhere a database would be overkill. Insertion order is preserved, so
listings and synapse traversal are reproducible.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from neurostore.core.models import (
    MAX_SIGNAL,
    Engram,
    EngramPage,
    Strand,
    Synapse,
    decayed_signal,
    utcnow,
)
from neurostore.store.base import DataStore
from neurostore.utils.scoring import cosine_similarity


class InMemoryStore(DataStore):
    backend = "memory"

    def __init__(self) -> None:
        self._engrams: Dict[str, Engram] = {}
        self._synapses: Dict[Tuple[str, str], Synapse] = {}

    async def create_engram(self, fields: Dict[str, Any]) -> Engram:
        engram = Engram(**fields)
        self._engrams[engram.id] = engram
        logger.debug(f"Stored engram {engram.id} for owner {engram.owner_id}")
        return engram.model_copy(deep=True)

    async def get_engram(self, engram_id: str) -> Optional[Engram]:
        engram = self._engrams.get(engram_id)
        return engram.model_copy(deep=True) if engram else None

    async def update_engram(self, engram_id: str, fields: Dict[str, Any]) -> Optional[Engram]:
        engram = self._engrams.get(engram_id)
        if engram is None:
            return None
        data = engram.model_dump()
        data.update(fields)
        data["updated_at"] = fields.get("updated_at") or utcnow()
        updated = Engram(**data)
        self._engrams[engram_id] = updated
        return updated.model_copy(deep=True)

    async def delete_engram(self, engram_id: str) -> bool:
        if self._engrams.pop(engram_id, None) is None:
            return False
        for key in [k for k in self._synapses if engram_id in k]:
            del self._synapses[key]
        return True

    def _owned(self, owner_id: str, strand: Optional[Strand] = None) -> List[Engram]:
        return [
            e for e in self._engrams.values()
            if e.owner_id == owner_id and (strand is None or e.strand == strand)
        ]

    async def list_engrams(self, owner_id: str, limit: int = 50, offset: int = 0,
                           strand: Optional[Strand] = None) -> EngramPage:
        owned = self._owned(owner_id, strand)
        page = owned[offset:offset + limit]
        return EngramPage(engrams=[e.model_copy(deep=True) for e in page], total=len(owned))

    async def vector_search(self, owner_id: str, embedding: List[float], limit: int,
                            strand: Optional[Strand] = None) -> List[Tuple[Engram, float]]:
        scored = [
            (e, cosine_similarity(embedding, e.embedding))
            for e in self._owned(owner_id, strand)
            if len(e.embedding) == len(embedding)
        ]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return [(e.model_copy(deep=True), score) for e, score in scored[:limit]]

    async def find_by_content_hash(self, owner_id: str, content_hash: str) -> Optional[Engram]:
        for engram in self._engrams.values():
            if engram.owner_id == owner_id and engram.content_hash == content_hash:
                return engram.model_copy(deep=True)
        return None

    async def record_access(self, engram_id: str) -> None:
        engram = self._engrams.get(engram_id)
        if engram is None:
            return
        engram.access_count += 1
        engram.last_accessed_at = utcnow()

    async def reinforce_engram(self, engram_id: str, boost: float) -> Optional[Engram]:
        engram = self._engrams.get(engram_id)
        if engram is None:
            return None
        now = utcnow()
        engram.signal = min(MAX_SIGNAL, max(0.0, engram.signal + boost))
        engram.access_count += 1
        engram.last_accessed_at = now
        engram.updated_at = now
        return engram.model_copy(deep=True)

    async def decay_engram(self, engram_id: str, half_life_days: float, now: datetime,
                           min_delta: float) -> Optional[Engram]:
        engram = self._engrams.get(engram_id)
        if engram is None:
            return None
        new_signal = decayed_signal(engram, now, half_life_days)
        if engram.signal - new_signal < min_delta or new_signal == engram.signal:
            return None
        engram.signal = new_signal
        engram.decayed_at = now
        engram.updated_at = utcnow()
        return engram.model_copy(deep=True)

    async def get_synapse(self, source_id: str, target_id: str) -> Optional[Synapse]:
        synapse = self._synapses.get((source_id, target_id))
        return synapse.model_copy() if synapse else None

    async def save_synapse(self, synapse: Synapse) -> Synapse:
        self._synapses[(synapse.source_id, synapse.target_id)] = synapse.model_copy()
        return synapse

    async def get_synapses_from(self, engram_id: str) -> List[Synapse]:
        return [s.model_copy() for (source, _), s in self._synapses.items() if source == engram_id]

    async def get_stats(self) -> Dict[str, int]:
        return {"engrams": len(self._engrams), "synapses": len(self._synapses)}

    async def health_check(self) -> Dict[str, Any]:
        return {"ok": True, "type": self.backend}
