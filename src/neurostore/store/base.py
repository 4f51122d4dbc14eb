"""
Storage contract used by the memory engine.

The pipeline only talks to persistence through this interface; whichever
backend sits behind it owns indexing, on-disk format and uniqueness rules.
The pipeline never relies on a storage-level uniqueness constraint.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from neurostore.core.models import Engram, EngramPage, Strand, Synapse


class DataStore(ABC):
    """Async persistence interface for engrams and synapses."""

    backend: str = "abstract"

    # Engrams

    @abstractmethod
    async def create_engram(self, fields: Dict[str, Any]) -> Engram:
        """Persist a new engram built from ``fields`` and return it."""

    @abstractmethod
    async def get_engram(self, engram_id: str) -> Optional[Engram]:
        ...

    @abstractmethod
    async def update_engram(self, engram_id: str, fields: Dict[str, Any]) -> Optional[Engram]:
        """Apply a partial update; returns None when the id is unknown."""

    @abstractmethod
    async def delete_engram(self, engram_id: str) -> bool:
        ...

    @abstractmethod
    async def list_engrams(self, owner_id: str, limit: int = 50, offset: int = 0,
                           strand: Optional[Strand] = None) -> EngramPage:
        ...

    @abstractmethod
    async def vector_search(self, owner_id: str, embedding: List[float], limit: int,
                            strand: Optional[Strand] = None) -> List[Tuple[Engram, float]]:
        """Nearest engrams for an owner, ordered by descending similarity."""

    @abstractmethod
    async def find_by_content_hash(self, owner_id: str, content_hash: str) -> Optional[Engram]:
        ...

    @abstractmethod
    async def record_access(self, engram_id: str) -> None:
        """Bump access count and last-accessed time."""

    @abstractmethod
    async def reinforce_engram(self, engram_id: str, boost: float) -> Optional[Engram]:
        """Raise signal by ``boost`` (capped at MAX_SIGNAL) and record an access."""

    @abstractmethod
    async def decay_engram(self, engram_id: str, half_life_days: float, now: datetime,
                           min_delta: float) -> Optional[Engram]:
        """
        Decay the stored signal up to ``now`` and stamp ``decayed_at``.

        The new signal must be computed from the engram as currently stored,
        never from a copy read earlier. Returns the updated engram, or None
        when the id is unknown or the change is below ``min_delta``.
        """

    # Synapses

    @abstractmethod
    async def get_synapse(self, source_id: str, target_id: str) -> Optional[Synapse]:
        ...

    @abstractmethod
    async def save_synapse(self, synapse: Synapse) -> Synapse:
        """Insert or replace the edge keyed by (source_id, target_id)."""

    @abstractmethod
    async def get_synapses_from(self, engram_id: str) -> List[Synapse]:
        """Outgoing edges of an engram in a stable order."""

    # Maintenance

    @abstractmethod
    async def get_stats(self) -> Dict[str, int]:
        ...

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        ...

    async def close(self) -> None:
        """Release backend resources. Nothing to do by default."""
