"""
Pydantic models for the neurostore package.

This module contains the data models used throughout the memory engine,
using Pydantic for validation and serialization.

Documentation references:
- Pydantic: https://docs.pydantic.dev/latest/
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

MAX_SIGNAL = 1.0
DEFAULT_SIGNAL = 0.5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_between(later: datetime, earlier: datetime) -> float:
    """Elapsed days from ``earlier`` to ``later``, never negative."""
    seconds = (ensure_utc(later) - ensure_utc(earlier)).total_seconds()
    return max(0.0, seconds / 86400.0)


def new_id() -> str:
    return uuid.uuid4().hex


class Strand(str, Enum):
    """Classification of a memory's nature."""
    FACTUAL = "factual"
    EXPERIENTIAL = "experiential"
    PROCEDURAL = "procedural"
    PREFERENTIAL = "preferential"
    RELATIONAL = "relational"
    GENERAL = "general"

    @classmethod
    def get_case_insensitive(cls, value: Any) -> Optional['Strand']:
        """Get enum member by case-insensitive value, or None if unrecognized"""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        value = value.strip().lower()
        for member in cls.__members__.values():
            if member.value == value:
                return member
        return None


class Engram(BaseModel):
    """A single stored atomic memory."""
    id: str = Field(default_factory=new_id, description="Unique identifier")
    owner_id: str = Field(..., min_length=1, description="Tenant/user partition key")
    content: str = Field(..., description="The memory text")
    content_hash: str = Field(..., description="SHA-256 of the content")
    embedding: List[float] = Field(default_factory=list, description="Vector embedding of the content")
    strand: Strand = Field(Strand.GENERAL, description="Memory classification")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Free-form metadata")
    signal: float = Field(DEFAULT_SIGNAL, ge=0.0, description="Reinforcement strength")
    access_count: int = Field(0, ge=0, description="Number of recorded accesses")
    pulse_rate: Optional[float] = Field(None, ge=0.0, description="Reinforcement sensitivity hint")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_accessed_at: datetime = Field(default_factory=utcnow)
    decayed_at: Optional[datetime] = Field(None, description="When decay was last applied")

    def public_view(self) -> Dict[str, Any]:
        """Fields exposed to callers; the embedding and bookkeeping stay internal."""
        return self.model_dump(exclude={"embedding", "content_hash", "decayed_at"})


def decayed_signal(engram: Engram, now: datetime, half_life_days: float) -> float:
    """Signal after decaying from the later of last access and last decay until ``now``."""
    reference = ensure_utc(engram.last_accessed_at)
    if engram.decayed_at is not None and ensure_utc(engram.decayed_at) > reference:
        reference = ensure_utc(engram.decayed_at)
    elapsed = days_between(now, reference)
    return max(0.0, engram.signal * 0.5 ** (elapsed / half_life_days))


class Synapse(BaseModel):
    """A directed, weighted association between two engrams of one owner."""
    source_id: str
    target_id: str
    owner_id: str
    weight: float = Field(..., gt=0.0, le=1.0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class TemporalFact(BaseModel):
    """Entity/attribute/value triple for something that changes over time."""
    entity: str
    attribute: str
    value: str


class ExtractionResult(BaseModel):
    facts: List[str] = Field(..., min_length=1)
    strand: Strand = Strand.GENERAL
    temporal_facts: List[TemporalFact] = Field(default_factory=list)


class DuplicateCheck(BaseModel):
    is_duplicate: bool
    existing: Optional[Engram] = None
    similarity: Optional[float] = None


class EngramCreateInput(BaseModel):
    """Input for ingesting a piece of free text."""
    owner_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    strand: Optional[Strand] = None
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    signal: Optional[float] = Field(None, ge=0.0, le=MAX_SIGNAL)
    pulse_rate: Optional[float] = Field(None, ge=0.0)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError("Content cannot be blank")
        return v


class EngramUpdateInput(BaseModel):
    """
    Partial update of an engram. Omitted fields are left alone.

    Only ``pulse_rate`` may be cleared by passing an explicit None.
    """
    content: Optional[str] = Field(None, min_length=1)
    strand: Optional[Strand] = None
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None
    signal: Optional[float] = Field(None, ge=0.0, le=MAX_SIGNAL)
    pulse_rate: Optional[float] = Field(None, ge=0.0)

    @field_validator("content", "strand", "tags", "metadata", "signal", mode="before")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be cleared")
        return v


class SearchQuery(BaseModel):
    owner_id: str = Field(..., min_length=1)
    query: str = Field(..., min_length=1)
    limit: int = Field(10, ge=1, le=100)
    strand: Optional[Strand] = None
    expand_synapses: bool = True


class RetrievalTrace(BaseModel):
    """Weighted score components behind one hit."""
    vector_score: float
    keyword_score: float
    recency_boost: float
    signal_boost: float
    synapse_boost: float
    final_score: float


class SearchHit(BaseModel):
    engram: Dict[str, Any]
    trace: RetrievalTrace


class SearchResult(BaseModel):
    hits: List[SearchHit] = Field(default_factory=list)
    total: int = 0
    query: str
    took_ms: float = Field(0.0, description="Elapsed time in milliseconds")


class FactOutcome(BaseModel):
    """What happened to one extracted fact during ingestion."""
    fact: str
    engram: Engram
    created: bool
    similarity: Optional[float] = None


class IngestionResult(BaseModel):
    strand: Strand = Strand.GENERAL
    outcomes: List[FactOutcome] = Field(default_factory=list)
    temporal_facts: List[TemporalFact] = Field(default_factory=list)

    @property
    def engrams(self) -> List[Engram]:
        return [o.engram for o in self.outcomes]

    @property
    def created_count(self) -> int:
        return sum(1 for o in self.outcomes if o.created)


class DecayReport(BaseModel):
    owner_id: str
    affected: int = 0
    examined: int = 0


class EngramPage(BaseModel):
    engrams: List[Engram] = Field(default_factory=list)
    total: int = 0
