#!/usr/bin/env python3
"""
Memory Decay Module for the memory engine

Reinforcement raises an engram's signal whenever it is used; decay lowers it
as time passes without use. Neither ever deletes an engram: a signal near
zero only pushes the memory down the ranking.

Decay is exponential with a configurable half-life, measured from the later
of the last access and the last applied decay. Each applied decay stamps
``decayed_at``, so running it twice over an interval gives the same result
as running it once.

The store computes each new signal from the value it currently holds, so a
reinforcement or access recorded while decay runs is never overwritten.

Documentation references:
- Exponential decay: https://en.wikipedia.org/wiki/Exponential_decay
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from neurostore.core.models import DecayReport, Engram, utcnow
from neurostore.store.base import DataStore
from neurostore.utils.exceptions import NotFoundError

STRONG_THRESHOLD = 0.6
DORMANT_THRESHOLD = 0.1


def effective_boost(engram: Engram, boost: float) -> float:
    """Scale ``boost`` by the engram's pulse rate, when it has one."""
    if engram.pulse_rate is None:
        return boost
    return boost * engram.pulse_rate


async def reinforce_access(store: DataStore, engram_id: str, boost: float = 0.1) -> Engram:
    """
    Strengthen an engram and record the access.

    Args:
        store: Data store holding the engram
        engram_id: Engram to reinforce
        boost: Amount added to the signal before clamping

    Returns:
        The reinforced engram

    Raises:
        NotFoundError: If the engram does not exist
    """
    engram = await store.get_engram(engram_id)
    if engram is None:
        raise NotFoundError(f"Engram not found: {engram_id}")

    reinforced = await store.reinforce_engram(engram_id, effective_boost(engram, boost))
    if reinforced is None:
        raise NotFoundError(f"Engram not found: {engram_id}")

    logger.debug(f"Reinforced {engram_id}: signal {engram.signal:.3f} -> {reinforced.signal:.3f}")
    return reinforced


async def _iter_owned(store: DataStore, owner_id: str, page_size: int) -> List[Engram]:
    engrams: List[Engram] = []
    offset = 0
    while True:
        page = await store.list_engrams(owner_id, limit=page_size, offset=offset)
        engrams.extend(page.engrams)
        offset += len(page.engrams)
        if not page.engrams or offset >= page.total:
            return engrams


async def run_decay(
    store: DataStore,
    owner_id: str,
    half_life_days: float = 30.0,
    min_delta: float = 1e-4,
    page_size: int = 500,
    clock: Optional[Callable[[], datetime]] = None
) -> DecayReport:
    """
    Apply time-based decay to every engram of ``owner_id``.

    Args:
        store: Data store holding the engrams
        owner_id: Owner whose engrams decay
        half_life_days: Days for an untouched signal to halve
        min_delta: Smaller changes are neither written nor counted
        page_size: Engrams fetched per listing call
        clock: Source of the current time

    Returns:
        DecayReport with the number of engrams examined and changed
    """
    if half_life_days <= 0:
        raise ValueError("half_life_days must be positive")

    now = (clock or utcnow)()
    engrams = await _iter_owned(store, owner_id, page_size)
    affected = 0

    # the listing only supplies ids; each engram decays from its stored state
    for engram in engrams:
        if await store.decay_engram(engram.id, half_life_days, now, min_delta) is not None:
            affected += 1

    logger.info(f"Decay for owner {owner_id}: {affected}/{len(engrams)} engrams changed")
    return DecayReport(owner_id=owner_id, affected=affected, examined=len(engrams))


async def get_decay_statistics(
    store: DataStore,
    owner_id: str,
    strong_threshold: float = STRONG_THRESHOLD,
    dormant_threshold: float = DORMANT_THRESHOLD,
    page_size: int = 500
) -> Dict[str, Any]:
    """
    Bucket an owner's engrams by signal strength.

    Buckets:
        strong: signal >= strong_threshold
        fading: dormant_threshold <= signal < strong_threshold
        dormant: signal < dormant_threshold

    Returns:
        Dictionary with total, per-bucket counts and percentages, and average signal
    """
    engrams = await _iter_owned(store, owner_id, page_size)
    total = len(engrams)
    counts = {"strong": 0, "fading": 0, "dormant": 0}
    for engram in engrams:
        if engram.signal >= strong_threshold:
            counts["strong"] += 1
        elif engram.signal >= dormant_threshold:
            counts["fading"] += 1
        else:
            counts["dormant"] += 1

    return {
        "owner_id": owner_id,
        "total": total,
        "categories": [
            {
                "category": name,
                "count": count,
                "percentage": round(count * 100.0 / total) if total else 0
            }
            for name, count in counts.items()
        ],
        "average_signal": sum(e.signal for e in engrams) / total if total else 0.0,
    }
