#!/usr/bin/env python3
"""
Associative Memory Module for the memory engine

Synapses link engrams that were learned together so retrieval can surface
related memories the query itself does not match. Co-occurrence links are
registered in both directions; strengthening an existing link combines the
old and new weight without exceeding 1.0.

Documentation references:
- Breadth-first search: https://en.wikipedia.org/wiki/Breadth-first_search
"""

from typing import Dict, Iterable, List, Tuple

from loguru import logger

from neurostore.core.models import Synapse, utcnow
from neurostore.store.base import DataStore

COMBINE_MODES = ("max", "reinforce")


def combine_weights(current: float, new: float, mode: str = "max") -> float:
    """
    Combine an existing synapse weight with a newly observed one.

    Args:
        current: Weight already stored
        new: Weight of the new observation
        mode: "max" keeps the stronger; "reinforce" uses 1 - (1 - a)(1 - b)

    Returns:
        Combined weight in (0, 1]
    """
    if mode == "max":
        combined = max(current, new)
    elif mode == "reinforce":
        combined = 1.0 - (1.0 - current) * (1.0 - new)
    else:
        raise ValueError(f"Unknown combine mode: {mode}. Valid modes: {', '.join(COMBINE_MODES)}")
    return min(1.0, combined)


async def _upsert_synapse(
    store: DataStore,
    source_id: str,
    target_id: str,
    owner_id: str,
    weight: float,
    combine_mode: str
) -> Synapse:
    existing = await store.get_synapse(source_id, target_id)
    if existing is None:
        synapse = Synapse(source_id=source_id, target_id=target_id, owner_id=owner_id, weight=min(1.0, weight))
    else:
        synapse = existing.model_copy(update={
            "weight": combine_weights(existing.weight, weight, combine_mode),
            "updated_at": utcnow(),
        })
    return await store.save_synapse(synapse)


async def form_synapse(
    store: DataStore,
    id_a: str,
    id_b: str,
    owner_id: str,
    weight: float = 0.5,
    combine_mode: str = "max"
) -> Tuple[Synapse, Synapse]:
    """
    Create or strengthen the link between two engrams, in both directions.

    Args:
        store: Data store holding the synapses
        id_a: First engram id
        id_b: Second engram id
        owner_id: Owner of both engrams
        weight: Weight of this co-occurrence
        combine_mode: How to merge with an existing weight

    Returns:
        The (a -> b, b -> a) synapses as stored
    """
    if id_a == id_b:
        raise ValueError("Cannot form a synapse from an engram to itself")

    forward = await _upsert_synapse(store, id_a, id_b, owner_id, weight, combine_mode)
    backward = await _upsert_synapse(store, id_b, id_a, owner_id, weight, combine_mode)
    logger.debug(f"Synapse {id_a} <-> {id_b} weight={forward.weight:.3f}")
    return forward, backward


async def synapses_from(store: DataStore, engram_id: str) -> List[Tuple[str, float]]:
    """Outgoing edges of ``engram_id`` as (target_id, weight), in store order."""
    return [(s.target_id, s.weight) for s in await store.get_synapses_from(engram_id)]


async def traverse_synapses(
    store: DataStore,
    seed_ids: Iterable[str],
    depth: int = 2,
    decay: float = 0.8
) -> Dict[str, float]:
    """
    Layered breadth-first expansion from seed engrams.

    Seeds start at boost 1.0 and are never assigned a boost themselves. Each hop
    multiplies the parent boost by the edge weight and ``decay``. A node is
    visited once: when several parents in the same layer reach it the largest
    boost wins, but a node first reached in an earlier layer keeps that boost
    even if a later, stronger path exists.

    Args:
        store: Data store holding the synapses
        seed_ids: Starting engrams
        depth: Maximum number of hops
        decay: Per-hop attenuation

    Returns:
        Mapping of reached (non-seed) engram id to boost
    """
    seeds = list(dict.fromkeys(seed_ids))
    visited = set(seeds)
    boosts: Dict[str, float] = {}
    frontier: List[Tuple[str, float]] = [(seed, 1.0) for seed in seeds]

    for hop in range(depth):
        if not frontier:
            break
        layer: Dict[str, float] = {}
        for node_id, parent_boost in frontier:
            for target_id, weight in await synapses_from(store, node_id):
                if target_id in visited:
                    continue
                boost = parent_boost * weight * decay
                if boost > layer.get(target_id, 0.0):
                    layer[target_id] = boost
        visited.update(layer)
        boosts.update(layer)
        frontier = list(layer.items())
        logger.debug(f"Synapse expansion hop {hop + 1}: reached {len(layer)} engrams")

    return boosts
