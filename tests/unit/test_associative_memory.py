"""Tests for synapse formation and graph expansion."""

import pytest

from neurostore.core.memory.associative_memory import (
    combine_weights,
    form_synapse,
    synapses_from,
    traverse_synapses,
)
from neurostore.core.models import Synapse


async def link(store, source, target, weight):
    await store.save_synapse(Synapse(source_id=source, target_id=target, owner_id="alice", weight=weight))


async def test_form_synapse_registers_both_directions(store):
    forward, backward = await form_synapse(store, "a", "b", "alice", weight=0.5)

    assert (forward.source_id, forward.target_id, forward.weight) == ("a", "b", 0.5)
    assert (backward.source_id, backward.target_id, backward.weight) == ("b", "a", 0.5)
    assert await synapses_from(store, "a") == [("b", 0.5)]
    assert await synapses_from(store, "b") == [("a", 0.5)]


async def test_strengthening_keeps_the_maximum(store):
    await form_synapse(store, "a", "b", "alice", weight=0.5)
    await form_synapse(store, "a", "b", "alice", weight=0.3)
    assert (await store.get_synapse("a", "b")).weight == 0.5

    await form_synapse(store, "b", "a", "alice", weight=0.8)
    assert (await store.get_synapse("a", "b")).weight == 0.8
    assert (await store.get_synapse("b", "a")).weight == 0.8
    assert (await store.get_stats())["synapses"] == 2


async def test_reinforce_mode_grows_without_exceeding_one(store):
    await form_synapse(store, "a", "b", "alice", weight=0.5, combine_mode="reinforce")
    await form_synapse(store, "a", "b", "alice", weight=0.5, combine_mode="reinforce")
    assert (await store.get_synapse("a", "b")).weight == pytest.approx(0.75)

    for _ in range(20):
        await form_synapse(store, "a", "b", "alice", weight=0.9, combine_mode="reinforce")
    assert (await store.get_synapse("a", "b")).weight <= 1.0


def test_combine_weights():
    assert combine_weights(0.4, 0.6) == 0.6
    assert combine_weights(0.9, 1.0, "reinforce") == 1.0
    with pytest.raises(ValueError):
        combine_weights(0.1, 0.2, "sum")


async def test_self_link_rejected(store):
    with pytest.raises(ValueError):
        await form_synapse(store, "a", "a", "alice")


async def test_chain_expansion_decays_per_hop(store):
    await link(store, "n1", "n2", 1.0)
    await link(store, "n2", "n3", 1.0)

    assert await traverse_synapses(store, ["n1"], depth=2, decay=0.8) == pytest.approx({"n2": 0.8, "n3": 0.64})
    assert await traverse_synapses(store, ["n1"], depth=1, decay=0.8) == pytest.approx({"n2": 0.8})
    assert await traverse_synapses(store, ["n1"], depth=0, decay=0.8) == {}


async def test_seeds_are_not_boosted(store):
    await form_synapse(store, "a", "b", "alice", weight=0.5)
    boosts = await traverse_synapses(store, ["a", "b"], depth=2, decay=0.8)
    assert boosts == {}


async def test_same_layer_parents_keep_the_larger_boost(store):
    await link(store, "s1", "x", 0.3)
    await link(store, "s2", "x", 0.9)
    boosts = await traverse_synapses(store, ["s1", "s2"], depth=1, decay=0.8)
    assert boosts["x"] == pytest.approx(0.72)


async def test_earlier_layer_wins_over_stronger_later_path(store):
    await link(store, "s", "x", 0.1)
    await link(store, "s", "y", 1.0)
    await link(store, "y", "x", 1.0)
    boosts = await traverse_synapses(store, ["s"], depth=2, decay=0.8)
    # via y the boost would be 0.64, but x was already reached in the first hop
    assert boosts == pytest.approx({"x": 0.08, "y": 0.8})
