"""Tests for the in-process store."""

import pytest

from neurostore.core.models import MAX_SIGNAL, Strand, Synapse
from neurostore.utils.scoring import compute_hash


async def _add(store, content, embedding=(1.0, 0.0), owner="alice", strand=Strand.GENERAL):
    return await store.create_engram({
        "owner_id": owner,
        "content": content,
        "content_hash": compute_hash(content),
        "embedding": list(embedding),
        "strand": strand,
    })


async def test_returned_engrams_are_copies(store):
    engram = await _add(store, "fact")
    engram.signal = 0.99
    assert (await store.get_engram(engram.id)).signal == 0.5


async def test_update_is_partial_and_stamps_updated_at(store):
    engram = await _add(store, "fact")
    await store.update_engram(engram.id, {"pulse_rate": 2.0})
    updated = await store.update_engram(engram.id, {"tags": ["t"], "pulse_rate": None})
    assert updated.tags == ["t"]
    assert updated.pulse_rate is None
    assert updated.content == "fact"
    assert updated.updated_at >= engram.updated_at
    assert await store.update_engram("missing", {"tags": []}) is None


async def test_delete_removes_touching_synapses(store):
    a = await _add(store, "a")
    b = await _add(store, "b")
    await store.save_synapse(Synapse(source_id=a.id, target_id=b.id, owner_id="alice", weight=0.5))
    await store.save_synapse(Synapse(source_id=b.id, target_id=a.id, owner_id="alice", weight=0.5))

    assert await store.delete_engram(a.id) is True
    assert await store.delete_engram(a.id) is False
    assert await store.get_stats() == {"engrams": 1, "synapses": 0}


async def test_vector_search_orders_and_filters(store):
    near = await _add(store, "near", (1.0, 0.1))
    far = await _add(store, "far", (0.1, 1.0))
    await _add(store, "other owner", (1.0, 0.0), owner="bob")
    await _add(store, "wrong dims", (1.0, 0.0, 0.0))
    await _add(store, "procedure", (1.0, 0.0), strand=Strand.PROCEDURAL)

    results = await store.vector_search("alice", [1.0, 0.0], limit=10, strand=Strand.GENERAL)

    assert [e.id for e, _ in results] == [near.id, far.id]
    assert results[0][1] > results[1][1]
    assert len(await store.vector_search("alice", [1.0, 0.0], limit=1)) == 1


async def test_list_engrams_pages_in_insertion_order(store):
    ids = [(await _add(store, f"fact {i}")).id for i in range(5)]
    page = await store.list_engrams("alice", limit=2, offset=2)
    assert [e.id for e in page.engrams] == ids[2:4]
    assert page.total == 5


async def test_find_by_content_hash(store):
    engram = await _add(store, "fact")
    assert (await store.find_by_content_hash("alice", compute_hash("fact"))).id == engram.id
    assert await store.find_by_content_hash("bob", compute_hash("fact")) is None


async def test_reinforce_clamps_and_counts(store):
    engram = await _add(store, "fact")
    reinforced = await store.reinforce_engram(engram.id, 5.0)
    assert reinforced.signal == MAX_SIGNAL
    assert reinforced.access_count == 1
    weakened = await store.reinforce_engram(engram.id, -5.0)
    assert weakened.signal == 0.0
    assert await store.reinforce_engram("missing", 0.1) is None


async def test_record_access_ignores_unknown_ids(store):
    engram = await _add(store, "fact")
    await store.record_access(engram.id)
    await store.record_access("missing")
    assert (await store.get_engram(engram.id)).access_count == 1


async def test_synapses_from_keep_insertion_order(store):
    for target in ("x", "y", "z"):
        await store.save_synapse(Synapse(source_id="s", target_id=target, owner_id="alice", weight=0.5))
    await store.save_synapse(Synapse(source_id="s", target_id="x", owner_id="alice", weight=0.9))

    synapses = await store.get_synapses_from("s")

    assert [(s.target_id, s.weight) for s in synapses] == [("x", 0.9), ("y", 0.5), ("z", 0.5)]


async def test_health_check(store):
    assert await store.health_check() == {"ok": True, "type": "memory"}
