"""End-to-end tests for ingestion, retrieval and maintenance through MemorySystem."""

import asyncio

import pytest

from conftest import StubCompletion, StubEmbedder, fixed_clock
from neurostore.config import NeuroStoreConfig
from neurostore.core.memory.memory_system import MemorySystem
from neurostore.core.models import Strand
from neurostore.store.in_memory import InMemoryStore
from neurostore.utils.exceptions import IngestionError, NotFoundError, ProviderError, ValidationError
from neurostore.utils.scoring import compute_hash

WORKS = "Alice works at Acme."
PIZZA = "Alice likes pizza."
QUERY = "What does Alice do"


def one_hot(index, size=4):
    return [1.0 if i == index else 0.0 for i in range(size)]


def build(store=None, vectors=None, completion=None, fail_on=(), config=None, default=(0.0, 0.0, 1.0, 0.0)):
    store = store or InMemoryStore()
    embedder = StubEmbedder(vectors or {}, default=default, fail_on=fail_on)
    return MemorySystem(store, embedder, completion or StubCompletion(), config or NeuroStoreConfig(),
                        clock=fixed_clock)


async def test_end_to_end_synapse_expansion_surfaces_co_ingested_fact():
    vectors = {
        WORKS: [1.0, 0.0, 0.0, 0.0],
        PIZZA: [0.0, 0.0, 0.0, 1.0],
        QUERY: [1.0, 0.1, 0.0, 0.0],
    }
    system = build(vectors=vectors)

    result = await system.add_memory({"owner_id": "alice", "content": f"{PIZZA} {WORKS}"})

    assert [o.fact for o in result.outcomes] == [PIZZA, WORKS]
    assert result.created_count == 2
    pizza_id, works_id = (e.id for e in result.engrams)
    assert (await system.store.get_synapse(pizza_id, works_id)).weight == 0.5
    assert (await system.store.get_synapse(works_id, pizza_id)).weight == 0.5
    assert (await system.get_stats()) == {"engrams": 2, "synapses": 2}

    # unrelated memories that outrank the pizza fact on vector score and fill the seed slots
    for i in range(4):
        content = f"filler note {i}"
        await system.store.create_engram({
            "owner_id": "alice", "content": content, "content_hash": compute_hash(content),
            "embedding": [0.2, 1.0, 0.0, 0.0],
        })

    found = await system.search({"owner_id": "alice", "query": QUERY})
    await system.drain()

    by_content = {h.engram["content"]: h for h in found.hits}
    assert found.hits[0].engram["content"] == WORKS
    assert by_content[WORKS].trace.synapse_boost == 0.0
    assert by_content[PIZZA].trace.synapse_boost == pytest.approx(0.15 * 0.5 * 0.8)


async def test_identical_content_reinforces_instead_of_duplicating():
    system = build()
    first = await system.add_memory({"owner_id": "alice", "content": WORKS})
    original = first.engrams[0]

    second = await system.add_memory({"owner_id": "alice", "content": WORKS})

    outcome = second.outcomes[0]
    assert not outcome.created
    assert outcome.similarity == 1.0
    assert outcome.engram.id == original.id
    stored = await system.store.get_engram(original.id)
    assert stored.signal == pytest.approx(original.signal + 0.1)
    assert stored.access_count == original.access_count + 1
    assert (await system.get_stats())["engrams"] == 1


async def test_paraphrase_reinforces_existing_engram():
    paraphrase = "Alice is employed by Acme."
    system = build(vectors={WORKS: [1.0, 0.0, 0.0, 0.0], paraphrase: [1.0, 0.05, 0.0, 0.0]})
    await system.add_memory({"owner_id": "alice", "content": WORKS})

    result = await system.add_memory({"owner_id": "alice", "content": paraphrase})

    assert result.created_count == 0
    assert result.outcomes[0].similarity > 0.99
    assert result.engrams[0].content == WORKS


async def test_repeated_fact_in_one_call_is_not_self_linked():
    system = build()
    result = await system.add_memory({"owner_id": "alice", "content": "Same fact. Same fact."})
    assert [o.created for o in result.outcomes] == [True, False]
    assert await system.get_stats() == {"engrams": 1, "synapses": 0}


async def test_explicit_input_fields_are_stored():
    completion = StubCompletion(strand="factual", temporal_facts=[
        {"entity": "speaker", "attribute": "phone", "value": "iPhone"},
    ])
    system = build(completion=completion)

    result = await system.add_memory({
        "owner_id": "alice",
        "content": "I switched to iPhone.",
        "strand": "preferential",
        "tags": ["devices"],
        "metadata": {"source": "chat"},
        "signal": 0.9,
        "pulse_rate": 1.5,
    })

    engram = result.engrams[0]
    assert result.strand == Strand.PREFERENTIAL
    assert engram.strand == Strand.PREFERENTIAL
    assert engram.tags == ["devices"]
    assert engram.metadata == {"source": "chat"}
    assert engram.signal == 0.9
    assert engram.pulse_rate == 1.5
    assert engram.content_hash == compute_hash("I switched to iPhone.")
    assert result.temporal_facts[0].attribute == "phone"


async def test_extracted_strand_used_when_not_given():
    system = build(completion=StubCompletion(strand="experiential"))
    result = await system.add_memory({"owner_id": "alice", "content": "We hiked Mount Tam."})
    assert result.engrams[0].strand == Strand.EXPERIENTIAL


@pytest.mark.parametrize("payload", [
    {"owner_id": "alice", "content": "   "},
    {"owner_id": "", "content": "fact"},
    {"content": "fact"},
    {"owner_id": "alice", "content": "fact", "signal": 3.0},
])
async def test_malformed_input_is_rejected(payload):
    with pytest.raises(ValidationError):
        await build().add_memory(payload)


async def test_partial_failure_keeps_earlier_facts():
    system = build(fail_on=["Second fact."])

    with pytest.raises(IngestionError) as excinfo:
        await system.add_memory({"owner_id": "alice", "content": "First fact. Second fact. Third fact."})

    error = excinfo.value
    assert error.failed_fact == "Second fact."
    assert [o.fact for o in error.result.outcomes] == ["First fact."]
    assert isinstance(error.__cause__, ProviderError)
    # no rollback: the first fact stays, nothing after the failure was attempted
    assert await system.get_stats() == {"engrams": 1, "synapses": 0}
    assert "Third fact." not in system.embedder.calls


class TimingOutEmbedder(StubEmbedder):
    async def embed(self, text):
        if text == "Second fact.":
            raise TimeoutError("backend timed out")
        return await super().embed(text)


async def test_partial_failure_wraps_foreign_errors():
    embedder = TimingOutEmbedder({"First fact.": one_hot(0)})
    system = MemorySystem(InMemoryStore(), embedder, StubCompletion(), NeuroStoreConfig(), clock=fixed_clock)

    with pytest.raises(IngestionError) as excinfo:
        await system.add_memory({"owner_id": "alice", "content": "First fact. Second fact."})

    assert isinstance(excinfo.value.__cause__, TimeoutError)
    assert excinfo.value.failed_fact == "Second fact."
    assert [o.fact for o in excinfo.value.result.outcomes] == ["First fact."]


class FailingLinkStore(InMemoryStore):
    async def save_synapse(self, synapse):
        raise RuntimeError("edge collection offline")


async def test_linking_failure_reports_stored_facts():
    system = build(store=FailingLinkStore(), vectors={PIZZA: one_hot(3), WORKS: one_hot(0)})

    with pytest.raises(IngestionError) as excinfo:
        await system.add_memory({"owner_id": "alice", "content": f"{PIZZA} {WORKS}"})

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert excinfo.value.result.created_count == 2


async def test_update_can_clear_pulse_rate_only():
    system = build()
    engram = (await system.add_memory({"owner_id": "alice", "content": WORKS, "pulse_rate": 1.5})).engrams[0]

    cleared = await system.update_engram(engram.id, {"pulse_rate": None})

    assert cleared.pulse_rate is None
    assert cleared.content == WORKS
    with pytest.raises(ValidationError):
        await system.update_engram(engram.id, {"content": None})


class SlowCreateStore(InMemoryStore):
    async def create_engram(self, fields):
        await asyncio.sleep(0.01)
        return await super().create_engram(fields)


async def test_concurrent_ingestion_can_store_duplicates():
    # no cross-request locking: both calls pass the duplicate check before either commits
    system = build(store=SlowCreateStore())
    payload = {"owner_id": "alice", "content": WORKS}

    await asyncio.gather(system.add_memory(payload), system.add_memory(payload))

    assert (await system.get_stats())["engrams"] == 2


async def test_search_uses_configured_default_limit():
    config = NeuroStoreConfig()
    config.retrieval.default_limit = 2
    vectors = {f"Fact number {i}.": one_hot(i, size=8) for i in range(5)}
    system = build(config=config, vectors=vectors, default=[1.0] * 8)
    for i in range(5):
        await system.add_memory({"owner_id": "alice", "content": f"Fact number {i}."})

    result = await system.search({"owner_id": "alice", "query": "fact"})
    await system.drain()

    assert result.total == 2


async def test_search_rejects_malformed_query():
    with pytest.raises(ValidationError):
        await build().search({"owner_id": "alice", "query": "x", "limit": 0})


async def test_get_records_an_access():
    system = build()
    engram = (await system.add_memory({"owner_id": "alice", "content": WORKS})).engrams[0]

    fetched = await system.get_engram(engram.id)

    assert fetched.access_count == 1


async def test_update_content_re_embeds_and_rehashes():
    system = build(vectors={"New content.": [0.0, 1.0, 0.0, 0.0]})
    engram = (await system.add_memory({"owner_id": "alice", "content": WORKS})).engrams[0]

    updated = await system.update_engram(engram.id, {"content": "New content.", "tags": ["edited"]})

    assert updated.content == "New content."
    assert updated.content_hash == compute_hash("New content.")
    assert updated.embedding == [0.0, 1.0, 0.0, 0.0]
    assert updated.tags == ["edited"]
    assert updated.updated_at >= engram.updated_at


async def test_update_without_content_does_not_embed():
    system = build()
    engram = (await system.add_memory({"owner_id": "alice", "content": WORKS})).engrams[0]
    calls = len(system.embedder.calls)

    updated = await system.update_engram(engram.id, {"strand": "relational"})

    assert updated.strand == Strand.RELATIONAL
    assert updated.content_hash == engram.content_hash
    assert len(system.embedder.calls) == calls


async def test_delete_removes_engram_and_synapses():
    system = build(vectors={PIZZA: one_hot(3), WORKS: one_hot(0)})
    result = await system.add_memory({"owner_id": "alice", "content": f"{PIZZA} {WORKS}"})

    assert await system.delete_engram(result.engrams[0].id) is True

    assert await system.get_stats() == {"engrams": 1, "synapses": 0}


@pytest.mark.parametrize("operation", [
    lambda s: s.get_engram("missing"),
    lambda s: s.update_engram("missing", {"tags": ["x"]}),
    lambda s: s.delete_engram("missing"),
    lambda s: s.reinforce_engram("missing"),
])
async def test_unknown_ids_raise_not_found(operation):
    with pytest.raises(NotFoundError):
        await operation(build())


async def test_list_engrams_filters_and_pages():
    vectors = {"One.": one_hot(0), "Two.": one_hot(1), "Three.": one_hot(2), "Note.": one_hot(3)}
    system = build(vectors=vectors, completion=StubCompletion(strand="factual"))
    await system.add_memory({"owner_id": "alice", "content": "One. Two. Three."})
    await system.add_memory({"owner_id": "alice", "content": "Note.", "strand": "procedural"})

    page = await system.list_engrams("alice", limit=2, offset=1, strand="FACTUAL")

    assert page.total == 3
    assert [e.content for e in page.engrams] == ["Two.", "Three."]
    with pytest.raises(ValidationError):
        await system.list_engrams("alice", strand="unknown")


async def test_reinforce_uses_default_boost():
    system = build()
    engram = (await system.add_memory({"owner_id": "alice", "content": WORKS})).engrams[0]
    reinforced = await system.reinforce_engram(engram.id)
    assert reinforced.signal == pytest.approx(engram.signal + 0.1)


async def test_run_decay_and_health_check():
    system = build()
    await system.add_memory({"owner_id": "alice", "content": WORKS})

    report = await system.run_decay("alice")
    health = await system.health_check()

    assert report.examined == 1
    assert health == {"ok": True, "store": {"ok": True, "type": "memory"}, "embedder": "stub", "completion": "stub"}
    stats = await system.get_decay_statistics("alice")
    assert stats["total"] == 1
