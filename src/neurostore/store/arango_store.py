#!/usr/bin/env python3
"""
ArangoDB-backed store.

Engrams live in a document collection and synapses in an edge collection.
The python-arango driver is synchronous, so every call is pushed onto a
worker thread with ``asyncio.to_thread`` to keep the event loop free.

Documentation references:
- ArangoDB Python Driver: https://python-arango.readthedocs.io/
- ArangoDB AQL: https://www.arangodb.com/docs/stable/aql/
- asyncio.to_thread: https://docs.python.org/3/library/asyncio-task.html#asyncio.to_thread
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from arango import ArangoClient
from arango.exceptions import ArangoError, DocumentRevisionError
from loguru import logger
from pydantic import TypeAdapter

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
from neurostore.utils.exceptions import StoreError

DEFAULT_CONFIG = {
    "hosts": "http://localhost:8529",
    "db_name": "neurostore",
    "username": "root",
    "password": "openSesame",
    "engrams_collection": "engrams",
    "synapses_collection": "synapses",
}

_INTERNAL_KEYS = ("_key", "_id", "_rev", "_from", "_to")
DECAY_WRITE_ATTEMPTS = 3

_FIELDS_ADAPTER = TypeAdapter(Dict[str, Any])


def _to_document(engram: Engram) -> Dict[str, Any]:
    doc = engram.model_dump(mode="json")
    doc["_key"] = doc.pop("id")
    return doc


def _from_document(doc: Dict[str, Any]) -> Engram:
    data = {k: v for k, v in doc.items() if k not in _INTERNAL_KEYS}
    data["id"] = doc["_key"]
    return Engram(**data)


def _synapse_key(source_id: str, target_id: str) -> str:
    return f"{source_id}-{target_id}"


class ArangoStore(DataStore):
    """DataStore implementation on top of python-arango."""

    backend = "arango"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = DEFAULT_CONFIG.copy()
        if config:
            self.config.update({k: v for k, v in config.items() if v is not None})

        self.client = None
        self.db = None
        self.engrams = None
        self.synapses = None
        self.initialized = False
        self._init_lock = asyncio.Lock()

    async def _run(self, fn: Callable, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except (ArangoError, OSError) as e:
            logger.error(f"ArangoDB operation {getattr(fn, '__name__', fn)} failed: {e}")
            raise StoreError(f"ArangoDB operation failed: {e}", details=str(e)) from e

    async def _query(self, aql: str, bind_vars: Dict[str, Any]) -> List[Any]:
        await self.initialize()

        def execute():
            cursor = self.db.aql.execute(aql, bind_vars=bind_vars)
            return list(cursor)

        return await self._run(execute)

    async def initialize(self) -> None:
        """Connect, creating the database, collections and indexes when missing."""
        if self.initialized:
            return
        async with self._init_lock:
            if self.initialized:
                return
            await self._run(self._setup)
            self.initialized = True
            logger.info(f"Arango store initialized with database {self.config['db_name']}")

    def _setup(self) -> None:
        self.client = ArangoClient(hosts=self.config["hosts"])
        sys_db = self.client.db(
            "_system",
            username=self.config["username"],
            password=self.config["password"]
        )
        if not sys_db.has_database(self.config["db_name"]):
            sys_db.create_database(self.config["db_name"])
        self.db = self.client.db(
            self.config["db_name"],
            username=self.config["username"],
            password=self.config["password"]
        )

        engrams_name = self.config["engrams_collection"]
        if not self.db.has_collection(engrams_name):
            self.engrams = self.db.create_collection(engrams_name)
            self.engrams.add_index({"type": "persistent", "fields": ["owner_id", "content_hash"],
                                    "name": "owner_hash_index"})
            self.engrams.add_index({"type": "persistent", "fields": ["owner_id", "strand"],
                                    "name": "owner_strand_index"})
            self.engrams.add_index({"type": "persistent", "fields": ["last_accessed_at"],
                                    "name": "last_accessed_index"})
        else:
            self.engrams = self.db.collection(engrams_name)

        synapses_name = self.config["synapses_collection"]
        if not self.db.has_collection(synapses_name):
            self.synapses = self.db.create_collection(synapses_name, edge=True)
            self.synapses.add_index({"type": "persistent", "fields": ["owner_id"],
                                     "name": "owner_index"})
        else:
            self.synapses = self.db.collection(synapses_name)

    def _engram_handle(self, engram_id: str) -> str:
        return f"{self.config['engrams_collection']}/{engram_id}"

    # Engrams

    async def create_engram(self, fields: Dict[str, Any]) -> Engram:
        await self.initialize()
        engram = Engram(**fields)
        await self._run(self.engrams.insert, _to_document(engram))
        logger.debug(f"Stored engram {engram.id} for owner {engram.owner_id}")
        return engram

    async def get_engram(self, engram_id: str) -> Optional[Engram]:
        await self.initialize()
        doc = await self._run(self.engrams.get, engram_id)
        return _from_document(doc) if doc else None

    async def update_engram(self, engram_id: str, fields: Dict[str, Any]) -> Optional[Engram]:
        changes = _FIELDS_ADAPTER.dump_python(dict(fields), mode="json")
        changes.setdefault("updated_at", utcnow().isoformat())
        rows = await self._query(
            f"""
            FOR e IN {self.config['engrams_collection']}
                FILTER e._key == @key
                UPDATE e WITH @changes IN {self.config['engrams_collection']} OPTIONS {{ keepNull: true }}
                RETURN NEW
            """,
            {"key": engram_id, "changes": changes}
        )
        return _from_document(rows[0]) if rows else None

    async def delete_engram(self, engram_id: str) -> bool:
        await self.initialize()
        if not await self._run(self.engrams.has, engram_id):
            return False
        await self._query(
            f"""
            FOR s IN {self.config['synapses_collection']}
                FILTER s._from == @handle OR s._to == @handle
                REMOVE s IN {self.config['synapses_collection']}
            """,
            {"handle": self._engram_handle(engram_id)}
        )
        await self._run(self.engrams.delete, engram_id)
        return True

    async def list_engrams(self, owner_id: str, limit: int = 50, offset: int = 0,
                           strand: Optional[Strand] = None) -> EngramPage:
        strand_value = strand.value if strand else None
        rows = await self._query(
            f"""
            LET owned = (
                FOR e IN {self.config['engrams_collection']}
                    FILTER e.owner_id == @owner_id
                    FILTER @strand == null OR e.strand == @strand
                    SORT e.created_at, e._key
                    RETURN e
            )
            RETURN {{
                total: LENGTH(owned),
                engrams: SLICE(owned, @offset, @limit)
            }}
            """,
            {"owner_id": owner_id, "strand": strand_value, "offset": offset, "limit": limit}
        )
        result = rows[0] if rows else {"total": 0, "engrams": []}
        return EngramPage(
            engrams=[_from_document(doc) for doc in result["engrams"]],
            total=result["total"]
        )

    async def vector_search(self, owner_id: str, embedding: List[float], limit: int,
                            strand: Optional[Strand] = None) -> List[Tuple[Engram, float]]:
        strand_value = strand.value if strand else None
        rows = await self._query(
            f"""
            FOR e IN {self.config['engrams_collection']}
                FILTER e.owner_id == @owner_id
                FILTER @strand == null OR e.strand == @strand
                FILTER LENGTH(e.embedding) == LENGTH(@embedding)
                LET similarity = COSINE_SIMILARITY(e.embedding, @embedding)
                SORT similarity DESC
                LIMIT @limit
                RETURN {{ doc: e, score: similarity }}
            """,
            {"owner_id": owner_id, "strand": strand_value, "embedding": embedding, "limit": limit}
        )
        return [(_from_document(row["doc"]), float(row["score"] or 0.0)) for row in rows]

    async def find_by_content_hash(self, owner_id: str, content_hash: str) -> Optional[Engram]:
        rows = await self._query(
            f"""
            FOR e IN {self.config['engrams_collection']}
                FILTER e.owner_id == @owner_id AND e.content_hash == @content_hash
                SORT e.created_at
                LIMIT 1
                RETURN e
            """,
            {"owner_id": owner_id, "content_hash": content_hash}
        )
        return _from_document(rows[0]) if rows else None

    async def record_access(self, engram_id: str) -> None:
        await self._query(
            f"""
            FOR e IN {self.config['engrams_collection']}
                FILTER e._key == @key
                UPDATE e WITH {{
                    access_count: e.access_count + 1,
                    last_accessed_at: @now
                }} IN {self.config['engrams_collection']}
            """,
            {"key": engram_id, "now": utcnow().isoformat()}
        )

    async def reinforce_engram(self, engram_id: str, boost: float) -> Optional[Engram]:
        now = utcnow().isoformat()
        rows = await self._query(
            f"""
            FOR e IN {self.config['engrams_collection']}
                FILTER e._key == @key
                UPDATE e WITH {{
                    signal: MAX([0, MIN([@max_signal, e.signal + @boost])]),
                    access_count: e.access_count + 1,
                    last_accessed_at: @now,
                    updated_at: @now
                }} IN {self.config['engrams_collection']}
                RETURN NEW
            """,
            {"key": engram_id, "boost": boost, "max_signal": MAX_SIGNAL, "now": now}
        )
        return _from_document(rows[0]) if rows else None

    async def decay_engram(self, engram_id: str, half_life_days: float, now: datetime,
                           min_delta: float) -> Optional[Engram]:
        await self.initialize()

        def apply():
            # optimistic write: a revision conflict means another writer got in first, so re-read
            for attempt in range(1, DECAY_WRITE_ATTEMPTS + 1):
                doc = self.engrams.get(engram_id)
                if doc is None:
                    return None
                engram = _from_document(doc)
                new_signal = decayed_signal(engram, now, half_life_days)
                if engram.signal - new_signal < min_delta or new_signal == engram.signal:
                    return None
                try:
                    result = self.engrams.update(
                        {
                            "_key": engram_id,
                            "_rev": doc["_rev"],
                            "signal": new_signal,
                            "decayed_at": now.isoformat(),
                            "updated_at": utcnow().isoformat(),
                        },
                        check_rev=True,
                        return_new=True
                    )
                    return _from_document(result["new"])
                except DocumentRevisionError:
                    if attempt == DECAY_WRITE_ATTEMPTS:
                        raise
                    logger.debug(f"Engram {engram_id} changed during decay, retrying ({attempt})")

        return await self._run(apply)

    # Synapses

    async def get_synapse(self, source_id: str, target_id: str) -> Optional[Synapse]:
        await self.initialize()
        doc = await self._run(self.synapses.get, _synapse_key(source_id, target_id))
        return self._synapse_from_document(doc) if doc else None

    async def save_synapse(self, synapse: Synapse) -> Synapse:
        await self.initialize()
        doc = synapse.model_dump(mode="json")
        doc.update({
            "_key": _synapse_key(synapse.source_id, synapse.target_id),
            "_from": self._engram_handle(synapse.source_id),
            "_to": self._engram_handle(synapse.target_id),
        })
        await self._run(self.synapses.insert, doc, overwrite=True)
        return synapse

    async def get_synapses_from(self, engram_id: str) -> List[Synapse]:
        rows = await self._query(
            f"""
            FOR s IN {self.config['synapses_collection']}
                FILTER s._from == @handle
                SORT s.created_at, s._key
                RETURN s
            """,
            {"handle": self._engram_handle(engram_id)}
        )
        return [self._synapse_from_document(doc) for doc in rows]

    @staticmethod
    def _synapse_from_document(doc: Dict[str, Any]) -> Synapse:
        return Synapse(**{k: v for k, v in doc.items() if k not in _INTERNAL_KEYS})

    # Maintenance

    async def get_stats(self) -> Dict[str, int]:
        await self.initialize()
        engrams = await self._run(self.engrams.count)
        synapses = await self._run(self.synapses.count)
        return {"engrams": engrams, "synapses": synapses}

    async def health_check(self) -> Dict[str, Any]:
        try:
            await self.initialize()
            version = await self._run(self.db.version)
            return {"ok": True, "type": self.backend, "version": version}
        except StoreError as e:
            logger.error(f"Arango health check failed: {e}")
            return {"ok": False, "type": self.backend, "error": e.message}

    async def close(self) -> None:
        if self.client is not None:
            await asyncio.to_thread(self.client.close)
        self.initialized = False
