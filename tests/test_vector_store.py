"""
In-memory vector store: named-field search, record validation and drift handling.
"""

import asyncio

import pytest

from transmem.core.errors import InvalidInputError
from transmem.vector.index import IVectorStore, InMemoryVectorStore
from transmem.vector.types import CollectionSchema, VectorRecord, detect_schema_drift


def make_record(vectors, chinese="机器学习", english="machine learning", record_id=None):
    return VectorRecord(id=record_id, vectors=vectors, payload={"Chinese": chinese, "English": english})


def test_vector_store_interface(schema):
    assert isinstance(InMemoryVectorStore(schema), IVectorStore)


def test_upsert_then_search_returns_record_first(schema, unit_vector):
    """Round trip: the stored vector finds its own record with score 1.0."""
    store = InMemoryVectorStore(schema)
    asyncio.run(store.ensure_collection())

    record_id = asyncio.run(store.upsert(make_record({"vector_cn": unit_vector(0)})))
    asyncio.run(store.upsert(make_record({"vector_cn": unit_vector(1)}, chinese="天气")))

    results = asyncio.run(store.search("vector_cn", unit_vector(0), limit=2))
    assert results[0].id == record_id
    assert results[0].score == pytest.approx(1.0)
    assert results[0].payload["Chinese"] == "机器学习"
    assert results[1].score == pytest.approx(0.0)


def test_search_is_per_named_field(schema, unit_vector):
    store = InMemoryVectorStore(schema)
    record_id = asyncio.run(store.upsert(make_record({"vector_cn": unit_vector(0), "vector_en": unit_vector(3)})))

    en_results = asyncio.run(store.search("vector_en", unit_vector(3), limit=1))
    assert en_results[0].id == record_id
    assert en_results[0].score == pytest.approx(1.0)

    cn_results = asyncio.run(store.search("vector_cn", unit_vector(3), limit=1))
    assert cn_results[0].score == pytest.approx(0.0)


def test_upsert_assigns_unique_ids(schema, unit_vector):
    store = InMemoryVectorStore(schema)
    first = asyncio.run(store.upsert(make_record({"vector_cn": unit_vector(0)})))
    second = asyncio.run(store.upsert(make_record({"vector_cn": unit_vector(0)}, chinese="另一条")))
    assert first and second and first != second
    assert asyncio.run(store.count()) == 2


def test_upsert_with_existing_id_replaces_all_fields(schema, unit_vector):
    store = InMemoryVectorStore(schema)
    record_id = asyncio.run(store.upsert(make_record({"vector_cn": unit_vector(0), "vector_en": unit_vector(1)})))
    asyncio.run(store.upsert(make_record({"vector_cn": unit_vector(2)}, record_id=record_id)))

    assert asyncio.run(store.count()) == 1
    assert asyncio.run(store.search("vector_en", unit_vector(1))) == []
    assert asyncio.run(store.search("vector_cn", unit_vector(2)))[0].id == record_id


@pytest.mark.parametrize("vectors,chinese", [
    ({}, "机器学习"),
    ({"vector_jp": [1.0] * 8}, "机器学习"),
    ({"vector_cn": [1.0] * 3}, "机器学习"),
    ({"vector_cn": [1.0] * 8}, "  "),
])
def test_invalid_records_fail_fast(schema, vectors, chinese):
    store = InMemoryVectorStore(schema)
    with pytest.raises(InvalidInputError):
        asyncio.run(store.upsert(make_record(vectors, chinese=chinese)))


def test_delete_record(schema, unit_vector):
    store = InMemoryVectorStore(schema)
    record_id = asyncio.run(store.upsert(make_record({"vector_cn": unit_vector(0)})))

    assert asyncio.run(store.delete_record(record_id)) is True
    assert asyncio.run(store.search("vector_cn", unit_vector(0))) == []
    # Deleting again is harmless
    assert asyncio.run(store.delete_record(record_id)) is True


def test_zero_query_vector_returns_nothing(schema, unit_vector):
    store = InMemoryVectorStore(schema)
    asyncio.run(store.upsert(make_record({"vector_cn": unit_vector(0)})))
    assert asyncio.run(store.search("vector_cn", [0.0] * 8)) == []


def test_ensure_collection_is_idempotent(schema):
    store = InMemoryVectorStore(schema)
    assert asyncio.run(store.ensure_collection()) is True
    assert asyncio.run(store.ensure_collection()) is True
    assert store.recreate_count == 0


def test_ensure_collection_recreates_on_drift(schema, unit_vector):
    store = InMemoryVectorStore(schema)
    asyncio.run(store.upsert(make_record({"vector_cn": unit_vector(0)})))

    wider = CollectionSchema(name=schema.name, fields={"vector_cn": 16, "vector_en": 16})
    assert asyncio.run(store.ensure_collection(wider)) is True
    assert store.recreate_count == 1
    assert asyncio.run(store.count()) == 0

    asyncio.run(store.ensure_collection(wider))
    assert store.recreate_count == 1


def test_detect_schema_drift():
    expected = CollectionSchema(name="c", fields={"vector_cn": 768, "vector_en": 768})

    assert detect_schema_drift(expected, {"vector_cn": 768, "vector_en": 768}) is None
    assert "named vector fields differ" in detect_schema_drift(expected, {"": 768})
    assert "dimension of 'vector_en'" in detect_schema_drift(expected, {"vector_cn": 768, "vector_en": 1024})


def test_count_is_part_of_the_store_interface(schema):
    assert "count" in IVectorStore.__abstractmethods__
    assert asyncio.run(InMemoryVectorStore(schema).count()) == 0
