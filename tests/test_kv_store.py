# workshop_inventory/tests/test_kv_store.py
from __future__ import annotations

import logging
import sqlite3

import pytest

from workshop_inventory.constants import TABLE_COLLECTIONS
from workshop_inventory.database import get_connection
from workshop_inventory.database.kv_store import (
    KeyValueStore,
    StoreError,
    decode_collection,
    encode_collection,
)
from workshop_inventory.database.versioning import get_current_version, set_current_version


def test_unknown_key_loads_as_empty_list(store):
    assert store.load("nope") == []
    assert store.raw_payload("nope") is None


def test_save_then_load_round_trip(store):
    records = [{"id": "a", "quantity": 5}, {"id": "b", "quantity": 2.5, "supplier": "Uratex"}]
    store.save("things", records)
    assert store.load("things") == records


def test_save_overwrites_whole_collection(store):
    store.save("things", [{"id": "a"}, {"id": "b"}])
    store.save("things", [{"id": "c"}])
    assert store.load("things") == [{"id": "c"}]


def test_reencoding_a_stored_collection_is_byte_stable(store):
    store.save("things", [{"name": "Tela Ñ", "b": 1, "a": [1, 2]}])
    payload = store.raw_payload("things")
    assert payload == encode_collection(store.load("things"))
    # key order kept, no ascii escaping, compact separators
    assert payload == '[{"name":"Tela Ñ","b":1,"a":[1,2]}]'


def test_transaction_rolls_back_every_write_on_error(store):
    store.save("keep", [{"id": "k"}])
    with pytest.raises(RuntimeError):
        with store.transaction():
            store.save("keep", [])
            store.save("other", [{"id": "x"}])
            raise RuntimeError("boom")
    assert store.load("keep") == [{"id": "k"}]
    assert store.load("other") == []
    assert not store.in_transaction


def test_nested_transactions_join_the_outer_one(store):
    with pytest.raises(RuntimeError):
        with store.transaction():
            with store.transaction():
                store.save("a", [{"id": 1}])
            assert store.in_transaction
            raise RuntimeError("late failure")
    assert store.load("a") == []


def test_schema_rejects_non_array_payload(conn):
    with pytest.raises(sqlite3.DatabaseError):
        conn.execute(
            f"INSERT INTO {TABLE_COLLECTIONS}(key, payload) VALUES (?, ?)", ("bad", '{"id": 1}')
        )


def test_decode_collection_errors():
    assert decode_collection(None) == []
    assert decode_collection("") == []
    with pytest.raises(StoreError):
        decode_collection("{not json")
    with pytest.raises(StoreError):
        decode_collection('{"id": 1}')


def test_reopening_keeps_data_and_schema_version(db_path):
    con = get_connection(db_path)
    KeyValueStore(con).save("a", [{"id": 1}])
    version = get_current_version(con)
    con.close()

    con = get_connection(db_path)
    try:
        assert KeyValueStore(con).load("a") == [{"id": 1}]
        assert version is not None
        assert get_current_version(con) == version
    finally:
        con.close()


def test_other_schema_version_is_reported_not_overwritten(db_path, caplog):
    con = get_connection(db_path)
    set_current_version(con, "0.9.0")
    con.close()

    with caplog.at_level(logging.WARNING):
        con = get_connection(db_path)
    try:
        assert get_current_version(con) == "0.9.0"
    finally:
        con.close()
    assert any("schema version is 0.9.0" in r.getMessage() for r in caplog.records)
