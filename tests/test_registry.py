import asyncio
import json

import pytest

from conftest import FakeCollector, make_stats

from dashboard.aggregator import Aggregator
from dashboard.registry import TOKEN_KEY_PREFIX, ServerRegistry, normalize_address
from dashboard.store import KeyValueStore


@pytest.mark.parametrize("raw, expected", [
    ("panel.example.com", "https://panel.example.com"),
    ("panel.example.com/", "https://panel.example.com"),
    ("  http://10.0.0.5:3000/ ", "http://10.0.0.5:3000"),
    ("https://panel.example.com", "https://panel.example.com"),
])
def test_normalize_address(raw, expected):
    assert normalize_address(raw) == expected


def test_normalize_rejects_empty():
    with pytest.raises(ValueError):
        normalize_address("   ")


def test_add_persists_immediately(tmp_path):
    path = tmp_path / "store.yaml"
    record = ServerRegistry(KeyValueStore(path)).add("panel.example.com/", "tok", username="me@x")

    reopened = ServerRegistry(KeyValueStore(path))
    assert reopened.list() == (record,)
    assert record.address == "https://panel.example.com"
    assert record.username == "me@x"


def test_ids_are_unique(registry):
    ids = {registry.add(f"host{i}", "t").id for i in range(20)}
    assert len(ids) == 20
    assert all(len(i) == 13 and i.isalnum() for i in ids)


def test_list_keeps_insertion_order(registry):
    added = [registry.add(h, "t") for h in ("c.example", "a.example", "b.example")]
    assert [r.id for r in registry.list()] == [r.id for r in added]


def test_remove(registry):
    record = registry.add("host", "t")
    assert registry.remove(record.id)
    assert not registry.remove(record.id)
    assert registry.list() == ()


def test_replace_returns_new_record(registry):
    record = registry.add("host", "old")
    replaced = registry.replace(record.id, credential="new")
    assert replaced is not record
    assert replaced.id == record.id
    assert replaced.credential == "new"
    assert registry.get(record.id).credential == "new"
    with pytest.raises(KeyError):
        registry.replace("missing", credential="x")


def test_malformed_entries_skipped(store, registry):
    good = registry.add("good", "t")
    store.set(TOKEN_KEY_PREFIX + "broken", "{oops")
    store.set(TOKEN_KEY_PREFIX + "partial", json.dumps({"hostname": "h"}))
    store.set(TOKEN_KEY_PREFIX + "blank", json.dumps({"hostname": "   ", "token": "t"}))
    store.set(TOKEN_KEY_PREFIX + "numeric", json.dumps({"hostname": 5, "token": "t"}))
    store.set(TOKEN_KEY_PREFIX + "listdoc", json.dumps(["h", "t"]))
    store.set("unrelated", "x")
    assert registry.list() == (good,)
    assert registry.get("blank") is None
    assert registry.get("numeric") is None


def test_blank_hostname_entry_does_not_break_collection(store, registry):
    good = registry.add("good", "t")
    store.set(TOKEN_KEY_PREFIX + "blank", json.dumps({"hostname": "   ", "token": "t"}))
    collector = FakeCollector(stats={good.address: make_stats()})
    overviews = asyncio.run(Aggregator(registry.list, collector).collect())
    assert [o.token_key for o in overviews] == [good.id]
    assert overviews[0].is_online


def test_snapshot_is_immutable(registry):
    registry.add("host", "t")
    snapshot = registry.list()
    registry.add("other", "t")
    assert len(snapshot) == 1
    assert isinstance(snapshot, tuple)


def test_empty_credential_rejected(registry):
    with pytest.raises(ValueError):
        registry.add("host", "")
