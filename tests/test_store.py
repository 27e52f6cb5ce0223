import pytest

from dashboard.config import MonitorConfig, load_config
from dashboard.store import KeyValueStore


def test_get_set_remove(store):
    assert store.get("k") is None
    store.set("k", "v")
    assert store.get("k") == "v"
    assert store.keys() == ["k"]
    assert store.remove("k")
    assert not store.remove("k")
    assert store.get("k") is None


def test_values_survive_reopen(tmp_path):
    path = tmp_path / "nested" / "store.yaml"
    KeyValueStore(path).set("k", '{"json": true}')
    assert KeyValueStore(path).get("k") == '{"json": true}'


def test_write_leaves_no_temp_files(tmp_path):
    store = KeyValueStore(tmp_path / "store.yaml")
    for i in range(5):
        store.set(f"k{i}", str(i))
    assert [p.name for p in tmp_path.iterdir()] == ["store.yaml"]


def test_non_mapping_document_reads_empty(tmp_path):
    path = tmp_path / "store.yaml"
    path.write_text("- just\n- a list\n")
    assert KeyValueStore(path).keys() == []


def test_own_writes_do_not_notify(store):
    seen = []
    store.subscribe(seen.append)
    store.set("k", "v")
    assert not store.check_for_changes()
    assert seen == []


def test_other_writer_notifies_changed_keys(tmp_path):
    path = tmp_path / "store.yaml"
    ours, theirs = KeyValueStore(path), KeyValueStore(path)
    seen = []
    unsubscribe = ours.subscribe(seen.append)

    theirs.set("a", "1")
    theirs.set("b", "2")
    assert ours.check_for_changes()
    assert seen == ["a", "b"]

    unsubscribe()
    theirs.remove("a")
    assert ours.check_for_changes()
    assert seen == ["a", "b"]


def test_load_config_defaults_when_missing(tmp_path):
    assert load_config(tmp_path / "absent.yaml") == MonitorConfig()


def test_load_config(tmp_path):
    path = tmp_path / "monitor.yaml"
    path.write_text("request_timeout: 3\nport: 8080\nunknown_key: 1\n")
    config = load_config(path)
    assert config.request_timeout == 3
    assert config.port == 8080
    assert config.host == "127.0.0.1"


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "monitor.yaml"
    path.write_text("- 1\n")
    with pytest.raises(ValueError):
        load_config(path)
