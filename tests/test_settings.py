import json

import pytest

from dashboard.settings import (
    DEFAULT_SETTINGS,
    SETTINGS_KEY,
    AppSettings,
    InvalidSettingError,
    SettingsStore,
    SettingsWatcher,
    coerce_interval,
)
from dashboard.store import KeyValueStore


def test_defaults_when_nothing_stored(settings_store):
    assert settings_store.load() == DEFAULT_SETTINGS
    assert DEFAULT_SETTINGS.to_dict() == {
        "homePageRefreshInterval": "off",
        "serviceRefreshInterval": "off",
        "colorMode": "system",
    }


@pytest.mark.parametrize("settings", [
    AppSettings(homePageRefreshInterval=5, serviceRefreshInterval=1, colorMode="dark"),
    AppSettings(homePageRefreshInterval="off", serviceRefreshInterval=60, colorMode="light"),
    DEFAULT_SETTINGS,
])
def test_round_trip(settings_store, settings):
    settings_store.save(settings)
    assert settings_store.load() == settings


def test_corrupted_record_falls_back_to_defaults(store, settings_store):
    store.set(SETTINGS_KEY, "{not json")
    assert settings_store.load() == DEFAULT_SETTINGS

    store.set(SETTINGS_KEY, json.dumps(["a", "list"]))
    assert settings_store.load() == DEFAULT_SETTINGS


def test_corrupted_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "store.yaml"
    path.write_text(": : [unbalanced\n")
    assert SettingsStore(KeyValueStore(path)).load() == DEFAULT_SETTINGS


def test_missing_fields_backfilled_and_bad_fields_dropped(store, settings_store):
    store.set(SETTINGS_KEY, json.dumps({
        "homePageRefreshInterval": 15,
        "serviceRefreshInterval": 7,
        "somethingElse": True,
    }))
    loaded = settings_store.load()
    assert loaded.homePageRefreshInterval == 15
    assert loaded.serviceRefreshInterval == "off"
    assert loaded.colorMode == "system"


@pytest.mark.parametrize("raw, expected", [(1, 1), ("5", 5), ("off", "off"), (" OFF ", "off"), (60, 60)])
def test_coerce_interval_accepts(raw, expected):
    assert coerce_interval(raw) == expected


@pytest.mark.parametrize("raw", [0, 2, 7, 120, "never", None, True, 5.0])
def test_coerce_interval_rejects(raw):
    with pytest.raises(InvalidSettingError):
        coerce_interval(raw)


def test_invalid_values_rejected_at_construction():
    with pytest.raises(InvalidSettingError):
        AppSettings(homePageRefreshInterval=3)
    with pytest.raises(InvalidSettingError):
        AppSettings(colorMode="sepia")


def test_watcher_reloads_on_change_from_another_writer(tmp_path):
    path = tmp_path / "store.yaml"
    ours = SettingsStore(KeyValueStore(path))
    theirs = SettingsStore(KeyValueStore(path))
    seen = []
    watcher = SettingsWatcher(ours, seen.append)
    watcher.start()

    theirs.save(AppSettings(homePageRefreshInterval=10))
    assert ours.store.check_for_changes()

    assert seen == [AppSettings(homePageRefreshInterval=10)]

    watcher.stop()
    theirs.save(AppSettings(homePageRefreshInterval=30, colorMode="dark"))
    ours.store.check_for_changes()
    assert len(seen) == 1


def test_watcher_ignores_unrelated_keys(tmp_path):
    path = tmp_path / "store.yaml"
    ours = SettingsStore(KeyValueStore(path))
    theirs = KeyValueStore(path)
    seen = []
    SettingsWatcher(ours, seen.append).start()

    theirs.set("easypanel_token_abc", json.dumps({"hostname": "h", "token": "t"}))
    ours.store.check_for_changes()
    assert seen == []


def test_focus_rereads_settings(tmp_path):
    path = tmp_path / "store.yaml"
    ours = SettingsStore(KeyValueStore(path))
    seen = []
    watcher = SettingsWatcher(ours, seen.append)

    SettingsStore(KeyValueStore(path)).save(AppSettings(serviceRefreshInterval=5))
    watcher.on_focus()
    assert seen[-1].serviceRefreshInterval == 5
