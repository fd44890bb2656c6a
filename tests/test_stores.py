import json

from Utils.allowlist import AllowListStore
from Utils.pending import LOCAL_EMAIL, PendingLedger
from Utils.settings import LogSettings, SettingsStore
from Utils.systems import find_system


def test_allowlist_add_is_idempotent(tmp_path):
    store = AllowListStore(str(tmp_path))
    speeders = find_system("Speeders")

    assert store.add(speeders, "111") is True
    assert store.add(speeders, "111") is False
    assert store.add(speeders, "222") is True

    with open(tmp_path / speeders.file, encoding="utf-8") as f:
        assert json.load(f) == ["111", "222"]


def test_allowlist_remove(tmp_path):
    store = AllowListStore(str(tmp_path))
    speeders = find_system("Speeders")
    store.add(speeders, "111")

    assert store.remove(speeders, "111") is True
    assert store.remove(speeders, "111") is False
    assert store.read(speeders) == []


def test_allowlist_overwrite_dedupes(tmp_path):
    store = AllowListStore(str(tmp_path))
    speeders = find_system("Speeders")

    assert store.overwrite(speeders, ["3", "1", "3", None, "2"]) == ["3", "1", "2"]
    assert store.read(speeders) == ["3", "1", "2"]


def test_missing_allowlist_reads_empty(tmp_path):
    store = AllowListStore(str(tmp_path))
    speeders = find_system("Speeders")

    assert not store.exists(speeders)
    assert store.read(speeders) == []


def test_ledger_add_and_pop(tmp_path):
    ledger = PendingLedger(str(tmp_path / "pending_licenses.json"))
    ledger.add("KEY-1", "Blasters", email="buyer@example.com", timestamp=5)

    assert "KEY-1" in ledger
    grant = ledger.pop("KEY-1")
    assert grant.system == "Blasters"
    assert grant.email == "buyer@example.com"
    assert grant.timestamp == 5
    assert "KEY-1" not in ledger
    assert ledger.pop("KEY-1") is None


def test_ledger_file_format(tmp_path):
    path = tmp_path / "pending_licenses.json"
    ledger = PendingLedger(str(path))
    key = ledger.mint("Utilities")

    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert data[key]["system"] == "Utilities"
    assert data[key]["email"] == LOCAL_EMAIL
    assert isinstance(data[key]["timestamp"], int)


def test_minted_keys_are_distinct(tmp_path):
    ledger = PendingLedger(str(tmp_path / "pending_licenses.json"))
    keys = {ledger.mint("Utilities") for _ in range(20)}
    assert len(keys) == 20


def test_settings_default_when_missing(tmp_path):
    store = SettingsStore(str(tmp_path / "settings.json"))
    assert store.load() == LogSettings()
    assert store.load().mirroring is False


def test_settings_round_trip(tmp_path):
    store = SettingsStore(str(tmp_path / "settings.json"))
    store.set_channel(123456789)
    store.set_enabled(True)

    settings = store.load()
    assert settings.logs_channel_id == 123456789
    assert settings.logs_enabled is True
    assert settings.mirroring is True


def test_settings_corrupt_file_falls_back(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    assert SettingsStore(str(path)).load() == LogSettings()
