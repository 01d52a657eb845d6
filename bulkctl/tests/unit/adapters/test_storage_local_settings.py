from __future__ import annotations

import json

import pytest

from bulkctl.adapters.storage_local import StorageLocal
from bulkctl.viewmodels.settings_vm import SettingsVM


def test_load_returns_none_when_missing(tmp_path) -> None:
    storage = StorageLocal(root_dir=str(tmp_path / "missing"))

    assert storage.load_user_settings() is None


def test_save_creates_directory_and_round_trips(tmp_path) -> None:
    storage = StorageLocal(root_dir=str(tmp_path / "nested" / "dir"))
    payload = {"endpoint_address": "192.168.0.1", "default_unit_count": 12}

    storage.save_user_settings(payload)

    assert storage.load_user_settings() == payload
    with open(storage.settings_path, encoding="utf-8") as handle:
        assert json.load(handle) == payload


def test_load_rejects_non_object(tmp_path) -> None:
    storage = StorageLocal(root_dir=str(tmp_path))
    (tmp_path / StorageLocal.FILENAME).write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ValueError):
        storage.load_user_settings()


def test_settings_vm_persists_through_storage(tmp_path) -> None:
    storage = StorageLocal(root_dir=str(tmp_path))
    settings = SettingsVM(on_save=storage.save_user_settings)
    settings.apply_dict(
        {
            "endpoint_address": "10.0.0.7",
            "endpoint_port": 8000,
            "api_key": "token",
            "pacing_delay_ms": 250,
            "default_unit_count": 4,
            "payload_template": "Label {step}/{total}",
        }
    )

    settings.cmd_save()

    restored = SettingsVM()
    restored.apply_dict(storage.load_user_settings())
    assert restored.to_dict() == settings.to_dict()
    assert restored.pacing_delay_s == pytest.approx(0.25)
