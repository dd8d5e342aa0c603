from __future__ import annotations

import io
import json
import zipfile
from datetime import date

import pytest

from filament_presets import (
    BUILTIN_PRESETS,
    FileBlobStore,
    MemoryBlobStore,
    PresetRepository,
    PresetSource,
    StoreError,
)

from conftest import FIXED_NOW


def test_missing_blobs_read_as_empty_lists():
    repo = PresetRepository(MemoryBlobStore())
    assert repo.load_presets() == []
    assert repo.load_inventory() == []


def test_presets_round_trip_as_camel_case_json():
    blobs = MemoryBlobStore()
    repo = PresetRepository(blobs)

    repo.save_presets(BUILTIN_PRESETS[:1])

    raw = json.loads(blobs.get("presets.json"))
    assert raw[0]["tempMin"] == 190
    assert raw[0]["bedSettings"]["cool_stabilized"] == {"initial": 35, "other": 35}
    assert raw[0]["defaultPlate"] == "textured"
    assert repo.load_presets() == BUILTIN_PRESETS[:1]


def test_inventory_keeps_fields_it_does_not_model():
    stored = [{
        "id": "s1",
        "brand": "Acme",
        "type": "PETG",
        "color": "#ffffff",
        "colorName": "White",
        "weight": 1000,
        "remaining": 500,
        "price": 80,
        "tempMin": 230,
        "tempMax": 250,
        "flowRatio": 0.98,
        "pressureAdvance": 0.02,
        "bedSettings": BUILTIN_PRESETS[0].bed_settings.model_dump(),
        "defaultPlate": "cool",
        "history": [],
        "createdAt": None,
        "spoolmanId": 7,
    }]
    blobs = MemoryBlobStore({"filaments.json": json.dumps(stored).encode()})
    repo = PresetRepository(blobs)

    inventory = repo.load_inventory()
    assert inventory[0].color_name == "White"
    repo.save_inventory(inventory)

    saved = json.loads(blobs.get("filaments.json"))[0]
    assert saved["spoolmanId"] == 7
    assert saved["colorName"] == "White"


def test_undecodable_blob_raises_store_error():
    repo = PresetRepository(MemoryBlobStore({"presets.json": b"{broken"}))
    with pytest.raises(StoreError):
        repo.load_presets()


def test_wrong_schema_raises_store_error():
    repo = PresetRepository(MemoryBlobStore({"filaments.json": b'[{"id": "s1"}]'}))
    with pytest.raises(StoreError, match="filaments.json"):
        repo.load_inventory()


def test_memory_store_lists_by_prefix():
    blobs = MemoryBlobStore({"presets.json": b"[]", "filaments.json": b"[]"})
    assert blobs.list() == ["filaments.json", "presets.json"]
    assert blobs.list("pre") == ["presets.json"]


def test_file_store_round_trip(tmp_path):
    blobs = FileBlobStore(tmp_path / "data")

    assert blobs.get("presets.json") is None
    blobs.put("presets.json", b"[]")

    assert blobs.get("presets.json") == b"[]"
    assert blobs.list() == ["presets.json"]


def test_file_store_backs_up_first_overwrite_of_the_day(tmp_path):
    blobs = FileBlobStore(tmp_path, today=lambda: date(2026, 3, 1))

    blobs.put("filaments.json", b"v1")
    assert not (tmp_path / "backups").exists()

    blobs.put("filaments.json", b"v2")
    blobs.put("filaments.json", b"v3")

    backup = tmp_path / "backups" / "filaments-2026-03-01.json"
    assert backup.read_bytes() == b"v1"
    assert blobs.get("filaments.json") == b"v3"
    assert blobs.list() == ["filaments.json"]


def test_file_store_new_backup_each_day(tmp_path):
    day = [date(2026, 3, 1)]
    blobs = FileBlobStore(tmp_path, today=lambda: day[0])

    blobs.put("presets.json", b"a")
    blobs.put("presets.json", b"b")
    day[0] = date(2026, 3, 2)
    blobs.put("presets.json", b"c")

    assert (tmp_path / "backups" / "presets-2026-03-01.json").read_bytes() == b"a"
    assert (tmp_path / "backups" / "presets-2026-03-02.json").read_bytes() == b"b"


def test_file_store_backups_keep_key_directories(tmp_path):
    blobs = FileBlobStore(tmp_path, today=lambda: date(2026, 3, 1))

    for key in ("a/presets.json", "b/presets.json"):
        blobs.put(key, b"old " + key.encode())
        blobs.put(key, b"new")

    backups = tmp_path / "backups"
    assert (backups / "a" / "presets-2026-03-01.json").read_bytes() == b"old a/presets.json"
    assert (backups / "b" / "presets-2026-03-01.json").read_bytes() == b"old b/presets.json"
    assert blobs.list() == ["a/presets.json", "b/presets.json"]


def _bundle(*profiles: dict) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("bundle_structure.json", json.dumps({"version": 1}))
        for i, profile in enumerate(profiles):
            zf.writestr(f"filament/profile-{i}.json", json.dumps(profile))
    return buffer.getvalue()


@pytest.fixture
def folder_store(tmp_path, acme_profile):
    blobs = FileBlobStore(tmp_path / "data")
    blobs.put("presets/acme.bbsflmt", _bundle(acme_profile))
    own = BUILTIN_PRESETS[1].to_json_dict()
    own["tempMin"] = 205
    blobs.put("presets/mine.json", json.dumps([own]).encode("utf-8"))
    blobs.put("presets/broken.json", b"{not json")
    blobs.put("presets/notes.txt", b"ignore me")
    return blobs


def test_folder_presets_are_read_from_profile_files(folder_store, clock):
    presets = PresetRepository(folder_store).load_folder_presets(clock=clock)

    assert [p.label for p in presets] == ["Acme / PETG", "Bambu Lab / PLA Matte"]
    assert all(p.source == PresetSource.USER for p in presets)
    assert presets[0].temp_min == 230
    assert presets[1].temp_min == 205
    assert presets[0].created_at == FIXED_NOW.isoformat()


def test_folder_preset_ids_are_stable_between_loads(folder_store):
    repo = PresetRepository(folder_store)

    first = [p.id for p in repo.load_folder_presets()]
    second = [p.id for p in repo.load_folder_presets()]

    assert first == second == ["file-acme.bbsflmt-1", "file-mine.json-1"]


def test_folder_presets_do_not_touch_the_user_library(folder_store):
    repo = PresetRepository(folder_store)
    repo.load_folder_presets()

    assert repo.load_presets() == []
    assert folder_store.get("presets.json") is None


def test_missing_presets_folder_reads_as_empty(tmp_path):
    assert PresetRepository(FileBlobStore(tmp_path)).load_folder_presets() == []
    assert PresetRepository(MemoryBlobStore()).load_folder_presets() == []
