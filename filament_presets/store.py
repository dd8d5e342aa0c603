"""
Blob storage for the preset library and the spool inventory.

The core functions (normalizer, resolver) never touch storage.  Callers load
a list through :class:`PresetRepository`, transform it, and write it back.
"""

from __future__ import annotations

import itertools
import json
import logging
import shutil
from datetime import date
from pathlib import Path, PurePosixPath
from typing import Callable, Protocol, TypeVar

from pydantic import TypeAdapter, ValidationError

from .archive import ArchiveError
from .importer import import_file
from .models import InventoryItem, Preset
from .normalizer import Clock, IdFactory

logger = logging.getLogger(__name__)

T = TypeVar("T")

PRESETS_KEY = "presets.json"
INVENTORY_KEY = "filaments.json"
BACKUP_DIR = "backups"
PRESETS_DIR = "presets/"
FOLDER_SUFFIXES = (".bbsflmt", ".json")


class StoreError(Exception):
    """Raised when a stored blob cannot be decoded."""


class BlobStore(Protocol):
    """Minimal key-value store for JSON blobs."""

    def get(self, key: str) -> bytes | None: ...
    def put(self, key: str, data: bytes) -> None: ...
    def list(self, prefix: str = "") -> list[str]: ...


class MemoryBlobStore:
    """In-memory store, for tests and embedding."""

    def __init__(self, blobs: dict[str, bytes] | None = None) -> None:
        self.blobs: dict[str, bytes] = dict(blobs or {})

    def get(self, key: str) -> bytes | None:
        return self.blobs.get(key)

    def put(self, key: str, data: bytes) -> None:
        self.blobs[key] = data

    def list(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self.blobs if k.startswith(prefix))


class FileBlobStore:
    """
    Directory-backed store.  Keys are file paths relative to the root.

    The first overwrite of a key on any given day keeps a copy of the
    previous content as ``backups/{dir}/{stem}-{YYYY-MM-DD}{suffix}``; later
    writes that day leave that backup alone, so it always holds the state
    from before the day's first change.
    """

    def __init__(self, root: str | Path, today: Callable[[], date] | None = None):
        self.root = Path(root)
        self._today = today or date.today

    def _path(self, key: str) -> Path:
        return self.root / key

    def get(self, key: str) -> bytes | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        if path.exists():
            self._backup(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def list(self, prefix: str = "") -> list[str]:
        if not self.root.exists():
            return []
        keys = []
        for file in self.root.rglob("*"):
            if not file.is_file():
                continue
            key = file.relative_to(self.root).as_posix()
            if key.startswith(f"{BACKUP_DIR}/"):
                continue
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)

    def backup_path(self, key: str) -> Path:
        """Path of today's backup for *key*, mirroring its directory."""
        name = PurePosixPath(key)
        stamp = self._today().isoformat()
        return self.root / BACKUP_DIR / name.parent / f"{name.stem}-{stamp}{name.suffix}"

    def _backup(self, path: Path) -> None:
        backup = self.backup_path(path.relative_to(self.root).as_posix())
        if backup.exists():
            return
        backup.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, backup)
        logger.info("Created backup %s", backup.relative_to(self.root).as_posix())


def _file_ids(name: str) -> IdFactory:
    counter = itertools.count(1)
    return lambda: f"file-{name}-{next(counter)}"


_PRESET_LIST = TypeAdapter(list[Preset])
_INVENTORY_LIST = TypeAdapter(list[InventoryItem])


class PresetRepository:
    """
    Loads and saves the user preset library and the spool inventory.

    Usage:
        repo = PresetRepository(FileBlobStore("data"))
        presets = repo.load_presets()
        repo.save_presets(upsert(presets, preset))

    Both blobs are JSON arrays with camelCase keys.  A missing blob reads as
    an empty list.

    Profile files dropped into ``presets/`` (``.bbsflmt`` bundles or JSON
    exports) are a second, read-only preset source; see
    :meth:`load_folder_presets`.
    """

    def __init__(
        self,
        blobs: BlobStore,
        presets_key: str = PRESETS_KEY,
        inventory_key: str = INVENTORY_KEY,
        presets_dir: str = PRESETS_DIR,
    ):
        self.blobs = blobs
        self.presets_key = presets_key
        self.inventory_key = inventory_key
        self.presets_dir = presets_dir

    def load_presets(self) -> list[Preset]:
        return self._load(self.presets_key, _PRESET_LIST)

    def save_presets(self, presets: list[Preset]) -> None:
        self._save(self.presets_key, presets)

    def load_folder_presets(self, clock: Clock | None = None) -> list[Preset]:
        """
        Read every profile file under the presets folder.

        Files are read in key order and go through the normal import path, so
        a later file replaces an earlier preset with the same brand and type.
        Ids are derived from the file name and are stable between loads.
        Files that cannot be read are logged and skipped.
        """
        library: list[Preset] = []
        for key in self.blobs.list(self.presets_dir):
            if not key.lower().endswith(FOLDER_SUFFIXES):
                continue
            data = self.blobs.get(key)
            if data is None:
                continue
            name = PurePosixPath(key).name
            try:
                library, report = import_file(
                    library, name, data, id_factory=_file_ids(name), clock=clock
                )
            except ArchiveError as e:
                logger.warning("Skipping %s: %s", key, e)
                continue
            logger.debug("Loaded %d preset(s) from %s", len(report.imported), key)
        return library

    def load_inventory(self) -> list[InventoryItem]:
        return self._load(self.inventory_key, _INVENTORY_LIST)

    def save_inventory(self, inventory: list[InventoryItem]) -> None:
        self._save(self.inventory_key, inventory)

    def _load(self, key: str, adapter: TypeAdapter[list[T]]) -> list[T]:
        data = self.blobs.get(key)
        if data is None:
            return []
        try:
            return adapter.validate_json(data)
        except ValidationError as e:
            raise StoreError(f"Cannot read {key}: {e.error_count()} invalid field(s)\n{e}") from e

    def _save(self, key: str, records: list[Preset] | list[InventoryItem]) -> None:
        payload = json.dumps(
            [r.to_json_dict() for r in records],
            indent=2,
            ensure_ascii=False,
        )
        self.blobs.put(key, payload.encode("utf-8"))
