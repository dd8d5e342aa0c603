"""
filament_presets: filament preset library

Normalizes vendor slicer filament profiles (BambuStudio / OrcaSlicer
``.bbsflmt`` bundles and JSON exports) into canonical presets, keeps a preset
library keyed by brand and type, and applies presets to a spool inventory.
"""

from .models import (
    PlateType,
    PresetSource,
    BedTemperature,
    BedSettings,
    Preset,
    PrintHistory,
    InventoryItem,
    ImportReport,
    ApplyReport,
)
from .normalizer import normalize, coerce_preset, is_filament_profile, PLATE_VENDOR_KEYS
from .resolver import (
    find_exact,
    upsert,
    delete_preset,
    merge_library,
    match_inventory,
    apply_to_item,
    apply_to_inventory,
    preset_from_item,
)
from .builtin import BUILTIN_PRESETS, DEFAULT_BED_SETTINGS
from .archive import extract_records, fetch_archive, ArchiveError
from .importer import import_records, import_file
from .store import (
    BlobStore,
    FileBlobStore,
    MemoryBlobStore,
    PresetRepository,
    StoreError,
)

__all__ = [
    # Enums
    "PlateType",
    "PresetSource",
    # Models
    "BedTemperature",
    "BedSettings",
    "Preset",
    "PrintHistory",
    "InventoryItem",
    "ImportReport",
    "ApplyReport",
    # Normalizer
    "normalize",
    "coerce_preset",
    "is_filament_profile",
    "PLATE_VENDOR_KEYS",
    # Resolver
    "find_exact",
    "upsert",
    "delete_preset",
    "merge_library",
    "match_inventory",
    "apply_to_item",
    "apply_to_inventory",
    "preset_from_item",
    # Builtin library
    "BUILTIN_PRESETS",
    "DEFAULT_BED_SETTINGS",
    # Import
    "extract_records",
    "fetch_archive",
    "import_records",
    "import_file",
    # Storage
    "BlobStore",
    "FileBlobStore",
    "MemoryBlobStore",
    "PresetRepository",
    # Exceptions
    "ArchiveError",
    "StoreError",
]
