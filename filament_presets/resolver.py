"""
Preset lookup, upsert and apply-to-inventory.

Presets are identified by what they describe, the (brand, type) pair compared
case-insensitively, never by their storage id.  All functions here return new
lists and never modify the records passed in.
"""

import logging
import uuid
from typing import Iterable

from .models import InventoryItem, Preset, PresetSource, utcnow
from .normalizer import Clock, IdFactory

logger = logging.getLogger(__name__)

# Print-parameter fields a preset pushes onto a spool.  Nothing else on the
# spool (weight, history, price, colour...) is ever touched.
APPLIED_FIELDS = (
    "temp_min",
    "temp_max",
    "flow_ratio",
    "pressure_advance",
    "max_volumetric_speed",
    "default_plate",
    "bed_settings",
)


def identity_key(brand: str, type: str) -> tuple[str, str]:
    """Return the case-insensitive (brand, type) key used for all matching."""
    return brand.lower(), type.lower()


def _matches(record: Preset | InventoryItem, key: tuple[str, str]) -> bool:
    return identity_key(record.brand, record.type) == key


def find_exact(library: Iterable[Preset], brand: str, type: str) -> Preset | None:
    """
    Find the preset for a brand/type pair.

    Exact, case-insensitive equality on both fields; no partial or fuzzy
    matching.  If the library holds duplicates the first one in list order
    wins.
    """
    key = identity_key(brand, type)
    for preset in library:
        if _matches(preset, key):
            return preset
    return None


def upsert(library: list[Preset], preset: Preset) -> list[Preset]:
    """Insert *preset*, replacing any entry with the same brand/type in place.

    The replaced entry's id is dropped along with the rest of it.
    """
    key = identity_key(preset.brand, preset.type)
    updated = list(library)
    for i, existing in enumerate(updated):
        if _matches(existing, key):
            logger.debug("Replacing preset %s (%s -> %s)", preset.label, existing.id, preset.id)
            updated[i] = preset
            return updated
    updated.append(preset)
    return updated


def delete_preset(library: list[Preset], preset_id: str) -> list[Preset]:
    """Remove the preset with the given storage id (no-op if absent)."""
    return [p for p in library if p.id != preset_id]


def merge_library(builtin: list[Preset], user: list[Preset]) -> list[Preset]:
    """Combine builtin and user presets into one lookup library.

    User presets come first so they shadow a builtin preset for the same
    brand/type under first-match-wins lookup.
    """
    return [*user, *builtin]


def match_inventory(preset: Preset, inventory: Iterable[InventoryItem]) -> list[InventoryItem]:
    """Return the spools whose brand/type match the preset."""
    key = identity_key(preset.brand, preset.type)
    return [item for item in inventory if _matches(item, key)]


def apply_to_item(
    preset: Preset,
    item: InventoryItem,
    clock: Clock | None = None,
) -> InventoryItem:
    """Return a copy of *item* with the preset's print parameters.

    ``bed_settings`` is replaced as a whole with a private copy; the spool
    never shares it with the preset.
    """
    update = {name: getattr(preset, name) for name in APPLIED_FIELDS}
    update["bed_settings"] = preset.bed_settings.model_copy(deep=True)
    update["updated_at"] = (clock or utcnow)().isoformat()
    return item.model_copy(update=update)


def apply_to_inventory(
    preset: Preset,
    inventory: list[InventoryItem],
    clock: Clock | None = None,
) -> list[InventoryItem]:
    """
    Push a preset's print parameters onto every matching spool.

    Matching follows ``find_exact``.  Unmatched spools are returned as they
    are; with no matches at all the result equals the input.  All touched
    spools share one ``updated_at`` stamp.
    """
    key = identity_key(preset.brand, preset.type)
    if not any(_matches(item, key) for item in inventory):
        return list(inventory)

    now = (clock or utcnow)()
    return [
        apply_to_item(preset, item, clock=lambda: now) if _matches(item, key) else item
        for item in inventory
    ]


def _user_id() -> str:
    return f"user-{uuid.uuid4()}"


def preset_from_item(
    item: InventoryItem,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
) -> Preset:
    """Capture a spool's current print parameters as a new user preset."""
    return Preset(
        id=(id_factory or _user_id)(),
        brand=item.brand,
        type=item.type,
        temp_min=item.temp_min,
        temp_max=item.temp_max,
        flow_ratio=item.flow_ratio,
        pressure_advance=item.pressure_advance,
        max_volumetric_speed=item.max_volumetric_speed,
        default_plate=item.default_plate,
        bed_settings=item.bed_settings.model_copy(deep=True),
        source=PresetSource.USER,
        created_at=(clock or utcnow)().isoformat(),
    )
