"""
Vendor slicer profile → canonical Preset normalization.

Handles BambuStudio / OrcaSlicer filament profiles as found in ``.bbsflmt``
bundles and loose JSON exports. Every setting in those files may be stored
either as a scalar or as a per-extruder list (``["220"]``); both forms are
read the same way through ``_first``.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError

from .models import (
    BedSettings,
    BedTemperature,
    PlateType,
    Preset,
    PresetSource,
    utcnow,
)

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]
Clock = Callable[[], datetime]

# A record is a filament profile only if it carries one of these keys.
DISCRIMINATOR_KEYS = ("filament_settings_id", "setting_id")

# Vendor exports carry one temperature per plate.  There is no separate
# "stabilized" cool plate key, so both cool plates read cool_plate_temp.
PLATE_VENDOR_KEYS: dict[PlateType, str] = {
    PlateType.COOL_STABILIZED: "cool_plate_temp",
    PlateType.COOL: "cool_plate_temp",
    PlateType.ENGINEERING: "eng_plate_temp",
    PlateType.SMOOTH_HIGH_TEMP: "hot_plate_temp",
    PlateType.TEXTURED: "textured_plate_temp",
}

DEFAULT_BRAND = "Imported"
DEFAULT_TYPE = "PLA"
DEFAULT_TEMP_RANGE = (200, 220)
DEFAULT_FLOW_RATIO = 1.0
DEFAULT_MAX_VOLUMETRIC_SPEED = 12.0
DEFAULT_PRESSURE_ADVANCE = 0.02
DEFAULT_BED_TEMP = 0
# Profiles do not say which plate they were tuned for.
IMPORT_DEFAULT_PLATE = PlateType.TEXTURED


class NotAProfile(Exception):
    """Raised when a record has no filament profile discriminator."""


class MalformedField(Exception):
    """Raised when a profile field cannot be coerced to its canonical type."""


def _first(value: Any) -> Any:
    """Extract the first element if value is a list, otherwise return as-is.

    An empty list and a blank string both read as absent (None).
    """
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _import_id() -> str:
    return f"import-{uuid.uuid4()}"


def is_filament_profile(raw: Any) -> bool:
    """Return True if *raw* looks like a vendor filament profile."""
    if not isinstance(raw, Mapping):
        return False
    return any(raw.get(key) not in (None, "") for key in DISCRIMINATOR_KEYS)


def _text(raw: Mapping[str, Any], key: str, default: str) -> str:
    value = _first(raw.get(key))
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _number(raw: Mapping[str, Any], key: str, default: float) -> float:
    """Read a float setting, falling back to *default* when it is unusable."""
    value = _first(raw.get(key))
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def _temperature(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise MalformedField(f"{key}: boolean is not a temperature")
    try:
        return int(round(float(value)))
    except (TypeError, ValueError, OverflowError) as e:
        raise MalformedField(f"{key}: {value!r} is not a temperature") from e


def _temperature_range(raw: Mapping[str, Any]) -> tuple[int, int]:
    """Read nozzle_temperature as (min, max).

    A sequence of two or more values is a (low, high) range; a single value
    sets both bounds.  Blank bounds read as absent, the same way as in
    ``_first``.
    """
    temps = raw.get("nozzle_temperature")
    low = _first(temps)
    if low is None:
        return DEFAULT_TEMP_RANGE
    high = None
    if isinstance(temps, (list, tuple)) and len(temps) > 1:
        high = _first(temps[1])
    if high is None:
        high = low
    return (
        _temperature(low, "nozzle_temperature"),
        _temperature(high, "nozzle_temperature"),
    )


def _bed_settings(raw: Mapping[str, Any]) -> BedSettings:
    plates = {}
    for plate, key in PLATE_VENDOR_KEYS.items():
        value = _first(raw.get(key))
        temp = DEFAULT_BED_TEMP if value is None else _temperature(value, key)
        # Vendor profiles have no per-layer distinction.
        plates[plate.value] = BedTemperature(initial=temp, other=temp)
    return BedSettings(**plates)


def _normalize(raw: Any, id_factory: IdFactory, clock: Clock) -> Preset:
    if not is_filament_profile(raw):
        raise NotAProfile("record has neither filament_settings_id nor setting_id")

    temp_min, temp_max = _temperature_range(raw)

    return Preset(
        id=id_factory(),
        brand=_text(raw, "filament_vendor", DEFAULT_BRAND),
        type=_text(raw, "filament_type", DEFAULT_TYPE),
        temp_min=temp_min,
        temp_max=temp_max,
        flow_ratio=_number(raw, "filament_flow_ratio", DEFAULT_FLOW_RATIO),
        max_volumetric_speed=_number(
            raw, "filament_max_volumetric_speed", DEFAULT_MAX_VOLUMETRIC_SPEED
        ),
        pressure_advance=_number(raw, "pressure_advance", DEFAULT_PRESSURE_ADVANCE),
        default_plate=IMPORT_DEFAULT_PLATE,
        bed_settings=_bed_settings(raw),
        source=PresetSource.USER,
        created_at=clock().isoformat(),
    )


def normalize(
    raw: Any,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
) -> Preset | None:
    """
    Convert one raw vendor filament profile into a canonical Preset.

    Returns None when the record is not a filament profile or when any of
    its fields cannot be read; callers skip the record and carry on with the
    rest of the batch.

    Args:
        raw: Decoded JSON object from a slicer export.  Untrusted.
        id_factory: Produces the new preset's id.  A fresh id is drawn on every
            call, so normalizing the same record twice yields two ids.
        clock: Source of the ``created_at`` timestamp.
    """
    try:
        return _normalize(raw, id_factory or _import_id, clock or utcnow)
    except NotAProfile:
        logger.debug("Skipping record: not a filament profile")
        return None
    except Exception as e:
        logger.debug("Skipping malformed filament profile: %s", e)
        return None


def coerce_preset(
    record: Any,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
) -> Preset | None:
    """
    Accept a record that is already in the canonical preset shape.

    Plain JSON preset exports (as written by this tool) carry ``brand``,
    ``type``, ``tempMin``... instead of vendor keys.  Such records are
    re-tagged as user presets with a fresh id and timestamp, exactly like
    normalized vendor profiles.  Returns None if the record does not validate.
    """
    if not isinstance(record, Mapping) or not record.get("brand") or not record.get("type"):
        return None

    data = {
        key: value
        for key, value in record.items()
        if key not in ("id", "source", "createdAt", "created_at")
    }
    data["id"] = (id_factory or _import_id)()
    data["source"] = PresetSource.USER
    data["created_at"] = (clock or utcnow)().isoformat()

    try:
        return Preset.model_validate(data)
    except ValidationError as e:
        logger.debug(
            "Skipping preset record %r / %r: %d validation error(s)",
            record.get("brand"), record.get("type"), e.error_count(),
        )
        return None
