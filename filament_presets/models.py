from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class PlateType(str, Enum):
    COOL_STABILIZED = "cool_stabilized"
    COOL = "cool"
    ENGINEERING = "engineering"
    SMOOTH_HIGH_TEMP = "smooth_high_temp"
    TEXTURED = "textured"


class PresetSource(str, Enum):
    BUILTIN = "builtin"
    USER = "user"
    LEARNED = "learned"


class _StoredModel(BaseModel):
    """Base for records persisted as camelCase JSON (``tempMin``, ``bedSettings``...).

    Python code uses the snake_case field names; both spellings are accepted
    on input.
    """

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class BedTemperature(BaseModel):
    initial: int  # first layer
    other: int  # subsequent layers


class BedSettings(BaseModel):
    """Bed temperatures per build plate.

    Keys stay snake_case on the wire since they are plate ids, not field names.
    """

    cool_stabilized: BedTemperature
    cool: BedTemperature
    engineering: BedTemperature
    smooth_high_temp: BedTemperature
    textured: BedTemperature

    def for_plate(self, plate: PlateType | str) -> BedTemperature:
        return getattr(self, PlateType(plate).value)


class Preset(_StoredModel):
    """
    A reusable set of print parameters, keyed by its (brand, type) pair.
    The ``id`` is a storage identifier only; it plays no part in matching.
    """

    id: str
    brand: str
    type: str
    temp_min: int
    temp_max: int
    flow_ratio: float = 1.0
    pressure_advance: float = 0.02
    max_volumetric_speed: float | None = None
    default_plate: PlateType = PlateType.TEXTURED
    bed_settings: BedSettings
    source: PresetSource = PresetSource.USER
    created_at: str

    @property
    def label(self) -> str:
        return f"{self.brand} / {self.type}"


class PrintHistory(_StoredModel):
    id: str
    name: str
    weight: float  # grams consumed
    link: str | None = None
    image: str | None = None  # base64 photo
    print_time: float | None = None  # hours
    rating: float | None = None
    date: str


class InventoryItem(_StoredModel):
    """
    One physical spool.

    Shares the print-parameter fields with :class:`Preset`. Keys this model
    does not know about are kept as extras so a load/save cycle never drops
    data written by other tools.
    """

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "allow",
    }

    id: str
    brand: str
    type: str
    color: str = "#78716c"
    color_name: str = ""

    weight: float = 1000  # spool net weight (g)
    remaining: float = 1000  # grams left
    price: float = 0

    temp_min: int
    temp_max: int
    flow_ratio: float = 1.0
    max_volumetric_speed: float | None = None
    pressure_advance: float = 0.02

    bed_settings: BedSettings
    default_plate: PlateType = PlateType.TEXTURED

    notes: str | None = None
    history: list[PrintHistory] = Field(default_factory=list)

    created_at: str | None = None
    updated_at: str | None = None


class ImportReport(BaseModel):
    """Result of importing one file (or record batch) into the preset library."""

    source: str = ""
    records_seen: int = 0
    imported: list[str] = Field(default_factory=list)
    replaced: list[str] = Field(default_factory=list)
    skipped: int = 0


class ApplyReport(BaseModel):
    """Result of pushing a preset's parameters onto matching spools."""

    preset_id: str
    brand: str
    type: str
    updated: list[str] = Field(default_factory=list)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
