from __future__ import annotations

import itertools
from datetime import datetime, timezone

import pytest

from filament_presets import (
    DEFAULT_BED_SETTINGS,
    InventoryItem,
    PlateType,
    Preset,
    PresetSource,
    PrintHistory,
)

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"test-{next(counter)}"


@pytest.fixture
def acme_profile() -> dict:
    """A BambuStudio filament profile as found inside a .bbsflmt bundle."""
    return {
        "filament_settings_id": ["abc"],
        "filament_vendor": ["Acme"],
        "filament_type": ["PETG"],
        "nozzle_temperature": [230, 250],
        "cool_plate_temp": 80,
        "eng_plate_temp": [95],
        "hot_plate_temp": 90,
        "textured_plate_temp": [85],
        "filament_flow_ratio": [0.95],
        "pressure_advance": [0.03],
    }


@pytest.fixture
def make_preset():
    def _make(**overrides) -> Preset:
        fields = dict(
            id="preset-1",
            brand="Acme",
            type="PETG",
            temp_min=230,
            temp_max=250,
            flow_ratio=0.95,
            pressure_advance=0.03,
            max_volumetric_speed=14.0,
            default_plate=PlateType.ENGINEERING,
            bed_settings=DEFAULT_BED_SETTINGS.model_copy(deep=True),
            source=PresetSource.USER,
            created_at="2026-02-01T00:00:00+00:00",
        )
        fields.update(overrides)
        return Preset(**fields)

    return _make


@pytest.fixture
def make_spool():
    def _make(**overrides) -> InventoryItem:
        fields = dict(
            id="spool-1",
            brand="Acme",
            type="PETG",
            color="#ef4444",
            color_name="Red",
            weight=1000,
            remaining=640,
            price=89.0,
            temp_min=220,
            temp_max=240,
            flow_ratio=1.0,
            pressure_advance=0.02,
            max_volumetric_speed=12.0,
            bed_settings=DEFAULT_BED_SETTINGS.model_copy(deep=True),
            default_plate=PlateType.TEXTURED,
            history=[
                PrintHistory(id="h1", name="Benchy", weight=15, date="2026-01-05T10:00:00Z"),
            ],
            created_at="2026-01-01T00:00:00Z",
        )
        fields.update(overrides)
        return InventoryItem(**fields)

    return _make
