"""
Builtin preset library and plate defaults.

Shipped presets for common filaments. They are never written to the user
library; a user preset with the same brand/type shadows them at lookup time
(see ``resolver.merge_library``).
"""

from .models import BedSettings, BedTemperature, PlateType, Preset, PresetSource

# Human-readable plate names, in display order.
PLATE_LABELS: dict[PlateType, str] = {
    PlateType.COOL_STABILIZED: "Cool Plate (SuperTack)",
    PlateType.COOL: "Cool Plate",
    PlateType.ENGINEERING: "Engineering Plate",
    PlateType.SMOOTH_HIGH_TEMP: "Smooth / High Temp Plate",
    PlateType.TEXTURED: "Textured PEI Plate",
}

_DEFAULT_BED_TEMPS: dict[str, tuple[int, int]] = {
    "cool_stabilized": (35, 35),
    "cool": (55, 50),
    "engineering": (90, 90),
    "smooth_high_temp": (65, 60),
    "textured": (65, 60),
}


def _bed(**overrides: tuple[int, int]) -> BedSettings:
    """Build bed settings from the defaults, overriding selected plates."""
    temps = dict(_DEFAULT_BED_TEMPS)
    temps.update(overrides)
    return BedSettings(
        **{
            plate: BedTemperature(initial=initial, other=other)
            for plate, (initial, other) in temps.items()
        }
    )


DEFAULT_BED_SETTINGS: BedSettings = _bed()

_BUILTIN_CREATED_AT = "2026-01-01"


def _builtin(
    id: str,
    brand: str,
    type: str,
    temp_min: int,
    temp_max: int,
    flow_ratio: float,
    pressure_advance: float,
    max_volumetric_speed: float,
    bed_settings: BedSettings,
    default_plate: PlateType = PlateType.TEXTURED,
) -> Preset:
    return Preset(
        id=id,
        brand=brand,
        type=type,
        temp_min=temp_min,
        temp_max=temp_max,
        flow_ratio=flow_ratio,
        pressure_advance=pressure_advance,
        max_volumetric_speed=max_volumetric_speed,
        default_plate=default_plate,
        bed_settings=bed_settings,
        source=PresetSource.BUILTIN,
        created_at=_BUILTIN_CREATED_AT,
    )


BUILTIN_PRESETS: list[Preset] = [
    # Bambu Lab PLA
    _builtin(
        "builtin-bambu-pla-basic", "Bambu Lab", "PLA Basic",
        190, 220, 0.98, 0.02, 21,
        _bed(textured=(65, 60), cool=(35, 30)),
    ),
    _builtin(
        "builtin-bambu-pla-matte", "Bambu Lab", "PLA Matte",
        190, 220, 0.98, 0.02, 21,
        _bed(textured=(65, 60)),
    ),
    # Bambu Lab PETG
    _builtin(
        "builtin-bambu-petg-basic", "Bambu Lab", "PETG Basic",
        230, 260, 0.98, 0.02, 12,
        _bed(textured=(80, 75), smooth_high_temp=(90, 85)),
    ),
    # Bambu Lab ABS
    _builtin(
        "builtin-bambu-abs", "Bambu Lab", "ABS",
        240, 270, 0.98, 0.04, 12,
        _bed(engineering=(105, 100)),
        default_plate=PlateType.ENGINEERING,
    ),
    _builtin(
        "builtin-esun-pla-plus", "eSUN", "PLA+",
        205, 230, 0.98, 0.025, 18,
        _bed(textured=(65, 60)),
    ),
    _builtin(
        "builtin-polymaker-petg", "Polymaker", "PETG Basic",
        230, 250, 0.96, 0.03, 10,
        _bed(textured=(75, 70)),
    ),
]
