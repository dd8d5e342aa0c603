"""
Batch import: raw records → normalized presets → upserted into a library.
"""

import logging
from typing import Any, Iterable

from .archive import extract_records
from .models import ImportReport, Preset
from .normalizer import Clock, IdFactory, coerce_preset, is_filament_profile, normalize
from .progress import NullProgressReporter, ProgressReporter
from .resolver import find_exact, upsert

logger = logging.getLogger(__name__)


def _to_preset(record: Any, id_factory: IdFactory | None, clock: Clock | None) -> Preset | None:
    if is_filament_profile(record):
        return normalize(record, id_factory=id_factory, clock=clock)
    # Not a vendor profile; may still be one of our own preset exports.
    return coerce_preset(record, id_factory=id_factory, clock=clock)


def import_records(
    library: list[Preset],
    records: Iterable[Any],
    source: str = "",
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
    reporter: ProgressReporter | None = None,
) -> tuple[list[Preset], ImportReport]:
    """
    Normalize each record and upsert the results into *library*, in order.

    Records that do not normalize are counted as skipped; they never stop the
    batch.  Because upserts run one at a time, a later record replaces an
    earlier one from the same batch when they share brand and type.

    Returns:
        The new library and an ImportReport.  *library* itself is not modified.
    """
    _reporter = reporter or NullProgressReporter()
    report = ImportReport(source=source)
    updated = list(library)

    records = list(records)
    for i, record in enumerate(records, 1):
        report.records_seen += 1
        preset = _to_preset(record, id_factory, clock)
        if preset is None:
            report.skipped += 1
            continue

        _reporter.step(preset.label, i, len(records))
        if find_exact(updated, preset.brand, preset.type) is not None:
            report.replaced.append(preset.label)
        updated = upsert(updated, preset)
        report.imported.append(preset.label)

    logger.info(
        "Imported %d preset(s) from %s (%d replaced, %d skipped)",
        len(report.imported), source or "records", len(report.replaced), report.skipped,
    )
    return updated, report


def import_file(
    library: list[Preset],
    filename: str,
    data: bytes,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
    reporter: ProgressReporter | None = None,
) -> tuple[list[Preset], ImportReport]:
    """Extract records from an uploaded file and import them.

    Raises:
        ArchiveError: The file itself could not be read.
    """
    _reporter = reporter or NullProgressReporter()
    _reporter.update_status(f"Reading {filename}...")
    records = extract_records(filename, data)
    return import_records(
        library,
        records,
        source=filename,
        id_factory=id_factory,
        clock=clock,
        reporter=_reporter,
    )
