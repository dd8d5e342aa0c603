"""
filament_presets CLI: import slicer filament profiles and apply presets to spools.

Usage:
    filament-presets <command> [options]
    python -m filament_presets <command> [options]
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from filament_presets import (
    BUILTIN_PRESETS,
    ApplyReport,
    Preset,
    PresetRepository,
    PresetSource,
    FileBlobStore,
    apply_to_inventory,
    delete_preset,
    find_exact,
    import_file,
    match_inventory,
    merge_library,
)
from filament_presets.archive import ArchiveError, fetch_archive
from filament_presets.builtin import PLATE_LABELS
from filament_presets.progress import (
    NullProgressReporter,
    ProgressReporter,
    RichProgressReporter,
)
from filament_presets.store import StoreError

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="filament-presets",
        description="Filament preset import and inventory parameter management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  filament-presets import "Acme PETG.bbsflmt"
  filament-presets import https://example.com/profiles/acme-petg.json
  filament-presets list --source user
  filament-presets find "Bambu Lab" "PLA Basic"
  filament-presets apply "Bambu Lab" "PLA Basic" --dry-run
  filament-presets delete import-0b7c...

Environment variables:
  FILAMENT_PRESETS_DATA     Default data directory (instead of "data")

Profile files (.bbsflmt / .json) placed in <data>/presets/ are read as
additional user presets on every lookup.
        """,
    )

    parser.add_argument(
        "--verbose", "-V", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true",
        help="Suppress non-error output (logging only)",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        required=True,
        metavar="<command>",
    )

    # --- import ---
    import_parser = subparsers.add_parser(
        "import",
        help="Import presets from a .bbsflmt bundle or JSON file (path or URL)",
    )
    import_parser.add_argument("file", help="Path or http(s) URL of the profile file")
    _add_common_arguments(import_parser)
    import_parser.set_defaults(func=run_import)

    # --- list ---
    list_parser = subparsers.add_parser(
        "list",
        help="List builtin and user presets",
    )
    list_parser.add_argument(
        "--source",
        choices=[s.value for s in PresetSource],
        default=None,
        help="Only list presets from this source",
    )
    _add_common_arguments(list_parser)
    list_parser.set_defaults(func=run_list)

    # --- find ---
    find_parser = subparsers.add_parser(
        "find",
        help="Look up the preset for a brand and type (case-insensitive, exact)",
    )
    find_parser.add_argument("brand", help="Filament brand (e.g. 'Bambu Lab')")
    find_parser.add_argument("type", help="Filament type (e.g. 'PLA Basic')")
    _add_common_arguments(find_parser)
    find_parser.set_defaults(func=run_find)

    # --- apply ---
    apply_parser = subparsers.add_parser(
        "apply",
        help="Apply a preset's print parameters to all matching spools",
    )
    apply_parser.add_argument("brand", help="Filament brand")
    apply_parser.add_argument("type", help="Filament type")
    apply_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show which spools would change without writing",
    )
    _add_common_arguments(apply_parser)
    apply_parser.set_defaults(func=run_apply)

    # --- delete ---
    delete_parser = subparsers.add_parser(
        "delete",
        help="Delete a user preset by id",
    )
    delete_parser.add_argument("preset_id", help="Preset id (see 'list')")
    _add_common_arguments(delete_parser)
    delete_parser.set_defaults(func=run_delete)

    return parser


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--data",
        "-d",
        default=None,
        help="Data directory path (default: $FILAMENT_PRESETS_DATA or 'data')",
    )
    parser.add_argument(
        "--json", action="store_true", help="Output as JSON"
    )


def _default_data() -> str:
    """Return the default data directory from env or fallback."""
    return os.environ.get("FILAMENT_PRESETS_DATA", "data")


def _repository(args: argparse.Namespace) -> PresetRepository:
    return PresetRepository(FileBlobStore(Path(args.data or _default_data())))


def _make_reporter(args: argparse.Namespace) -> ProgressReporter:
    """Status lines go to stderr unless the output is JSON or --quiet is set."""
    if getattr(args, "json", False) or getattr(args, "quiet", False):
        return NullProgressReporter()
    return RichProgressReporter()


def _library(repo: PresetRepository) -> list[Preset]:
    """Lookup order: presets.json, then the presets/ folder, then builtin."""
    return merge_library(BUILTIN_PRESETS, repo.load_presets() + repo.load_folder_presets())


def _print_preset(preset) -> None:
    print(f"{preset.brand} / {preset.type}  [{preset.source.value}] {preset.id}")
    print(f"  Nozzle:        {preset.temp_min}-{preset.temp_max} °C")
    print(f"  Flow ratio:    {preset.flow_ratio}")
    print(f"  PA:            {preset.pressure_advance}")
    if preset.max_volumetric_speed is not None:
        print(f"  Max vol speed: {preset.max_volumetric_speed} mm³/s")
    print(f"  Default plate: {PLATE_LABELS[preset.default_plate]}")
    for plate, label in PLATE_LABELS.items():
        temp = preset.bed_settings.for_plate(plate)
        print(f"    {label:<26} {temp.initial} / {temp.other} °C")


def run_import(args: argparse.Namespace) -> int:
    """Execute the import command."""
    use_json = getattr(args, "json", False)
    reporter = _make_reporter(args)

    if args.file.startswith(("http://", "https://")):
        reporter.update_status(f"Downloading {args.file}...")
        filename, data = fetch_archive(args.file)
    else:
        path = Path(args.file)
        if not path.is_file():
            logger.error("File '%s' does not exist", path)
            return 1
        filename, data = path.name, path.read_bytes()

    repo = _repository(args)
    library, report = import_file(repo.load_presets(), filename, data, reporter=reporter)
    if report.imported:
        repo.save_presets(library)

    if use_json:
        print(json.dumps(report.model_dump(), indent=2, ensure_ascii=False))
    elif not report.imported:
        print(f"No valid presets found in {filename}")
    else:
        print(f"\nImport complete:")
        print(f"  Records read: {report.records_seen}")
        print(f"  Imported:     {len(report.imported)}")
        print(f"  Replaced:     {len(report.replaced)}")
        print(f"  Skipped:      {report.skipped}")
        print()
        for label in report.imported:
            marker = "~" if label in report.replaced else "+"
            print(f"  {marker} {label}")

    return 0


def run_list(args: argparse.Namespace) -> int:
    """Execute the list command."""
    repo = _repository(args)
    presets = _library(repo)
    if args.source:
        presets = [p for p in presets if p.source.value == args.source]

    if getattr(args, "json", False):
        print(json.dumps([p.to_json_dict() for p in presets], indent=2, ensure_ascii=False))
    elif not presets:
        print("No presets found")
    else:
        print(f"Presets ({len(presets)} total):")
        for p in presets:
            print(
                f"  {p.brand} / {p.type} ({p.source.value}, "
                f"{p.temp_min}-{p.temp_max} °C) {p.id}"
            )

    return 0


def run_find(args: argparse.Namespace) -> int:
    """Execute the find command."""
    repo = _repository(args)
    library = _library(repo)
    preset = find_exact(library, args.brand, args.type)

    if getattr(args, "json", False):
        print(json.dumps(preset.to_json_dict() if preset else None, indent=2, ensure_ascii=False))
    elif preset is None:
        print(f"No preset for {args.brand} / {args.type}")
    else:
        _print_preset(preset)

    return 0 if preset else 1


def run_apply(args: argparse.Namespace) -> int:
    """Execute the apply command: push a preset onto matching spools."""
    use_json = getattr(args, "json", False)
    repo = _repository(args)
    library = _library(repo)

    preset = find_exact(library, args.brand, args.type)
    if preset is None:
        logger.error("No preset found for %s / %s", args.brand, args.type)
        return 1

    inventory = repo.load_inventory()
    matches = match_inventory(preset, inventory)
    report = ApplyReport(
        preset_id=preset.id,
        brand=preset.brand,
        type=preset.type,
        updated=[item.id for item in matches],
    )

    if matches and not args.dry_run:
        repo.save_inventory(apply_to_inventory(preset, inventory))

    if use_json:
        print(json.dumps(report.model_dump(), indent=2, ensure_ascii=False))
    elif not matches:
        print("No matching spools found.")
    else:
        action = "Would update" if args.dry_run else "Updated"
        print(f"{action} {len(matches)} spool(s) from {preset.label}:")
        for item in matches:
            name = f" {item.color_name}" if item.color_name else ""
            print(f"  {item.id}{name} ({item.remaining:g} g left)")

    return 0


def run_delete(args: argparse.Namespace) -> int:
    """Execute the delete command."""
    if any(p.id == args.preset_id for p in BUILTIN_PRESETS):
        logger.error("Builtin preset '%s' cannot be deleted", args.preset_id)
        return 1

    repo = _repository(args)
    library = repo.load_presets()
    updated = delete_preset(library, args.preset_id)
    if len(updated) == len(library):
        if any(p.id == args.preset_id for p in repo.load_folder_presets()):
            logger.error(
                "Preset '%s' comes from a file in %s; remove the file instead",
                args.preset_id, repo.presets_dir,
            )
        else:
            logger.error("Preset not found: %s", args.preset_id)
        return 1

    repo.save_presets(updated)
    if getattr(args, "json", False):
        print(json.dumps({"deleted": args.preset_id}, indent=2))
    else:
        print(f"Deleted preset {args.preset_id}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    # Configure logging
    if getattr(args, "verbose", False):
        log_level = logging.DEBUG
    elif getattr(args, "quiet", False):
        log_level = logging.ERROR
    else:
        log_level = logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    if hasattr(args, "func"):
        try:
            return args.func(args)
        except KeyboardInterrupt:
            logger.error("Interrupted")
            return 1
        except ArchiveError as e:
            logger.error("Cannot read profile file: %s", e)
            return 1
        except StoreError as e:
            logger.error("Data directory %s is damaged: %s", args.data or _default_data(), e)
            return 1
        except Exception as e:
            logger.error("%s", e)
            if getattr(args, "verbose", False):
                logger.debug("Traceback:", exc_info=True)
            return 1
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
