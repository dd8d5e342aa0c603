"""
Extraction of raw filament profile records from uploaded files.

Handles BambuStudio ``.bbsflmt`` bundles (ZIP archives of JSON profiles),
plain ``.json`` exports, and downloading either from a URL.
"""

import io
import json
import logging
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import unquote, urlparse
from zipfile import BadZipFile, ZipFile

import requests

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".bbsflmt", ".zip")
JSON_SUFFIXES = (".json",)


class ArchiveError(Exception):
    """Raised when an uploaded profile file cannot be read."""


def _decoded_items(value: Any) -> list[Any]:
    """A decoded JSON array contributes each element, anything else itself."""
    return list(value) if isinstance(value, list) else [value]


def _is_profile_entry(name: str) -> bool:
    # bundle_structure.json describes the bundle layout, not a profile.
    return name.endswith(".json") and "bundle" not in name


def extract_archive_records(data: bytes) -> list[Any]:
    """Decode every profile JSON entry of a ``.bbsflmt``/ZIP archive.

    Entries that are not valid JSON are skipped.
    """
    try:
        zip_f = ZipFile(io.BytesIO(data))
    except BadZipFile as e:
        raise ArchiveError(f"Not a valid profile bundle: {e}") from e

    records: list[Any] = []
    with zip_f:
        for name in zip_f.namelist():
            if not _is_profile_entry(name):
                continue
            try:
                decoded = json.loads(zip_f.read(name).decode("utf-8"))
            except (ValueError, UnicodeDecodeError) as e:
                logger.debug("Skipping bundle entry %s: %s", name, e)
                continue
            records.extend(_decoded_items(decoded))
    return records


def extract_json_records(data: bytes) -> list[Any]:
    """Decode a plain JSON export: a list of records or a single record."""
    try:
        decoded = json.loads(data.decode("utf-8-sig"))
    except (ValueError, UnicodeDecodeError) as e:
        raise ArchiveError(f"Invalid JSON: {e}") from e
    return _decoded_items(decoded)


def extract_records(filename: str, data: bytes) -> list[Any]:
    """
    Return the candidate raw records contained in an uploaded file.

    The format is chosen from the file name: ``.bbsflmt``/``.zip`` bundles
    yield every ``*.json`` entry whose name does not contain ``bundle``;
    ``.json`` files yield their array elements or the single object.

    Raises:
        ArchiveError: Unsupported extension, corrupt archive or invalid JSON.
    """
    lowered = filename.lower()
    if lowered.endswith(ARCHIVE_SUFFIXES):
        records = extract_archive_records(data)
    elif lowered.endswith(JSON_SUFFIXES):
        records = extract_json_records(data)
    else:
        raise ArchiveError(f"Unsupported profile format: {filename}")

    logger.debug("Extracted %d candidate record(s) from %s", len(records), filename)
    return records


def _filename_from_url(url: str) -> str:
    name = PurePosixPath(unquote(urlparse(url).path)).name
    return name or "download.json"


def fetch_archive(url: str, timeout: int = 30, max_retries: int = 3) -> tuple[str, bytes]:
    """Download a profile file, retrying on transient failures.

    Returns:
        ``(filename, content)``, the filename taken from the URL path so that
        ``extract_records`` can pick the format.

    Raises:
        ArchiveError: The download failed (HTTP error or all retries exhausted).
    """
    last_error: Exception | None = None
    for attempt in range(1, max_retries + 1):
        try:
            resp = requests.get(url, timeout=timeout)
            resp.raise_for_status()
            return _filename_from_url(url), resp.content
        except requests.exceptions.HTTPError as e:
            raise ArchiveError(f"Download failed: {e}") from e
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            last_error = e

        if attempt < max_retries:
            logger.warning("Download attempt %d/%d failed: %s", attempt, max_retries, last_error)

    raise ArchiveError(f"Download failed: {last_error}")
