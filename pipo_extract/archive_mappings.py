from __future__ import annotations

import asyncio
import io
import logging
import zipfile
import zlib
from dataclasses import dataclass, field

from pipo_extract.errors import MalformedDocumentError, UnreadableArchiveEntryError
from pipo_extract.schema_models import ArchiveMapping
from pipo_extract.settings import ExtractionSettings, load_settings

MAPPING_KEYWORD = "mapping"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveExtraction:
    mappings: list[ArchiveMapping] = field(default_factory=list)
    skipped_entries: list[UnreadableArchiveEntryError] = field(default_factory=list)


def is_mapping_entry(path: str) -> bool:
    return MAPPING_KEYWORD in path.lower()


def _entry_name(path: str) -> str:
    return path.split("/")[-1]


def _read_entry_text(archive: zipfile.ZipFile, info: zipfile.ZipInfo, max_entry_bytes: int) -> str:
    if info.flag_bits & 0x1:
        raise UnreadableArchiveEntryError(info.filename, "entry is password protected")
    if info.file_size > max_entry_bytes:
        raise UnreadableArchiveEntryError(info.filename, f"entry exceeds {max_entry_bytes} bytes")

    try:
        payload = archive.read(info)
    except RuntimeError as exc:
        raise UnreadableArchiveEntryError(info.filename, "entry requires a password") from exc
    except (zipfile.BadZipFile, zlib.error, OSError) as exc:
        raise UnreadableArchiveEntryError(info.filename, f"entry appears corrupt ({exc})") from exc

    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise UnreadableArchiveEntryError(info.filename, "entry is not UTF-8 text") from exc


async def extract_archive_mappings(
    content_bytes: bytes,
    settings: ExtractionSettings | None = None,
) -> ArchiveExtraction:
    """Emit one mapping record per archive entry whose path mentions "mapping".

    Entry reads run concurrently; records keep the archive's entry order.
    Entries that cannot be read as UTF-8 text are reported in
    ``skipped_entries`` instead of producing a record.
    """

    try:
        archive = zipfile.ZipFile(io.BytesIO(content_bytes))
    except zipfile.BadZipFile as exc:
        raise MalformedDocumentError("Archive could not be read (corrupt ZIP archive).") from exc

    settings = settings or load_settings()
    semaphore = asyncio.Semaphore(settings.archive_concurrency)

    async def read_entry(info: zipfile.ZipInfo) -> ArchiveMapping | UnreadableArchiveEntryError:
        async with semaphore:
            try:
                text = await asyncio.to_thread(_read_entry_text, archive, info, settings.archive_max_entry_bytes)
            except UnreadableArchiveEntryError as exc:
                logger.warning("Skipping archive entry %s: %s", exc.path, exc.reason)
                return exc
        return ArchiveMapping(
            name=_entry_name(info.filename),
            path=info.filename,
            snippet=text[: settings.snippet_chars],
        )

    with archive:
        candidates = [info for info in archive.infolist() if not info.is_dir() and is_mapping_entry(info.filename)]
        outcomes = await asyncio.gather(*(read_entry(info) for info in candidates))

    return ArchiveExtraction(
        mappings=[outcome for outcome in outcomes if isinstance(outcome, ArchiveMapping)],
        skipped_entries=[outcome for outcome in outcomes if isinstance(outcome, UnreadableArchiveEntryError)],
    )
