from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable

from pipo_extract.archive_mappings import extract_archive_mappings
from pipo_extract.certificates import extract_pem_certificates
from pipo_extract.errors import ExtractionError, UnreadableArchiveEntryError, UnrecognizedFileTypeError
from pipo_extract.input_files import InputFile
from pipo_extract.interfaces import extract_configuration_document
from pipo_extract.partners import extract_directory_partners
from pipo_extract.schema_models import (
    ArchiveMapping,
    Certificate,
    Diagnostic,
    FileOutcome,
    Interface,
    Partner,
    RunResult,
    XmlMapping,
)
from pipo_extract.settings import ExtractionSettings, load_settings

CONFIGURATION_ROUTE = "configuration"
ARCHIVE_ROUTE = "archive"
PARTNER_DIRECTORY_ROUTE = "partner_directory"
PEM_CERTIFICATES_ROUTE = "pem_certificates"
UNRECOGNIZED_ROUTE = "unrecognized"

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


@dataclass(frozen=True)
class DispatchRule:
    """Filename rule; both the suffix and the keyword condition must hold.

    An empty ``suffixes`` or ``keywords`` tuple leaves that condition out.
    """

    route: str
    suffixes: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()

    def matches(self, filename: str) -> bool:
        lowered = filename.lower()
        if self.suffixes and not lowered.endswith(self.suffixes):
            return False
        if self.keywords and not any(keyword in lowered for keyword in self.keywords):
            return False
        return True


# Order matters: the first matching rule wins.
DISPATCH_RULES: tuple[DispatchRule, ...] = (
    DispatchRule(route=CONFIGURATION_ROUTE, suffixes=(".xml",), keywords=("ico",)),
    DispatchRule(route=ARCHIVE_ROUTE, suffixes=(".tpz", ".zip")),
    DispatchRule(route=PARTNER_DIRECTORY_ROUTE, keywords=("b2b", "partner")),
    DispatchRule(route=PEM_CERTIFICATES_ROUTE, suffixes=(".crt", ".pem")),
)


def classify_filename(filename: str, rules: tuple[DispatchRule, ...] = DISPATCH_RULES) -> str:
    for rule in rules:
        if rule.matches(filename):
            return rule.route
    return UNRECOGNIZED_ROUTE


@dataclass(frozen=True)
class FileExtraction:
    message: str
    interfaces: list[Interface] = field(default_factory=list)
    mappings: list[XmlMapping | ArchiveMapping] = field(default_factory=list)
    partners: list[Partner] = field(default_factory=list)
    certificates: list[Certificate] = field(default_factory=list)
    skipped_entries: list[UnreadableArchiveEntryError] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "interfaces": len(self.interfaces),
            "mappings": len(self.mappings),
            "partners": len(self.partners),
            "certificates": len(self.certificates),
        }


async def _extract_configuration(file: InputFile, settings: ExtractionSettings) -> FileExtraction:
    extraction = extract_configuration_document(await file.read_text())
    return FileExtraction(
        message=(
            f"Parsed {len(extraction.interfaces)} interfaces, {len(extraction.partners)} partners, "
            f"{len(extraction.certificates)} certificates, {len(extraction.mappings)} mappings from {file.name}"
        ),
        interfaces=extraction.interfaces,
        mappings=extraction.mappings,
        partners=extraction.partners,
        certificates=extraction.certificates,
    )


async def _extract_archive(file: InputFile, settings: ExtractionSettings) -> FileExtraction:
    extraction = await extract_archive_mappings(await file.read_bytes(), settings)
    return FileExtraction(
        message=f"Extracted {len(extraction.mappings)} mappings from {file.name}",
        mappings=extraction.mappings,
        skipped_entries=extraction.skipped_entries,
    )


async def _extract_partner_directory(file: InputFile, settings: ExtractionSettings) -> FileExtraction:
    partners = extract_directory_partners(await file.read_text())
    return FileExtraction(message=f"Parsed {len(partners)} partners from {file.name}", partners=partners)


async def _extract_pem_certificates(file: InputFile, settings: ExtractionSettings) -> FileExtraction:
    certificates = extract_pem_certificates(await file.read_text(), subject_chars=settings.pem_subject_chars)
    return FileExtraction(message=f"Parsed {len(certificates)} certs from {file.name}", certificates=certificates)


async def _reject_unrecognized(file: InputFile, settings: ExtractionSettings) -> FileExtraction:
    raise UnrecognizedFileTypeError(file.name)


RouteHandler = Callable[[InputFile, ExtractionSettings], Awaitable[FileExtraction]]

ROUTE_HANDLERS: dict[str, RouteHandler] = {
    CONFIGURATION_ROUTE: _extract_configuration,
    ARCHIVE_ROUTE: _extract_archive,
    PARTNER_DIRECTORY_ROUTE: _extract_partner_directory,
    PEM_CERTIFICATES_ROUTE: _extract_pem_certificates,
    UNRECOGNIZED_ROUTE: _reject_unrecognized,
}


class _RunAccumulator:
    def __init__(self) -> None:
        self.interfaces: list[Interface] = []
        self.mappings: list[XmlMapping | ArchiveMapping] = []
        self.partners: list[Partner] = []
        self.certificates: list[Certificate] = []
        self.diagnostics: list[Diagnostic] = []
        self.files: list[FileOutcome] = []

    def note(self, level: str, filename: str, message: str) -> None:
        logger.log(_LOG_LEVELS[level], message)
        self.diagnostics.append(Diagnostic(level=level, filename=filename, message=message))

    def merge(self, extraction: FileExtraction) -> None:
        self.interfaces.extend(extraction.interfaces)
        self.mappings.extend(extraction.mappings)
        self.partners.extend(extraction.partners)
        self.certificates.extend(extraction.certificates)

    def to_result(self) -> RunResult:
        return RunResult(
            interfaces=self.interfaces,
            mappings=self.mappings,
            partners=self.partners,
            certificates=self.certificates,
            diagnostics=self.diagnostics,
            files=self.files,
        )


async def _process_file(file: InputFile, run: _RunAccumulator, settings: ExtractionSettings) -> None:
    filename = file.name or ""
    run.note("info", filename, f"Processing: {filename}")
    route = classify_filename(filename)

    try:
        extraction = await ROUTE_HANDLERS[route](file, settings)
    except UnrecognizedFileTypeError as exc:
        run.note("warning", filename, f"Unknown file type for {filename}, skipped")
        run.files.append(FileOutcome(filename=filename, route=route, status="skipped", error=str(exc)))
        return
    except ExtractionError as exc:
        run.note("error", filename, f"Error processing {filename}: {exc}")
        run.files.append(FileOutcome(filename=filename, route=route, status="error", error=str(exc)))
        return
    except Exception as exc:
        logger.exception("Unexpected failure while extracting %s", filename)
        run.note("error", filename, f"Error processing {filename}: {exc}")
        run.files.append(FileOutcome(filename=filename, route=route, status="error", error=str(exc)))
        return

    for skipped in extraction.skipped_entries:
        run.note("warning", filename, f"Skipped archive entry {skipped.path} in {filename}: {skipped.reason}")
    run.merge(extraction)
    run.note("info", filename, extraction.message)
    run.files.append(FileOutcome(filename=filename, route=route, status="success", counts=extraction.counts()))


async def run_extraction(
    files: Iterable[InputFile],
    *,
    settings: ExtractionSettings | None = None,
) -> RunResult:
    """Process ``files`` one after another and return everything they yielded.

    A failing file only contributes a diagnostic and an error outcome; the
    run always completes.
    """

    settings = settings or load_settings()
    run = _RunAccumulator()
    for file in files:
        await _process_file(file, run, settings)
    run.note("info", "", "Parsing complete.")
    return run.to_result()


def run_extraction_sync(
    files: Iterable[InputFile],
    *,
    settings: ExtractionSettings | None = None,
) -> RunResult:
    return asyncio.run(run_extraction(files, settings=settings))
