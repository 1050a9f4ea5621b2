from __future__ import annotations

from xml.etree.ElementTree import ParseError


class ExtractionError(Exception):
    """Base class for failures scoped to a single input file or archive entry."""


class MalformedDocumentError(ExtractionError, ParseError):
    """The document (XML text or zip container) could not be parsed."""


class UnreadableArchiveEntryError(ExtractionError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class UnrecognizedFileTypeError(ExtractionError):
    def __init__(self, filename: str):
        super().__init__(f"Unknown file type for {filename}")
        self.filename = filename
