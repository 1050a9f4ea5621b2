from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field

DEFAULT_SNIPPET_CHARS = 200
DEFAULT_PEM_SUBJECT_CHARS = 50
DEFAULT_ARCHIVE_CONCURRENCY = 8
DEFAULT_ARCHIVE_MAX_ENTRY_BYTES = 50 * 1024 * 1024
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionSettings:
    snippet_chars: int = DEFAULT_SNIPPET_CHARS
    pem_subject_chars: int = DEFAULT_PEM_SUBJECT_CHARS
    archive_concurrency: int = DEFAULT_ARCHIVE_CONCURRENCY
    archive_max_entry_bytes: int = DEFAULT_ARCHIVE_MAX_ENTRY_BYTES
    log_level: str = DEFAULT_LOG_LEVEL
    cors_allowed_origins: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def _positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %d", name, raw, default)
        return default
    return value


def _log_level_env(name: str, default: str) -> str:
    raw = (os.getenv(name) or "").strip().upper()
    if raw and isinstance(logging.getLevelName(raw), int):
        return raw
    return default


def load_settings() -> ExtractionSettings:
    origins = [
        origin.strip()
        for origin in os.getenv("PIPO_CORS_ALLOWED_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")
        if origin.strip()
    ]
    return ExtractionSettings(
        snippet_chars=_positive_int_env("PIPO_SNIPPET_CHARS", DEFAULT_SNIPPET_CHARS),
        pem_subject_chars=_positive_int_env("PIPO_PEM_SUBJECT_CHARS", DEFAULT_PEM_SUBJECT_CHARS),
        archive_concurrency=_positive_int_env("PIPO_ARCHIVE_CONCURRENCY", DEFAULT_ARCHIVE_CONCURRENCY),
        archive_max_entry_bytes=_positive_int_env(
            "PIPO_ARCHIVE_MAX_ENTRY_BYTES", DEFAULT_ARCHIVE_MAX_ENTRY_BYTES
        ),
        log_level=_log_level_env("PIPO_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        cors_allowed_origins=origins,
    )
