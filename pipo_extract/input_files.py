from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


class InputFile(Protocol):
    name: str

    async def read_text(self) -> str:
        ...

    async def read_bytes(self) -> bytes:
        ...


def _decode_text(content_bytes: bytes) -> str:
    return content_bytes.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class InMemoryInputFile:
    """An already-received upload, e.g. the body of a multipart request."""

    name: str
    content: bytes

    async def read_text(self) -> str:
        return _decode_text(self.content)

    async def read_bytes(self) -> bytes:
        return self.content


@dataclass(frozen=True)
class LocalInputFile:
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    async def read_text(self) -> str:
        return _decode_text(await self.read_bytes())

    async def read_bytes(self) -> bytes:
        return await asyncio.to_thread(self.path.read_bytes)


def local_input_files(paths: list[str | Path]) -> list[LocalInputFile]:
    return [LocalInputFile(path=Path(path)) for path in paths]
