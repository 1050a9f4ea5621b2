from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class XmlMapping(_Record):
    """Field mapping declared inside a configuration document.

    ``name`` stays empty on the copy nested in its interface and carries the
    ``[ICO] <interface id>`` provenance tag on the flattened copy.
    """

    kind: Literal["xml"] = "xml"
    source: str = ""
    target: str = ""
    program: str = ""
    name: str = ""


class ArchiveMapping(_Record):
    """Mapping fragment found as an entry of a zip/tpz archive."""

    kind: Literal["archive"] = "archive"
    name: str = ""
    path: str = ""
    snippet: str = ""


Mapping = Annotated[Union[XmlMapping, ArchiveMapping], Field(discriminator="kind")]


class Interface(_Record):
    id: str = ""
    sender: str = ""
    receiver: str = ""
    adapter: str = ""
    modules: list[str] = Field(default_factory=list)
    mappings: list[XmlMapping] = Field(default_factory=list)


class Partner(_Record):
    id: str = ""
    name: str = ""
    contact: str = ""


class Certificate(_Record):
    alias: str = ""
    subject: str = ""
    valid_from: str = ""
    valid_to: str = ""


class Diagnostic(_Record):
    level: Literal["info", "warning", "error"] = "info"
    filename: str = ""
    message: str


class FileOutcome(_Record):
    filename: str
    route: str
    status: Literal["success", "skipped", "error"]
    counts: dict[str, int] = Field(default_factory=dict)
    error: str = ""


class RunResult(_Record):
    """Everything one extraction run produced, in file-processing order."""

    interfaces: list[Interface] = Field(default_factory=list)
    mappings: list[Mapping] = Field(default_factory=list)
    partners: list[Partner] = Field(default_factory=list)
    certificates: list[Certificate] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    files: list[FileOutcome] = Field(default_factory=list)

    @property
    def log_lines(self) -> list[str]:
        return [diagnostic.message for diagnostic in self.diagnostics]


def run_result_json_schema() -> dict[str, Any]:
    """Expose JSON schema for tests and tooling."""

    return RunResult.model_json_schema()
