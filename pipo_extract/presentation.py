from __future__ import annotations

from pipo_extract.interfaces import PROVENANCE_PREFIX
from pipo_extract.schema_models import ArchiveMapping, Certificate, Interface, Partner, RunResult, XmlMapping


def describe_interface(interface: Interface) -> str:
    line = interface.id
    if interface.sender or interface.receiver:
        line += f" ({interface.sender} → {interface.receiver})"
    if interface.mappings:
        line += f" [{len(interface.mappings)} mapping(s)]"
    return line


def describe_mapping(mapping: XmlMapping | ArchiveMapping) -> str:
    if isinstance(mapping, ArchiveMapping):
        return mapping.name
    if mapping.name.startswith(PROVENANCE_PREFIX):
        return f"{mapping.name} – {mapping.source} → {mapping.target} ({mapping.program})"
    return f"{mapping.source} → {mapping.target}"


def describe_partner(partner: Partner) -> str:
    if partner.contact:
        return f"{partner.name} – {partner.contact}"
    return partner.name


def describe_certificate(certificate: Certificate) -> str:
    line = certificate.alias
    if certificate.subject:
        line += f" – {certificate.subject}"
    if certificate.valid_from and certificate.valid_to:
        line += f" ({certificate.valid_from} to {certificate.valid_to})"
    return line


def render_run_result(result: RunResult) -> dict[str, list[str]]:
    return {
        "files": [outcome.filename for outcome in result.files],
        "interfaces": [describe_interface(interface) for interface in result.interfaces],
        "mappings": [describe_mapping(mapping) for mapping in result.mappings],
        "partners": [describe_partner(partner) for partner in result.partners],
        "certificates": [describe_certificate(certificate) for certificate in result.certificates],
        "logs": result.log_lines,
    }
