from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from pipo_extract.certificates import extract_xml_certificates
from pipo_extract.partners import extract_embedded_partners
from pipo_extract.schema_models import Certificate, Interface, Partner, XmlMapping
from pipo_extract.xml_document import XmlDocument, XmlElement, load_normalized_document

PROVENANCE_PREFIX = "[ICO]"


@dataclass(frozen=True)
class InterfaceDialect:
    """One XML shape an integrated configuration can be exported in."""

    name: str
    tag: str
    build: Callable[[XmlElement], Interface]


@dataclass(frozen=True)
class ConfigurationExtraction:
    interfaces: list[Interface] = field(default_factory=list)
    mappings: list[XmlMapping] = field(default_factory=list)
    partners: list[Partner] = field(default_factory=list)
    certificates: list[Certificate] = field(default_factory=list)


def _build_nested_mapping(element: XmlElement) -> XmlMapping:
    return XmlMapping(
        source=element.child_text("Source"),
        target=element.child_text("Target"),
        program=element.child_text("Program"),
    )


def _build_primary_interface(element: XmlElement) -> Interface:
    # Parties are positional: the first is the sender, the second the receiver.
    parties = element.texts("Party")
    return Interface(
        id=element.get("id") or "",
        sender=parties[0] if len(parties) > 0 else "",
        receiver=parties[1] if len(parties) > 1 else "",
        adapter=element.child_text("Adapter"),
        modules=element.texts("Module"),
        mappings=[_build_nested_mapping(mapping) for mapping in element.find_all("Mapping")],
    )


def _first_named(element: XmlElement, *selectors: str) -> str:
    for selector in selectors:
        match = element.find_first(selector)
        value = match.get("name") if match is not None else None
        if value:
            return value
    return ""


def _build_legacy_interface(element: XmlElement) -> Interface:
    identifier = element.get("id")
    if identifier is None:
        identifier = element.get("name") or ""
    return Interface(
        id=identifier,
        sender=_first_named(element, "SenderParty", "SenderComponent"),
        receiver=_first_named(element, "ReceiverParty", "ReceiverComponent"),
        adapter=element.child_text("Adapter"),
        modules=element.texts("Module"),
    )


PRIMARY_DIALECT = InterfaceDialect(name="primary", tag="IntegratedConfiguration", build=_build_primary_interface)
LEGACY_DIALECT = InterfaceDialect(name="legacy", tag="ICO", build=_build_legacy_interface)
INTERFACE_DIALECTS: tuple[InterfaceDialect, ...] = (PRIMARY_DIALECT, LEGACY_DIALECT)


def extract_interfaces(
    document: XmlDocument,
    dialects: tuple[InterfaceDialect, ...] = INTERFACE_DIALECTS,
) -> list[Interface]:
    interfaces: list[Interface] = []
    for dialect in dialects:
        interfaces.extend(dialect.build(element) for element in document.find_all(dialect.tag))
    return interfaces


def flatten_interface_mappings(interfaces: list[Interface]) -> list[XmlMapping]:
    """Copy every nested mapping into one list, tagged with its interface id."""

    return [
        mapping.model_copy(update={"name": f"{PROVENANCE_PREFIX} {interface.id}"})
        for interface in interfaces
        for mapping in interface.mappings
    ]


def extract_configuration_document(xml_text: str) -> ConfigurationExtraction:
    """Extract interfaces, mappings, partners and certificates from a configuration export.

    Raises ``MalformedDocumentError`` when the text is not well-formed XML.
    """

    document = load_normalized_document(xml_text)
    interfaces = extract_interfaces(document)
    return ConfigurationExtraction(
        interfaces=interfaces,
        mappings=flatten_interface_mappings(interfaces),
        partners=extract_embedded_partners(document),
        certificates=extract_xml_certificates(document),
    )
