from __future__ import annotations

import re
from typing import Iterator
from xml.etree import ElementTree as ET

from pipo_extract.errors import MalformedDocumentError

# Comments, CDATA sections, processing instructions and doctype declarations
# are matched first so their content is passed through untouched.
_MARKUP_PATTERN = re.compile(
    r"<!--.*?-->"
    r"|<!\[CDATA\[.*?\]\]>"
    r"|<\?.*?\?>"
    r"|<!.*?>"
    r"|<(?P<closing>/?)(?P<name>[^\s/>!?]+)"
    r"(?P<attributes>(?:\s+[^\s=/>]+\s*=\s*(?:\"[^\"]*\"|'[^']*'))*)"
    r"(?P<tail>\s*/?)>",
    re.DOTALL,
)
_ATTRIBUTE_PATTERN = re.compile(r"([^\s=]+)\s*=\s*(\"[^\"]*\"|'[^']*')")
_SELECTOR_PATTERN = re.compile(
    r"^\s*(?P<tag>[^\s\[\]]+)\s*"
    r"(?:\[\s*(?P<attr>[^\s=\]]+)\s*(?:=\s*(?:\"(?P<dq>[^\"]*)\"|'(?P<sq>[^']*)'|(?P<bare>[^\]\s]*)))?\s*\])?\s*$"
)


def _local_name(name: str) -> str:
    return name.rsplit(":", 1)[-1]


def _is_namespace_declaration(name: str) -> bool:
    return name == "xmlns" or name.startswith("xmlns:")


def _rewrite_tag(match: re.Match) -> str:
    if match.group("name") is None:
        return match.group(0)

    attributes = [
        f" {_local_name(name)}={value}"
        for name, value in _ATTRIBUTE_PATTERN.findall(match.group("attributes") or "")
        if not _is_namespace_declaration(name)
    ]
    tail = "/" if "/" in match.group("tail") else ""
    return f"<{match.group('closing')}{_local_name(match.group('name'))}{''.join(attributes)}{tail}>"


def strip_namespaces(xml_text: str) -> str:
    """Drop ``xmlns`` declarations and ``prefix:`` qualifiers from tag syntax.

    Attribute values and character data are left exactly as they were, so
    applying the function twice gives the same text as applying it once.
    """

    return _MARKUP_PATTERN.sub(_rewrite_tag, xml_text)


def _parse_selector(selector: str) -> tuple[str, str | None, str | None]:
    match = _SELECTOR_PATTERN.match(selector)
    if match is None:
        raise ValueError(f"Unsupported selector '{selector}'.")
    value = next(
        (group for group in (match.group("dq"), match.group("sq"), match.group("bare")) if group is not None),
        None,
    )
    return match.group("tag"), match.group("attr"), value


class XmlElement:
    """Read-only view of a parsed element with local-name lookups."""

    __slots__ = ("_element",)

    def __init__(self, element: ET.Element):
        self._element = element

    def __repr__(self) -> str:
        return f"<XmlElement {self.tag}>"

    @property
    def tag(self) -> str:
        return self._element.tag

    @property
    def text(self) -> str:
        return "".join(self._element.itertext())

    def get(self, attribute: str, default: str | None = None) -> str | None:
        return self._element.get(attribute, default)

    def _descendants(self) -> Iterator[ET.Element]:
        iterator = self._element.iter()
        next(iterator)
        for element in iterator:
            if isinstance(element.tag, str):
                yield element

    def find_all(self, tag: str) -> list[XmlElement]:
        return [XmlElement(element) for element in self._descendants() if element.tag == tag]

    def find_first(self, selector: str) -> XmlElement | None:
        tag, attribute, value = _parse_selector(selector)
        for element in self._descendants():
            if element.tag != tag:
                continue
            if attribute is not None:
                actual = element.get(attribute)
                if actual is None or (value is not None and actual != value):
                    continue
            return XmlElement(element)
        return None

    def child_text(self, tag: str) -> str:
        first = self.find_first(tag)
        return first.text if first is not None else ""

    def texts(self, tag: str) -> list[str]:
        return [element.text for element in self.find_all(tag)]


class XmlDocument(XmlElement):
    """Whole parsed document; lookups include the root element itself."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"<XmlDocument root={self.tag}>"

    @property
    def root(self) -> XmlElement:
        return XmlElement(self._element)

    def _descendants(self) -> Iterator[ET.Element]:
        for element in self._element.iter():
            if isinstance(element.tag, str):
                yield element


def load_document(xml_text: str) -> XmlDocument:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise MalformedDocumentError(f"Malformed XML: {exc}") from exc
    return XmlDocument(root)


def load_normalized_document(xml_text: str) -> XmlDocument:
    return load_document(strip_namespaces(xml_text))
