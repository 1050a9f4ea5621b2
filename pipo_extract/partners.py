from __future__ import annotations

from pipo_extract.schema_models import Partner
from pipo_extract.xml_document import XmlDocument, load_normalized_document

PARTNER_TAG = "Partner"


def extract_embedded_partners(document: XmlDocument) -> list[Partner]:
    """Partners embedded in a configuration export carry their fields as child elements."""

    return [
        Partner(
            id=element.child_text("ID"),
            name=element.child_text("Name"),
            contact=element.child_text("Contact"),
        )
        for element in document.find_all(PARTNER_TAG)
    ]


def extract_directory_partners(xml_text: str) -> list[Partner]:
    """Partner directories keep id and name as attributes; only the contact is a child."""

    document = load_normalized_document(xml_text)
    return [
        Partner(
            id=element.get("id") or "",
            name=element.get("name") or "",
            contact=element.child_text("Contact"),
        )
        for element in document.find_all(PARTNER_TAG)
    ]
