from __future__ import annotations

import re

from pipo_extract.schema_models import Certificate
from pipo_extract.settings import DEFAULT_PEM_SUBJECT_CHARS
from pipo_extract.xml_document import XmlDocument

CERTIFICATE_TAG = "Certificate"
PEM_BLOCK_PATTERN = re.compile(r"-----BEGIN CERTIFICATE-----(.*?)-----END CERTIFICATE-----", re.DOTALL)


def extract_xml_certificates(document: XmlDocument) -> list[Certificate]:
    return [
        Certificate(
            alias=element.child_text("Alias"),
            subject=element.child_text("Subject"),
            valid_from=element.child_text("ValidFrom"),
            valid_to=element.child_text("ValidTo"),
        )
        for element in document.find_all(CERTIFICATE_TAG)
    ]


def extract_pem_certificates(text: str, *, subject_chars: int = DEFAULT_PEM_SUBJECT_CHARS) -> list[Certificate]:
    """Locate PEM certificate blocks without decoding them.

    The subject is a placeholder: the leading characters of the block,
    delimiters included.
    """

    return [
        Certificate(alias=f"pem-{index}", subject=match.group(0)[:subject_chars])
        for index, match in enumerate(PEM_BLOCK_PATTERN.finditer(text))
    ]
