import asyncio
import io
import unittest
import zipfile

import pytest

from pipo_extract import dispatcher
from pipo_extract.dispatcher import (
    ARCHIVE_ROUTE,
    CONFIGURATION_ROUTE,
    PARTNER_DIRECTORY_ROUTE,
    PEM_CERTIFICATES_ROUTE,
    UNRECOGNIZED_ROUTE,
    classify_filename,
    run_extraction,
    run_extraction_sync,
)
from pipo_extract.input_files import InMemoryInputFile, LocalInputFile, local_input_files
from pipo_extract.schema_models import ArchiveMapping, XmlMapping
from pipo_extract.settings import ExtractionSettings

CONFIGURATION_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<ns0:ConfigurationExport xmlns:ns0="urn:sap-com:xi">
  <ns0:IntegratedConfiguration id="ICO_ORDERS">
    <ns0:Party>Buyer</ns0:Party>
    <ns0:Party>Seller</ns0:Party>
    <ns0:Adapter>SOAP</ns0:Adapter>
    <ns0:Mapping><Source>OrderNo</Source><Target>PONumber</Target><Program>MM_Order</Program></ns0:Mapping>
  </ns0:IntegratedConfiguration>
  <Partner><ID>P1</ID><Name>Buyer Inc</Name><Contact>buyer@example.com</Contact></Partner>
</ns0:ConfigurationExport>
"""

PARTNER_DIRECTORY_XML = b"""<PartnerDirectory>
  <Partner id="B2B-1" name="Seller GmbH"><Contact>edi@seller.example</Contact></Partner>
</PartnerDirectory>
"""

PEM_BUNDLE = b"""-----BEGIN CERTIFICATE-----
QUJDREVG
-----END CERTIFICATE-----
-----BEGIN CERTIFICATE-----
R0hJSktM
-----END CERTIFICATE-----
"""


def _zip_bytes(entries: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, payload in entries.items():
            archive.writestr(name, payload)
    return buffer.getvalue()


@pytest.mark.parametrize(
    ("filename", "route"),
    [
        ("ICO-Export.XML", CONFIGURATION_ROUTE),
        ("ico-partner.xml", CONFIGURATION_ROUTE),
        ("mappings.TPZ", ARCHIVE_ROUTE),
        ("partner-bundle.zip", ARCHIVE_ROUTE),
        ("B2B_directory.xml", PARTNER_DIRECTORY_ROUTE),
        ("partners.json", PARTNER_DIRECTORY_ROUTE),
        ("partner-cert.pem", PARTNER_DIRECTORY_ROUTE),
        ("ico-export.json", UNRECOGNIZED_ROUTE),
        ("server.CRT", PEM_CERTIFICATES_ROUTE),
        ("chain.pem", PEM_CERTIFICATES_ROUTE),
        ("notes.txt", UNRECOGNIZED_ROUTE),
        ("", UNRECOGNIZED_ROUTE),
    ],
)
def test_classify_filename_uses_first_matching_rule(filename, route):
    assert classify_filename(filename) == route


class TestRunExtraction(unittest.TestCase):
    def setUp(self):
        self.settings = ExtractionSettings()

    def test_entities_accumulate_in_file_order(self):
        files = [
            InMemoryInputFile(name="ico_export.xml", content=CONFIGURATION_XML),
            InMemoryInputFile(name="bundle.tpz", content=_zip_bytes({"MessageMapping/MM_Order.xml": b"<mm/>"})),
            InMemoryInputFile(name="b2b_directory.xml", content=PARTNER_DIRECTORY_XML),
            InMemoryInputFile(name="chain.pem", content=PEM_BUNDLE),
        ]

        result = run_extraction_sync(files, settings=self.settings)

        self.assertEqual([interface.id for interface in result.interfaces], ["ICO_ORDERS"])
        self.assertEqual(len(result.mappings), 2)
        self.assertIsInstance(result.mappings[0], XmlMapping)
        self.assertEqual(result.mappings[0].name, "[ICO] ICO_ORDERS")
        self.assertIsInstance(result.mappings[1], ArchiveMapping)
        self.assertEqual(result.mappings[1].name, "MM_Order.xml")
        self.assertEqual([partner.id for partner in result.partners], ["P1", "B2B-1"])
        self.assertEqual([certificate.alias for certificate in result.certificates], ["pem-0", "pem-1"])
        self.assertEqual([outcome.status for outcome in result.files], ["success"] * 4)
        self.assertEqual(
            result.files[0].counts,
            {"interfaces": 1, "mappings": 1, "partners": 1, "certificates": 0},
        )
        self.assertEqual(
            result.log_lines,
            [
                "Processing: ico_export.xml",
                "Parsed 1 interfaces, 1 partners, 0 certificates, 1 mappings from ico_export.xml",
                "Processing: bundle.tpz",
                "Extracted 1 mappings from bundle.tpz",
                "Processing: b2b_directory.xml",
                "Parsed 1 partners from b2b_directory.xml",
                "Processing: chain.pem",
                "Parsed 2 certs from chain.pem",
                "Parsing complete.",
            ],
        )

    def test_malformed_file_does_not_discard_other_results(self):
        files = [
            InMemoryInputFile(name="ico_first.xml", content=CONFIGURATION_XML),
            InMemoryInputFile(name="ico_broken.xml", content=b"<ConfigurationExport><ICO></ConfigurationExport>"),
            InMemoryInputFile(name="chain.pem", content=PEM_BUNDLE),
        ]

        result = run_extraction_sync(files, settings=self.settings)

        self.assertEqual(len(result.interfaces), 1)
        self.assertEqual(len(result.certificates), 2)
        self.assertEqual([outcome.status for outcome in result.files], ["success", "error", "success"])
        errors = [diagnostic for diagnostic in result.diagnostics if diagnostic.level == "error"]
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].filename, "ico_broken.xml")
        self.assertTrue(errors[0].message.startswith("Error processing ico_broken.xml: Malformed XML"))
        self.assertEqual(result.log_lines[-1], "Parsing complete.")

    def test_unrecognized_file_is_skipped_with_a_diagnostic(self):
        result = run_extraction_sync([InMemoryInputFile(name="notes.txt", content=b"hello")], settings=self.settings)

        self.assertEqual(result.interfaces, [])
        self.assertEqual(result.files[0].status, "skipped")
        self.assertEqual(result.files[0].route, UNRECOGNIZED_ROUTE)
        self.assertIn("Unknown file type for notes.txt, skipped", result.log_lines)
        self.assertEqual(result.diagnostics[1].level, "warning")

    def test_archive_entry_failures_are_reported_per_entry(self):
        content = _zip_bytes({"mapping_ok.txt": b"ok", "mapping_bad.bin": b"\xff\xfe\x81"})

        result = run_extraction_sync([InMemoryInputFile(name="export.zip", content=content)], settings=self.settings)

        self.assertEqual([mapping.name for mapping in result.mappings], ["mapping_ok.txt"])
        self.assertEqual(result.files[0].status, "success")
        self.assertIn(
            "Skipped archive entry mapping_bad.bin in export.zip: entry is not UTF-8 text",
            result.log_lines,
        )

    def test_corrupt_archive_is_an_error_outcome(self):
        result = run_extraction_sync([InMemoryInputFile(name="broken.zip", content=b"not a zip")], settings=self.settings)

        self.assertEqual(result.mappings, [])
        self.assertEqual(result.files[0].status, "error")
        self.assertIn("corrupt ZIP archive", result.files[0].error)

    def test_unexpected_handler_failure_is_contained(self):
        async def explode(file, settings):
            raise RuntimeError("boom")

        files = [
            InMemoryInputFile(name="chain.pem", content=PEM_BUNDLE),
            InMemoryInputFile(name="mappings.zip", content=b""),
        ]
        original = dispatcher.ROUTE_HANDLERS[ARCHIVE_ROUTE]
        dispatcher.ROUTE_HANDLERS[ARCHIVE_ROUTE] = explode
        try:
            with self.assertLogs("pipo_extract.dispatcher", level="ERROR"):
                result = run_extraction_sync(files, settings=self.settings)
        finally:
            dispatcher.ROUTE_HANDLERS[ARCHIVE_ROUTE] = original

        self.assertEqual(len(result.certificates), 2)
        self.assertEqual(result.files[1].status, "error")
        self.assertEqual(result.files[1].error, "boom")

    def test_each_run_starts_from_an_empty_result(self):
        files = [InMemoryInputFile(name="chain.pem", content=PEM_BUNDLE)]

        first = run_extraction_sync(files, settings=self.settings)
        second = run_extraction_sync(files, settings=self.settings)

        self.assertEqual(len(first.certificates), 2)
        self.assertEqual(len(second.certificates), 2)
        self.assertEqual(second.certificates[0].alias, "pem-0")

    def test_empty_batch_completes(self):
        result = asyncio.run(run_extraction([], settings=self.settings))

        self.assertEqual(result.log_lines, ["Parsing complete."])
        self.assertEqual(result.files, [])


def test_local_input_files_are_read_from_disk(tmp_path):
    (tmp_path / "ico_local.xml").write_bytes(CONFIGURATION_XML)
    (tmp_path / "partner_directory.xml").write_bytes(PARTNER_DIRECTORY_XML)

    files = local_input_files([tmp_path / "ico_local.xml", str(tmp_path / "partner_directory.xml")])
    result = run_extraction_sync(files, settings=ExtractionSettings())

    assert all(isinstance(file, LocalInputFile) for file in files)
    assert [outcome.filename for outcome in result.files] == ["ico_local.xml", "partner_directory.xml"]
    assert [partner.name for partner in result.partners] == ["Buyer Inc", "Seller GmbH"]


def test_missing_local_file_becomes_an_error_outcome(tmp_path):
    result = run_extraction_sync([LocalInputFile(path=tmp_path / "gone.pem")], settings=ExtractionSettings())

    assert result.files[0].status == "error"
    assert result.log_lines[1].startswith("Error processing gone.pem:")
