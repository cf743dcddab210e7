"""
Tests for batch processing.

Text extraction is patched with a filename -> text mapping and the
completion service is faked, so the tests exercise the orchestration only.
"""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from invoice_extract.pipeline import (
    DirectoryMissingError,
    artifact_path_for,
    find_pdf_files,
    process_invoice,
    process_invoices_directory,
)
from invoice_extract.schemas import ExtractionFailure, ExtractionSuccess, UsageMetrics
from invoice_extract.service import ServiceFailure
from invoice_extract.usage import UsageAccumulator


def make_input_dir(tmp_path: Path, texts: dict[str, str]) -> Path:
    input_dir = tmp_path / "invoices"
    input_dir.mkdir()
    for name in texts:
        (input_dir / name).write_bytes(b"%PDF-1.4")
    return input_dir


def fake_text_extractor(texts: dict[str, str]):
    return lambda path: texts.get(Path(path).name, "")


def read_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


class TestFindPdfFiles:
    """Tests for input file selection."""

    def test_selects_pdfs_case_insensitively(self, tmp_path):
        for name in ["b.PDF", "a.pdf", "c.Pdf", "notes.txt", "image.png"]:
            (tmp_path / name).write_bytes(b"x")
        (tmp_path / "folder.pdf").mkdir()

        names = [p.name for p in find_pdf_files(tmp_path)]
        assert names == ["a.pdf", "b.PDF", "c.Pdf"]

    def test_artifact_name(self, tmp_path):
        assert artifact_path_for(Path("in/Invoice 7.PDF"), tmp_path) == tmp_path / "Invoice 7_data.json"


class TestProcessInvoice:
    """Tests for single-document processing."""

    def test_success_writes_record(self, tmp_path, make_client, sample_invoice_json):
        client, _ = make_client(replies=[sample_invoice_json])
        accumulator = UsageAccumulator()
        pdf_path = tmp_path / "a.pdf"

        with patch("invoice_extract.pipeline.extract_text_from_pdf", return_value="Invoice #100"):
            outcome = process_invoice(pdf_path, client, tmp_path, accumulator)

        assert isinstance(outcome, ExtractionSuccess)
        data = read_json(tmp_path / "a_data.json")
        assert data["invoiceNumber"] == "100"
        assert data["usage"]["totalTokens"] == 150
        assert accumulator.summary.per_file["a.pdf"].total_tokens == 150

    def test_empty_text_is_skipped(self, tmp_path, make_client):
        client, service = make_client()
        accumulator = UsageAccumulator()

        with patch("invoice_extract.pipeline.extract_text_from_pdf", return_value="  \n "):
            outcome = process_invoice(tmp_path / "b.pdf", client, tmp_path, accumulator)

        assert outcome is None
        assert not (tmp_path / "b_data.json").exists()
        assert service.calls == []
        assert accumulator.summary.document_count == 0

    def test_none_result_is_skipped(self, tmp_path):
        client = MagicMock()
        client.extract.return_value = None

        with patch("invoice_extract.pipeline.extract_text_from_pdf", return_value="text"):
            outcome = process_invoice(tmp_path / "c.pdf", client, tmp_path, UsageAccumulator())

        assert outcome is None
        assert not (tmp_path / "c_data.json").exists()

    def test_unexpected_exception_is_contained(self, tmp_path):
        client = MagicMock()
        client.extract.side_effect = RuntimeError("boom")

        with patch("invoice_extract.pipeline.extract_text_from_pdf", return_value="text"):
            outcome = process_invoice(tmp_path / "d.pdf", client, tmp_path, UsageAccumulator())

        assert outcome is None
        assert not (tmp_path / "d_data.json").exists()

    def test_written_artifact_is_never_reported_as_skipped(self, tmp_path, make_client):
        client, _ = make_client(replies=["{}"])
        accumulator = UsageAccumulator()
        accumulator.record("f.pdf", UsageMetrics(total_tokens=1))

        with patch("invoice_extract.pipeline.extract_text_from_pdf", return_value="Invoice"):
            outcome = process_invoice(tmp_path / "f.pdf", client, tmp_path, accumulator)

        assert isinstance(outcome, ExtractionSuccess)
        assert (tmp_path / "f_data.json").exists()
        assert accumulator.summary.per_file["f.pdf"].total_tokens == 150

    def test_error_record_written(self, tmp_path, make_client):
        client, _ = make_client(replies=["no json here"])
        accumulator = UsageAccumulator()

        with patch("invoice_extract.pipeline.extract_text_from_pdf", return_value="Invoice"):
            outcome = process_invoice(tmp_path / "e.pdf", client, tmp_path, accumulator)

        assert isinstance(outcome, ExtractionFailure)
        data = read_json(tmp_path / "e_data.json")
        assert data["error"] == "Failed to parse API response as JSON"
        assert data["rawResponse"] == "no json here"
        assert "invoiceNumber" not in data
        # The call itself succeeded, so its usage still counts
        assert accumulator.summary.document_count == 1


class TestProcessInvoicesDirectory:
    """Tests for batch runs."""

    def test_missing_directory(self, tmp_path, make_client):
        client, _ = make_client()
        with pytest.raises(DirectoryMissingError):
            process_invoices_directory(tmp_path / "nope", tmp_path / "out", client)
        assert not (tmp_path / "out").exists()

    def test_no_pdfs(self, tmp_path, make_client):
        client, _ = make_client()
        input_dir = make_input_dir(tmp_path, {})
        (input_dir / "readme.txt").write_text("hi")
        output_dir = tmp_path / "out"

        report = process_invoices_directory(input_dir, output_dir, client)

        assert report.total == 0
        assert report.summary_path is None
        assert output_dir.is_dir()
        assert list(output_dir.iterdir()) == []

    def test_failure_isolation(self, tmp_path, make_client):
        texts = {f"doc{i}.pdf": f"Invoice #{i}" for i in range(1, 5)}
        input_dir = make_input_dir(tmp_path, texts)
        output_dir = tmp_path / "out"
        client, service = make_client(replies=[
            '{"invoiceNumber": "1"}',
            ServiceFailure(error_detail="timed out"),
            '{"invoiceNumber": "3"}',
            '{"invoiceNumber": "4"}',
        ])

        with patch("invoice_extract.pipeline.extract_text_from_pdf", side_effect=fake_text_extractor(texts)):
            report = process_invoices_directory(input_dir, output_dir, client)

        assert report.succeeded == ["doc1.pdf", "doc3.pdf", "doc4.pdf"]
        assert report.failed == ["doc2.pdf"]
        assert report.skipped == []
        assert len(service.calls) == 4

        error_artifacts = [
            p.name for p in output_dir.glob("*_data.json") if "error" in read_json(p)
        ]
        assert error_artifacts == ["doc2_data.json"]
        assert read_json(output_dir / "doc2_data.json")["error"] == "Fake API error: timed out"
        assert read_json(output_dir / "doc4_data.json")["invoiceNumber"] == "4"

        # Transport failures carry no usage
        assert sorted(report.usage.per_file) == ["doc1.pdf", "doc3.pdf", "doc4.pdf"]
        assert report.usage.totals.total_tokens == 450

    def test_processed_in_name_order(self, tmp_path, make_client):
        texts = {"c.pdf": "C", "a.pdf": "A", "b.pdf": "B"}
        input_dir = make_input_dir(tmp_path, texts)
        client, service = make_client(replies=["{}", "{}", "{}"])

        with patch("invoice_extract.pipeline.extract_text_from_pdf", side_effect=fake_text_extractor(texts)):
            process_invoices_directory(input_dir, tmp_path / "out", client)

        assert [user.rsplit("\n", 1)[-1] for _, user in service.calls] == ["A", "B", "C"]

    def test_end_to_end_example(self, tmp_path, make_client):
        texts = {"a.pdf": "Invoice #100, Total: 50 USD", "b.pdf": ""}
        input_dir = make_input_dir(tmp_path, texts)
        (input_dir / "b.pdf").write_bytes(b"")
        output_dir = tmp_path / "outputs"
        client, service = make_client(replies=[
            '```json\n{"invoiceNumber": "100", "currency": "USD", "totalAmount": 50}\n```',
        ])

        with patch("invoice_extract.pipeline.extract_text_from_pdf", side_effect=fake_text_extractor(texts)):
            report = process_invoices_directory(input_dir, output_dir, client)

        assert sorted(p.name for p in output_dir.iterdir()) == ["a_data.json", "token_usage_summary.json"]

        record = read_json(output_dir / "a_data.json")
        assert record["invoiceNumber"] == "100"
        assert record["totalAmount"] == pytest.approx(50)
        assert record["vendor"]["name"] == ""

        summary = read_json(output_dir / "token_usage_summary.json")
        assert list(summary["perFile"]) == ["a.pdf"]
        assert summary["documentCount"] == 1
        assert summary["totals"]["totalTokens"] == 150

        assert report.skipped == ["b.pdf"]
        assert report.summary_path == output_dir / "token_usage_summary.json"
        assert len(service.calls) == 1

    def test_rerun_overwrites_summary(self, tmp_path, make_client):
        texts = {"a.pdf": "Invoice"}
        input_dir = make_input_dir(tmp_path, texts)
        output_dir = tmp_path / "out"

        with patch("invoice_extract.pipeline.extract_text_from_pdf", side_effect=fake_text_extractor(texts)):
            client, _ = make_client(replies=["{}"])
            process_invoices_directory(input_dir, output_dir, client)
            client, _ = make_client(replies=["{}"])
            report = process_invoices_directory(input_dir, output_dir, client)

        summary = read_json(output_dir / "token_usage_summary.json")
        assert summary["totals"]["totalTokens"] == 150
        assert report.usage.document_count == 1
