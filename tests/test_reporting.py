"""Tests for console and report-file serialisation."""

from __future__ import annotations

import io
import json
from pathlib import Path

from specgraph.findings import CircularReference, FindingCode, MissingManifest, UnreferencedFile
from specgraph.reporting import JsonLinesReport, count_errors, doc_url, write_findings


def test_doc_url_uses_lowercase_anchor() -> None:
    assert doc_url(FindingCode.MISSING_MANIFEST) == "README.md#missing_manifest"
    assert doc_url(FindingCode.PARSE_ERROR, "https://example.com/docs") == "https://example.com/docs#parse_error"


def test_write_findings_prints_json_lines_and_mirrors_report(tmp_path: Path) -> None:
    report_path = tmp_path / "logs" / "report.jsonl"
    report = JsonLinesReport(report_path, docs_base_url="https://example.com/docs")
    findings = [
        UnreferencedFile(path="/specs/a.json", manifest_path="/specs/readme.md"),
        MissingManifest(path="/specs/svc"),
    ]
    stream = io.StringIO()

    written = write_findings(iter(findings), stream, report)

    assert written == findings
    printed = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert [item["code"] for item in printed] == ["UNREFERENCED_FILE", "MISSING_MANIFEST"]
    assert printed[0]["manifest_path"] == "/specs/readme.md"

    records = [json.loads(line) for line in report_path.read_text(encoding="utf-8").splitlines()]
    assert records[0]["type"] == "Result"
    assert records[0]["level"] == "Error"
    assert records[0]["docUrl"] == "https://example.com/docs#unreferenced_file"
    assert records[0]["paths"] == [
        {"tag": "path", "path": "/specs/a.json"},
        {"tag": "manifest", "path": "/specs/readme.md"},
    ]
    assert records[1]["paths"] == [{"tag": "folder", "path": "/specs/svc"}]
    assert records[1]["time"].endswith("Z")


def test_report_appends_fatal_errors(tmp_path: Path) -> None:
    report_path = tmp_path / "report.jsonl"
    report_path.write_text("", encoding="utf-8")
    report = JsonLinesReport(report_path)

    try:
        raise FileNotFoundError("Specification directory not found: /nowhere")
    except FileNotFoundError as exc:
        report.log_error(exc)

    record = json.loads(report_path.read_text(encoding="utf-8"))
    assert record["type"] == "Raw"
    assert record["level"] == "Error"
    assert "Specification directory not found" in record["message"]


def test_count_errors_ignores_warnings() -> None:
    findings = [
        CircularReference(path="/a"),
        UnreferencedFile(path="/b"),
        MissingManifest(path="/c"),
    ]

    assert count_errors(findings) == 2
