"""Serialization of findings for consoles and pipeline report files."""

from __future__ import annotations

import json
import traceback
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, TextIO

from .findings import Finding, FindingCode, Severity

DEFAULT_DOCS_BASE_URL = "README.md"


def doc_url(code: FindingCode, base: Optional[str] = None) -> str:
    """Return the documentation anchor for ``code``."""
    return f"{base or DEFAULT_DOCS_BASE_URL}#{code.value.lower()}"


def _timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def result_record(finding: Finding, docs_base_url: Optional[str] = None) -> Dict[str, object]:
    return {
        "type": "Result",
        "level": finding.level.value,
        "code": finding.code.value,
        "message": finding.message,
        "docUrl": doc_url(finding.code, docs_base_url),
        "time": _timestamp(),
        "paths": [{"tag": tag, "path": path} for tag, path in finding.path_fields()],
    }


def raw_record(error: BaseException) -> Dict[str, object]:
    message = "".join(traceback.format_exception(type(error), error, error.__traceback__)).strip()
    return {
        "type": "Raw",
        "level": Severity.ERROR.value,
        "message": message or str(error),
        "time": _timestamp(),
    }


class JsonLinesReport:
    """Appends one JSON record per finding or fatal error to a report file."""

    def __init__(self, path: Path, docs_base_url: Optional[str] = None) -> None:
        self._path = path
        self._docs_base_url = docs_base_url

    def log_result(self, finding: Finding) -> None:
        self._append(result_record(finding, self._docs_base_url))

    def log_error(self, error: BaseException) -> None:
        self._append(raw_record(error))

    def _append(self, record: Dict[str, object]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")


def write_findings(findings: Iterable[Finding], stream: TextIO, report: JsonLinesReport | None = None) -> List[Finding]:
    """Print each finding as a JSON line and mirror it to ``report``."""
    written: List[Finding] = []
    for finding in findings:
        stream.write(json.dumps(finding.to_dict()) + "\n")
        if report is not None:
            report.log_result(finding)
        written.append(finding)
    return written


def count_errors(findings: Iterable[Finding]) -> int:
    return sum(1 for finding in findings if finding.level is Severity.ERROR)


__all__ = [
    "DEFAULT_DOCS_BASE_URL",
    "JsonLinesReport",
    "count_errors",
    "doc_url",
    "raw_record",
    "result_record",
    "write_findings",
]
