"""Rule: management-plane documents live under ``resource-manager``."""

from __future__ import annotations

from typing import Iterator

from ..findings import Finding, InvalidFileLocation
from ..models import Specification
from .base import Rule

MANAGEMENT_HOST = "management.azure.com"
MANAGEMENT_SEGMENT = "resource-manager"


class FileLocationRule(Rule):
    name = "file_location"

    def __init__(self, host: str = MANAGEMENT_HOST, segment: str = MANAGEMENT_SEGMENT) -> None:
        self._host = host
        self._segment = segment

    def check(self, spec: Specification, document: object) -> Iterator[Finding]:
        if not isinstance(document, dict):
            return
        if document.get("host") == self._host and self._segment not in spec.path:
            yield InvalidFileLocation(path=spec.path, manifest_path=spec.manifest_path)
