"""Rule: the declared API version must appear in the file path."""

from __future__ import annotations

from typing import Iterator

from ..findings import Finding, InconsistentApiVersion
from ..models import Specification
from .base import Rule


class ApiVersionRule(Rule):
    """Flags documents whose ``info.version`` is not part of their path."""

    name = "api_version"

    def check(self, spec: Specification, document: object) -> Iterator[Finding]:
        if not isinstance(document, dict):
            return
        info = document.get("info")
        if not isinstance(info, dict):
            return
        version = info.get("version")
        if not isinstance(version, str) or not version:
            return
        if version not in spec.path:
            yield InconsistentApiVersion(
                path=spec.path,
                manifest_path=spec.manifest_path,
                version=version,
            )
