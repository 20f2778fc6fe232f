"""Checks applied to each manifest file."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator, List, Optional

from .findings import Finding, MultipleApiVersionsForTag, NotRecognizedManifest
from .logging import get_logger
from .manifest import DEFAULT_MARKER, ManifestModel, parse_manifest

_API_VERSION_SEGMENT = re.compile(r"^\d{4}-\d{2}-\d{2}(-preview)?$")

logger = get_logger("manifest_checks")


def version_from_input_file(file_path: str) -> Optional[str]:
    """Return the first directory segment that looks like an API version."""
    segments = file_path.replace("\\", "/").split("/")[:-1]
    if len(segments) > 1:
        for segment in segments:
            if _API_VERSION_SEGMENT.match(segment):
                return segment
    return None


def default_tag_versions(model: ManifestModel) -> List[str]:
    """Distinct API versions referenced by the default tag, in declaration order."""
    tag = model.default_tag()
    if not tag:
        return []
    versions: List[str] = []
    for entry in model.input_files(tag):
        version = version_from_input_file(entry)
        if version and version not in versions:
            versions.append(version)
    return versions


class ManifestChecker:
    """Runs the format and default-tag checks for manifests."""

    def __init__(self, marker: str = DEFAULT_MARKER) -> None:
        self._marker = marker

    def check(self, manifest_path: str) -> Iterator[Finding]:
        try:
            text = Path(manifest_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Cannot read manifest %s: %s", manifest_path, exc)
            yield NotRecognizedManifest(path=manifest_path)
            return
        yield from self.check_model(manifest_path, parse_manifest(text))

    def check_model(self, manifest_path: str, model: ManifestModel) -> Iterator[Finding]:
        if not model.has_recognized_marker(self._marker):
            yield NotRecognizedManifest(path=manifest_path)
        versions = default_tag_versions(model)
        if len(versions) > 1:
            yield MultipleApiVersionsForTag(
                path=manifest_path,
                tag=model.default_tag() or "",
                versions=tuple(versions),
            )


__all__ = ["ManifestChecker", "default_tag_versions", "version_from_input_file"]
