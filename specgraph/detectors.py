"""Set-based checks: directories without manifests and unreferenced files."""

from __future__ import annotations

import os
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set

from .findings import MissingManifest, UnreferencedFile
from .models import SpecKind, Specification, kind_for_path
from .scanner import SpecTree, contains_manifest

ROOT_CATEGORIES: Sequence[str] = ("data-plane", "resource-manager")
IGNORED_SEGMENTS: Sequence[str] = ("common",)


def find_nearest_manifest(start: str, stop: str, *, include_stop: bool = False) -> Optional[str]:
    """Return the closest directory at or above ``start`` holding a manifest.

    The search ends at ``stop``; ``stop`` itself is only considered when
    ``include_stop`` is set.
    """
    current = os.path.normpath(start)
    stop = os.path.normpath(stop)
    while True:
        if current == stop:
            if include_stop and contains_manifest(current):
                return current
            return None
        if contains_manifest(current):
            return current
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def _segments(path: str) -> List[str]:
    return [segment.lower() for segment in path.replace("\\", "/").split("/")]


def is_tracked_directory(
    directory: str,
    root: str,
    categories: Sequence[str] = ROOT_CATEGORIES,
    ignored: Sequence[str] = IGNORED_SEGMENTS,
) -> bool:
    """True for directories under a root category and outside any ignored segment.

    The category may sit above ``root`` (validating a ``resource-manager``
    folder directly); ignored segments only count below it.
    """
    if any(segment in ignored for segment in _segments(os.path.relpath(directory, root))):
        return False
    segments = _segments(directory)
    return any(category in segments for category in categories)


def detect_missing_manifests(
    tree: SpecTree,
    categories: Sequence[str] = ROOT_CATEGORIES,
    ignored: Sequence[str] = IGNORED_SEGMENTS,
) -> Iterator[MissingManifest]:
    """Yield one finding per schema directory with no manifest up to the scan root."""
    checked: Set[str] = set()
    for path in tree.spec_files:
        if kind_for_path(path) is not SpecKind.SCHEMA:
            continue
        directory = os.path.dirname(path)
        if directory in checked:
            continue
        checked.add(directory)
        if not is_tracked_directory(directory, tree.root, categories, ignored):
            continue
        if find_nearest_manifest(directory, tree.root, include_stop=True) is None:
            yield MissingManifest(path=directory)


def collect_candidates(tree: SpecTree, manifests: Iterable[str]) -> Dict[str, Specification]:
    """Map every JSON file under each manifest's directory to a specification.

    A file below several manifests is attributed to the first one given.
    """
    candidates: Dict[str, Specification] = {}
    for manifest_path in manifests:
        prefix = os.path.dirname(manifest_path) + os.sep
        for path in tree.spec_files:
            if path.startswith(prefix) and path not in candidates:
                candidates[path] = Specification.for_path(path, manifest_path)
    return candidates


def detect_orphans(candidates: Iterable[Specification], black: Set[str]) -> Iterator[UnreferencedFile]:
    """Yield files never reached by the traversal."""
    for spec in candidates:
        if spec.path not in black:
            yield UnreferencedFile(path=spec.path, manifest_path=spec.manifest_path, kind=spec.kind)


__all__ = [
    "IGNORED_SEGMENTS",
    "ROOT_CATEGORIES",
    "collect_candidates",
    "detect_missing_manifests",
    "detect_orphans",
    "find_nearest_manifest",
    "is_tracked_directory",
]
