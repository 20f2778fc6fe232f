"""Incremental validation: report only findings introduced by a change."""

from __future__ import annotations

import os
from typing import Dict, Iterable, Iterator, List, Sequence

from .detectors import find_nearest_manifest
from .findings import Finding, FindingMap, MissingManifest
from .git.revision import RevisionSource
from .logging import get_logger
from .pipeline import Pipeline, is_excluded


def suppress_existing(
    target: FindingMap,
    source: FindingMap,
    changed_paths: Iterable[str],
) -> FindingMap:
    """Drop source findings that already existed in target and are unrelated to the change."""
    changed = list(changed_paths)
    result = FindingMap(source.values())
    for key in target.keys():
        finding = result.get(key)
        if finding is not None and not finding.is_related_to(changed):
            result.discard(key)
    return result


class IncrementalValidator:
    """Validates manifest directories touched by a change in two revisions.

    The two runs share one working tree, so they are strictly sequential:
    target is checked out and validated, then source.
    """

    def __init__(self, pipeline: Pipeline | None = None) -> None:
        self.pipeline = pipeline or Pipeline()
        self.logger = get_logger("diff")

    def run(self, revisions: RevisionSource, exclude: Sequence[str] = ()) -> Iterator[Finding]:
        working_dir = os.path.normpath(revisions.working_dir)
        changes = revisions.diff()
        changed_paths = [os.path.normpath(os.path.join(working_dir, change.path)) for change in changes]
        self.logger.info(
            "Comparing %s with %s (%d changed paths)",
            revisions.target_branch,
            revisions.source_branch,
            len(changed_paths),
        )

        manifest_dirs: Dict[str, None] = {}
        for parent in _parent_directories(changed_paths, working_dir):
            manifest_dir = find_nearest_manifest(parent, working_dir)
            if manifest_dir is not None:
                manifest_dirs.setdefault(manifest_dir, None)
                continue
            finding = MissingManifest(path=parent)
            if not is_excluded(finding, exclude):
                yield finding

        on_target = False
        try:
            for directory in manifest_dirs:
                self.logger.info("Validating %s in both revisions", directory)
                revisions.checkout(revisions.target_branch)
                on_target = True
                target = self.pipeline.validate_dir(directory, exclude)

                revisions.checkout(revisions.source_branch)
                on_target = False
                source = self.pipeline.validate_dir(directory, exclude)

                introduced = suppress_existing(target, source, changed_paths)
                self.logger.debug(
                    "%s: %d target findings, %d source findings, %d reported",
                    directory,
                    len(target),
                    len(source),
                    len(introduced),
                )
                yield from introduced.values()
        finally:
            if on_target:
                revisions.checkout(revisions.source_branch)


def _parent_directories(paths: Iterable[str], working_dir: str) -> List[str]:
    parents: Dict[str, None] = {}
    for path in paths:
        parent = os.path.dirname(path)
        if parent != working_dir:
            parents.setdefault(parent, None)
    return list(parents)


__all__ = ["IncrementalValidator", "suppress_existing"]
