"""Tests for incremental validation between two revisions."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Dict, List, Mapping

import pytest

from specgraph.diff_engine import IncrementalValidator, suppress_existing
from specgraph.findings import CircularReference, FindingCode, FindingMap, MissingManifest, UnreferencedFile
from specgraph.models import FileChange
from tests._fixtures.tree_builder import TreeBuilder, manifest_text, schema

RM = "svc/resource-manager"
STABLE = f"{RM}/stable/2020-01-01"

BASE_TREE: Dict[str, object] = {
    f"{RM}/readme.md": manifest_text(["stable/2020-01-01/a.json"]),
    f"{STABLE}/a.json": {**schema(["./b.json"]), "info": {"version": "2020-01-01"}},
    f"{STABLE}/b.json": schema(["./a.json"]),
    f"{STABLE}/orphan.json": schema(),
}


class _FakeRevisions:
    """Swaps the tree contents on checkout and records the revisions requested."""

    def __init__(
        self,
        builder: TreeBuilder,
        trees: Mapping[str, Mapping[str, object]],
        changes: List[FileChange],
        *,
        target_branch: str = "main",
        source_branch: str = "feature",
    ) -> None:
        self.working_dir = builder.path()
        self.target_branch = target_branch
        self.source_branch = source_branch
        self.checkouts: List[str] = []
        self._builder = builder
        self._trees = trees
        self._changes = changes
        self._materialise(source_branch)

    def diff(self) -> List[FileChange]:
        return list(self._changes)

    def checkout(self, revision: str) -> None:
        self.checkouts.append(revision)
        self._materialise(revision)

    def _materialise(self, revision: str) -> None:
        root = Path(self.working_dir)
        for child in root.iterdir():
            if child.is_dir():
                shutil.rmtree(child)
            else:
                child.unlink()
        self._builder.write(self._trees[revision])


def test_identical_trees_with_unrelated_change_report_nothing(tree_builder: TreeBuilder) -> None:
    revisions = _FakeRevisions(
        tree_builder,
        {"main": BASE_TREE, "feature": BASE_TREE},
        [FileChange("M", f"{STABLE}/a.json")],
    )

    findings = list(IncrementalValidator().run(revisions))

    assert findings == []
    assert revisions.checkouts == ["main", "feature"]


def test_new_finding_is_reported(tree_builder: TreeBuilder) -> None:
    source_tree = {**BASE_TREE, f"{STABLE}/added.json": schema()}
    revisions = _FakeRevisions(
        tree_builder,
        {"main": BASE_TREE, "feature": source_tree},
        [FileChange("A", f"{STABLE}/added.json")],
    )

    findings = list(IncrementalValidator().run(revisions))

    assert findings == [
        UnreferencedFile(
            path=tree_builder.path(f"{STABLE}/added.json"),
            manifest_path=tree_builder.path(f"{RM}/readme.md"),
        )
    ]


def test_existing_finding_on_changed_file_is_kept(tree_builder: TreeBuilder) -> None:
    revisions = _FakeRevisions(
        tree_builder,
        {"main": BASE_TREE, "feature": BASE_TREE},
        [FileChange("M", f"{STABLE}/orphan.json")],
    )

    findings = list(IncrementalValidator().run(revisions))

    assert [finding.code for finding in findings] == [FindingCode.UNREFERENCED_FILE]
    assert findings[0].path == tree_builder.path(f"{STABLE}/orphan.json")


def test_change_to_manifest_keeps_every_attributed_finding(tree_builder: TreeBuilder) -> None:
    revisions = _FakeRevisions(
        tree_builder,
        {"main": BASE_TREE, "feature": BASE_TREE},
        [FileChange("M", f"{RM}/readme.md")],
    )

    findings = list(IncrementalValidator().run(revisions))

    assert sorted(finding.code.value for finding in findings) == ["CIRCULAR_REFERENCE", "UNREFERENCED_FILE"]


def test_fixed_finding_is_not_reported(tree_builder: TreeBuilder) -> None:
    source_tree = {key: value for key, value in BASE_TREE.items() if not key.endswith("orphan.json")}
    revisions = _FakeRevisions(
        tree_builder,
        {"main": BASE_TREE, "feature": source_tree},
        [FileChange("D", f"{STABLE}/orphan.json")],
    )

    assert list(IncrementalValidator().run(revisions)) == []


def test_changed_directory_without_manifest(tree_builder: TreeBuilder) -> None:
    tree = {**BASE_TREE, "other/spec/x.json": schema(), "top-level.md": "# notes\n"}
    revisions = _FakeRevisions(
        tree_builder,
        {"main": tree, "feature": tree},
        [FileChange("A", "other/spec/x.json"), FileChange("M", "top-level.md")],
    )

    findings = list(IncrementalValidator().run(revisions))
    excluded = list(IncrementalValidator().run(revisions, exclude=[r"other/spec$"]))

    assert findings == [MissingManifest(path=tree_builder.path("other/spec"))]
    assert excluded == []
    assert revisions.checkouts == []


def test_manifest_directory_missing_in_target_is_tolerated(tree_builder: TreeBuilder) -> None:
    source_tree = {
        "new/readme.md": manifest_text(["a.json"]),
        "new/a.json": schema(),
    }
    revisions = _FakeRevisions(
        tree_builder,
        {"main": {"keep.txt": "x"}, "feature": source_tree},
        [FileChange("A", "new/readme.md"), FileChange("A", "new/a.json")],
    )

    assert list(IncrementalValidator().run(revisions)) == []
    assert revisions.checkouts == ["main", "feature"]


class _ExplodingPipeline:
    def validate_dir(self, directory: str, exclude: object = ()) -> FindingMap:
        raise RuntimeError("boom")


def test_source_revision_is_restored_after_failure(tree_builder: TreeBuilder) -> None:
    revisions = _FakeRevisions(
        tree_builder,
        {"main": BASE_TREE, "feature": BASE_TREE},
        [FileChange("M", f"{STABLE}/a.json")],
    )

    with pytest.raises(RuntimeError, match="boom"):
        list(IncrementalValidator(_ExplodingPipeline()).run(revisions))  # type: ignore[arg-type]

    assert revisions.checkouts == ["main", "feature"]


def test_suppress_existing_keeps_related_and_new_findings() -> None:
    existing = CircularReference(path="/specs/a.json", manifest_path="/specs/readme.md")
    related = UnreferencedFile(path="/specs/b.json", manifest_path="/specs/readme.md")
    introduced = MissingManifest(path="/specs/new")
    target = FindingMap([existing, related])
    source = FindingMap([existing, related, introduced])

    result = suppress_existing(target, source, ["/specs/b.json"])

    assert result.values() == [related, introduced]
    assert len(source) == 3
