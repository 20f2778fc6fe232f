"""Tests for manifest format and default tag checks."""

from __future__ import annotations

from pathlib import Path

import pytest

from specgraph.findings import FindingCode, MultipleApiVersionsForTag, NotRecognizedManifest
from specgraph.manifest import parse_manifest
from specgraph.manifest_checks import ManifestChecker, default_tag_versions, version_from_input_file
from tests._fixtures.tree_builder import manifest_text


@pytest.mark.parametrize(
    ("entry", "expected"),
    [
        ("stable/2020-01-01/a.json", "2020-01-01"),
        ("preview/2021-03-01-preview/b.json", "2021-03-01-preview"),
        ("Microsoft.Foo\\stable\\2019-05-05\\c.json", "2019-05-05"),
        ("2020-01-01/a.json", None),
        ("stable/v1/a.json", None),
    ],
)
def test_version_from_input_file(entry: str, expected: str | None) -> None:
    assert version_from_input_file(entry) == expected


def test_default_tag_versions_are_distinct_and_ordered() -> None:
    model = parse_manifest(
        manifest_text(
            [
                "stable/2021-01-01/a.json",
                "stable/2020-01-01/b.json",
                "stable/2021-01-01/c.json",
            ]
        )
    )

    assert default_tag_versions(model) == ["2021-01-01", "2020-01-01"]


def test_check_reports_unrecognized_manifest(tmp_path: Path) -> None:
    manifest = tmp_path / "readme.md"
    manifest.write_text("# Just a readme\n\nNothing to see.\n", encoding="utf-8")

    findings = list(ManifestChecker().check(str(manifest)))

    assert findings == [NotRecognizedManifest(path=str(manifest))]


def test_check_reports_multiple_versions_under_default_tag(tmp_path: Path) -> None:
    manifest = tmp_path / "readme.md"
    manifest.write_text(
        manifest_text(["stable/2020-01-01/a.json", "preview/2021-01-01-preview/b.json"], tag="package-mixed"),
        encoding="utf-8",
    )

    findings = list(ManifestChecker().check(str(manifest)))

    assert findings == [
        MultipleApiVersionsForTag(
            path=str(manifest),
            tag="package-mixed",
            versions=("2020-01-01", "2021-01-01-preview"),
        )
    ]


def test_check_accepts_single_version_manifest(tmp_path: Path) -> None:
    manifest = tmp_path / "readme.md"
    manifest.write_text(manifest_text(["stable/2020-01-01/a.json", "stable/2020-01-01/b.json"]), encoding="utf-8")

    assert list(ManifestChecker().check(str(manifest))) == []


def test_check_honours_custom_marker(tmp_path: Path) -> None:
    manifest = tmp_path / "readme.md"
    manifest.write_text("> generated by our tooling\n", encoding="utf-8")

    assert list(ManifestChecker(marker="generated by our tooling").check(str(manifest))) == []
    codes = [finding.code for finding in ManifestChecker().check(str(manifest))]
    assert codes == [FindingCode.NOT_RECOGNIZED_MANIFEST]


def test_unreadable_manifest_is_not_recognized(tmp_path: Path) -> None:
    manifest = tmp_path / "readme.md"
    manifest.write_bytes(b"\xff\xfe\x00bad")

    assert [finding.code for finding in ManifestChecker().check(str(manifest))] == [
        FindingCode.NOT_RECOGNIZED_MANIFEST
    ]
