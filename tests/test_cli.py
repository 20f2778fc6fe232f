"""CLI parser and entrypoint behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from specgraph.cli import _build_parser, main
from specgraph.git.revision import TARGET_BRANCH_VARIABLE
from tests._fixtures.tree_builder import TreeBuilder, manifest_text, schema

RM = "svc/resource-manager"
STABLE = f"{RM}/stable/2020-01-01"


def _write_cycle(tree_builder: TreeBuilder, *, orphan: bool = False) -> None:
    files = {
        f"{RM}/readme.md": manifest_text(["stable/2020-01-01/a.json"]),
        f"{STABLE}/a.json": schema(["./b.json"]),
        f"{STABLE}/b.json": schema(["./a.json"]),
    }
    if orphan:
        files[f"{STABLE}/orphan.json"] = schema()
    tree_builder.write(files)


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "validate"])
    assert args.verbose == 1
    assert args.command == "validate"
    assert args.path == "."


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["validate", "specs", "--verbose"])
    assert args.verbose == 1
    assert args.path == "specs"


def test_cli_accepts_run_options() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        ["diff", "--target-branch", "main", "--exclude-paths", "a", "b", "--report-file", "out.jsonl"]
    )
    assert args.command == "diff"
    assert args.target_branch == "main"
    assert args.source_branch is None
    assert args.exclude_paths == ["a", "b"]
    assert args.report_file == "out.jsonl"


def test_validate_prints_findings_and_succeeds_on_warnings(
    tree_builder: TreeBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    _write_cycle(tree_builder)

    main(["validate", tree_builder.path()])

    lines = capsys.readouterr().out.splitlines()
    assert [json.loads(line)["code"] for line in lines] == ["CIRCULAR_REFERENCE"]


def test_validate_exits_non_zero_on_errors(
    tree_builder: TreeBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _write_cycle(tree_builder, orphan=True)
    report = tmp_path / "report.jsonl"

    with pytest.raises(SystemExit) as excinfo:
        main(["validate", tree_builder.path(), "--report-file", str(report)])

    assert excinfo.value.code == 1
    codes = [json.loads(line)["code"] for line in capsys.readouterr().out.splitlines()]
    assert codes == ["CIRCULAR_REFERENCE", "UNREFERENCED_FILE"]
    assert len(report.read_text(encoding="utf-8").splitlines()) == 2


def test_validate_honours_exclude_paths_from_config(
    tree_builder: TreeBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    _write_cycle(tree_builder, orphan=True)
    tree_builder.write({".specgraph.yml": "exclude_paths:\n  - 'orphan\\.json$'\n"})

    main(["validate", tree_builder.path()])

    codes = [json.loads(line)["code"] for line in capsys.readouterr().out.splitlines()]
    assert codes == ["CIRCULAR_REFERENCE"]


def test_validate_missing_directory_is_fatal(tmp_path: Path) -> None:
    report = tmp_path / "report.jsonl"

    with pytest.raises(SystemExit) as excinfo:
        main(["validate", str(tmp_path / "absent"), "--report-file", str(report)])

    assert excinfo.value.code == 1
    record = json.loads(report.read_text(encoding="utf-8"))
    assert record["type"] == "Raw"


def test_diff_without_target_branch_fails(
    tree_builder: TreeBuilder, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv(TARGET_BRANCH_VARIABLE, raising=False)

    with pytest.raises(SystemExit) as excinfo:
        main(["diff", tree_builder.path()])

    assert excinfo.value.code == 1


def test_invalid_config_is_reported(tree_builder: TreeBuilder) -> None:
    tree_builder.write({".specgraph.yml": "concurrency: 0\n"})

    with pytest.raises(SystemExit) as excinfo:
        main(["validate", tree_builder.path()])

    assert excinfo.value.code == 1


def test_cli_counts_repeated_verbose_flags() -> None:
    parser = _build_parser()
    args = parser.parse_args(["-vv", "--log-file", "out/specgraph.log", "validate"])
    assert args.verbose == 2
    assert args.log_file == "out/specgraph.log"


def test_invalid_exclude_pattern_is_reported_not_raised(
    tree_builder: TreeBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _write_cycle(tree_builder, orphan=True)
    report = tmp_path / "report.jsonl"

    with pytest.raises(SystemExit) as excinfo:
        main(["validate", tree_builder.path(), "--exclude-paths", "(", "--report-file", str(report)])

    assert excinfo.value.code == 1
    assert "failed" in capsys.readouterr().err
    record = json.loads(report.read_text(encoding="utf-8"))
    assert record["type"] == "Raw"


def test_invalid_exclude_pattern_in_config_is_reported(tree_builder: TreeBuilder) -> None:
    _write_cycle(tree_builder)
    tree_builder.write({".specgraph.yml": "exclude_paths:\n  - '[unclosed'\n"})

    with pytest.raises(SystemExit) as excinfo:
        main(["validate", tree_builder.path()])

    assert excinfo.value.code == 1
