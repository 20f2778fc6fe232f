"""CLI entrypoints for specgraph commands."""

from __future__ import annotations

import argparse
import os
import re
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from .config import ConfigError, SpecGraphConfig, load_config
from .diff_engine import IncrementalValidator
from .findings import Finding
from .git.revision import GitRevisionSource, RevisionError
from .logging import configure_logging, get_logger
from .pipeline import Pipeline
from .reporting import JsonLinesReport, count_errors, write_findings


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "count",
        "help": "Increase log verbosity; repeat (-vv) to log every visited file.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = 0
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_run_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--exclude-paths",
        nargs="*",
        default=None,
        metavar="REGEX",
        help="Drop findings whose path matches any of these regular expressions.",
    )
    parser.add_argument(
        "--report-file",
        default=None,
        help="Append JSON-lines result records to this file.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to .specgraph.yml (defaults to the one in the validated directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="specgraph",
        description="Validate API specification trees declared by readme manifests.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write log messages to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate every manifest and JSON file below a directory.",
    )
    _add_verbose_option(validate_parser, suppress_default=True)
    _add_run_options(validate_parser)
    validate_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Directory to validate (defaults to current directory).",
    )
    validate_parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Number of manifests walked in parallel.",
    )

    diff_parser = subparsers.add_parser(
        "diff",
        help="Report only findings introduced between two revisions.",
    )
    _add_verbose_option(diff_parser, suppress_default=True)
    _add_run_options(diff_parser)
    diff_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the git working tree (defaults to current directory).",
    )
    diff_parser.add_argument(
        "--target-branch",
        default=None,
        help="Revision the change is merged into (defaults to the CI pull request target).",
    )
    diff_parser.add_argument(
        "--source-branch",
        default=None,
        help="Revision containing the change (defaults to HEAD).",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for specgraph commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file) if args.log_file else None
    configure_logging(verbose=args.verbose or 0, log_file=log_file)
    logger = get_logger("cli")

    if args.command == "serve":
        from .service import run_service

        try:
            run_service(host=args.host, port=args.port)
        except RuntimeError as exc:
            parser.exit(1, f"{exc}\n")
        return

    try:
        config = _load_config(args)
    except ConfigError as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")

    exclude = _exclude_paths(args, config)
    report = _open_report(args, config)

    try:
        _check_patterns(exclude)
        if args.command == "validate":
            pipeline = Pipeline.from_config(config, concurrency=args.concurrency)
            findings: Iterable[Finding] = pipeline.validate_dir(
                str(Path(args.path).expanduser().resolve()), exclude, missing_ok=False
            ).values()
        elif args.command == "diff":
            revisions = _revision_source(args)
            if revisions is None:
                parser.exit(
                    1,
                    "No target branch given and no pull request target found in the environment.\n",
                )
            findings = IncrementalValidator(Pipeline.from_config(config)).run(revisions, exclude)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
        written = write_findings(findings, sys.stdout, report)
    except (FileNotFoundError, NotADirectoryError, RevisionError, ValueError, re.error) as exc:
        if report is not None:
            report.log_error(exc)
        parser.exit(1, f"specgraph {args.command} failed: {exc}\n")

    errors = count_errors(written)
    logger.info("%d findings (%d errors)", len(written), errors)
    if errors:
        sys.exit(1)


def _load_config(args: argparse.Namespace) -> SpecGraphConfig:
    if args.config:
        return load_config(Path(args.config))
    return load_config(Path(args.path))


def _exclude_paths(args: argparse.Namespace, config: SpecGraphConfig) -> List[str]:
    if args.exclude_paths is not None:
        return list(args.exclude_paths)
    return list(config.exclude_paths)


def _check_patterns(patterns: List[str]) -> None:
    for pattern in patterns:
        re.compile(pattern)


def _open_report(args: argparse.Namespace, config: SpecGraphConfig) -> Optional[JsonLinesReport]:
    report_file = Path(args.report_file) if args.report_file else config.report_file
    if report_file is None:
        return None
    return JsonLinesReport(report_file, docs_base_url=config.docs_base_url)


def _revision_source(args: argparse.Namespace) -> Optional[GitRevisionSource]:
    working_dir = str(Path(args.path).expanduser().resolve())
    if args.target_branch:
        source = GitRevisionSource(working_dir, args.target_branch, args.source_branch or "HEAD")
        if not args.source_branch:
            source.source_branch = source.current_commit()
        return source
    return GitRevisionSource.from_environment(os.environ, working_dir)


if __name__ == "__main__":
    main(sys.argv[1:])
