"""Full validation pipeline for one specification directory."""

from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Generator, Iterable, Iterator, List, Optional, Sequence, Set

from .config import SpecGraphConfig
from .detectors import collect_candidates, detect_missing_manifests, detect_orphans
from .findings import Finding, FindingMap
from .logging import get_logger
from .manifest import read_manifest, resolve_input_file
from .manifest_checks import ManifestChecker
from .models import Specification
from .references import DEFAULT_REFERENCE_KEYS
from .rules import Rule, discover_rules
from .scanner import TreeScanner
from .walker import TraversalState, Walker


class Pipeline:
    """Runs manifest checks, the reference walk and the set-based detectors.

    Order of findings: directories missing a manifest, manifest checks (by
    manifest path), traversal findings, then unreferenced files.
    """

    def __init__(
        self,
        scanner: TreeScanner | None = None,
        walker: Walker | None = None,
        manifest_checker: ManifestChecker | None = None,
        *,
        rules: Optional[Iterable[Rule]] = None,
        reference_keys: Sequence[str] = DEFAULT_REFERENCE_KEYS,
        concurrency: int = 1,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.scanner = scanner or TreeScanner()
        self.walker = walker or Walker(rules, reference_keys=reference_keys)
        self.manifest_checker = manifest_checker or ManifestChecker()
        self.concurrency = concurrency
        self.logger = get_logger("pipeline")

    @classmethod
    def from_config(cls, config: SpecGraphConfig, *, concurrency: int | None = None) -> "Pipeline":
        rules = discover_rules(config.rules.enabled)
        return cls(
            manifest_checker=ManifestChecker(marker=config.manifest.marker),
            rules=rules,
            reference_keys=config.references.keys,
            concurrency=concurrency or config.concurrency,
        )

    def validate_folder(self, directory: str) -> Iterator[Finding]:
        """Yield every finding for ``directory`` in discovery order."""
        tree = self.scanner.scan(directory)
        self.logger.info(
            "Validating %s (%d manifests, %d JSON files)",
            tree.root,
            len(tree.manifests),
            len(tree.spec_files),
        )

        yield from detect_missing_manifests(tree)

        for manifest_path in tree.manifests:
            yield from self.manifest_checker.check(manifest_path)

        roots = self._collect_roots(tree.manifests)
        self.logger.debug("Collected %d declared input files", len(roots))
        black = yield from self._walk(list(roots.values()))

        candidates = collect_candidates(tree, tree.manifests)
        yield from detect_orphans(candidates.values(), black)

    def validate_dir(
        self,
        directory: str,
        exclude: Sequence[str] = (),
        *,
        missing_ok: bool = True,
    ) -> FindingMap:
        """Return the deduplicated findings for ``directory``.

        With ``missing_ok`` a directory that does not exist yields no findings;
        it may be absent in one of the revisions being compared.
        """
        findings = FindingMap()
        if missing_ok and not Path(directory).exists():
            self.logger.info("Skipping %s; directory does not exist", directory)
            return findings
        for finding in self.validate_folder(directory):
            findings.add(finding)
        return filter_excluded(findings, exclude)

    # ------------------------------------------------------------------
    # Internals

    def _collect_roots(self, manifests: Iterable[str]) -> Dict[str, Specification]:
        roots: Dict[str, Specification] = {}
        for manifest_path in manifests:
            try:
                model = read_manifest(Path(manifest_path))
            except (OSError, UnicodeDecodeError) as exc:
                self.logger.warning("Cannot read manifest %s: %s", manifest_path, exc)
                continue
            for entry in model.input_files():
                path = resolve_input_file(manifest_path, entry)
                if path not in roots:
                    roots[path] = Specification.for_path(path, manifest_path)
        return roots

    def _walk(self, roots: List[Specification]) -> Generator[Finding, None, Set[str]]:
        groups: Dict[str, List[Specification]] = {}
        for spec in roots:
            groups.setdefault(spec.manifest_path, []).append(spec)

        if self.concurrency <= 1 or len(groups) <= 1:
            state = TraversalState()
            yield from self.walker.walk(roots, state)
            return state.black

        # Each manifest gets its own traversal state; results are merged in
        # manifest order once every group has finished.
        self.logger.debug("Walking %d manifests with %d workers", len(groups), self.concurrency)
        with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
            futures = [executor.submit(self.walker.run, specs) for specs in groups.values()]
            results = [future.result() for future in futures]

        black: Set[str] = set()
        for result in results:
            yield from result.findings
            black.update(result.black)
        return black


def is_excluded(finding: Finding, patterns: Sequence[str]) -> bool:
    return any(re.search(pattern, finding.path) for pattern in patterns)


def filter_excluded(findings: FindingMap, patterns: Sequence[str]) -> FindingMap:
    if not patterns:
        return findings
    for key, finding in findings.items():
        if is_excluded(finding, patterns):
            findings.discard(key)
    return findings


__all__ = ["Pipeline", "filter_excluded", "is_excluded"]
