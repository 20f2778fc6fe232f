"""Directory scanning for manifests and specification files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List

MANIFEST_NAME = "readme.md"
SPEC_SUFFIX = ".json"

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
}


@dataclass
class SpecTree:
    """Files of interest below a scan root, as sorted absolute paths."""

    root: str
    manifests: List[str] = field(default_factory=list)
    spec_files: List[str] = field(default_factory=list)


def is_manifest(path: str) -> bool:
    return os.path.basename(path).lower() == MANIFEST_NAME


def is_spec_file(path: str) -> bool:
    return os.path.splitext(path)[1] == SPEC_SUFFIX


def iter_files(root: Path) -> Iterator[Path]:
    """Yield files below ``root`` in a stable order, skipping tool directories."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in _EXCLUDED_DIRS)
        current_dir = Path(dirpath)
        for filename in sorted(filenames):
            yield current_dir / filename


def contains_manifest(directory: str) -> bool:
    try:
        names = os.listdir(directory)
    except OSError:
        return False
    return any(
        is_manifest(name) and os.path.isfile(os.path.join(directory, name)) for name in names
    )


class TreeScanner:
    """Walks a directory to find manifests and JSON specification files."""

    def scan(self, root: str) -> SpecTree:
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Specification directory not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Specification path is not a directory: {root}")

        tree = SpecTree(root=str(root_path))
        for path in iter_files(root_path):
            text = str(path)
            if is_manifest(text):
                tree.manifests.append(text)
            elif is_spec_file(text):
                tree.spec_files.append(text)
        tree.manifests.sort()
        tree.spec_files.sort()
        return tree

    def spec_files_under(self, directory: str) -> List[str]:
        """Return JSON files below ``directory`` (recursively)."""
        return sorted(str(path) for path in iter_files(Path(directory)) if is_spec_file(str(path)))


__all__ = [
    "MANIFEST_NAME",
    "SpecTree",
    "TreeScanner",
    "contains_manifest",
    "is_manifest",
    "is_spec_file",
    "iter_files",
]
