"""Revision source backed by the git command line."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, Optional, Protocol

from ..logging import get_logger
from ..models import FileChange

TARGET_BRANCH_VARIABLE = "SYSTEM_PULLREQUEST_TARGETBRANCH"
SOURCE_COMMIT_VARIABLE = "SYSTEM_PULLREQUEST_SOURCECOMMITID"


class RevisionError(RuntimeError):
    """Raised when git cannot produce a diff or check out a revision."""


class RevisionSource(Protocol):
    """Two revisions of one working tree plus the paths changed between them."""

    working_dir: str
    target_branch: str
    source_branch: str

    def diff(self) -> List[FileChange]:
        """Return the paths changed between target and source."""

    def checkout(self, revision: str) -> None:
        """Switch the working tree to ``revision``."""


class GitRevisionSource:
    """Compares ``target_branch`` with ``source_branch`` in a git working tree."""

    def __init__(
        self,
        working_dir: str,
        target_branch: str,
        source_branch: str,
        runner: Callable[..., str] | None = None,
    ) -> None:
        self.working_dir = str(Path(working_dir).expanduser().resolve())
        self.target_branch = target_branch
        self.source_branch = source_branch
        self._runner = runner or self._default_runner
        self.logger = get_logger("git")

    @classmethod
    def from_environment(
        cls,
        env: Mapping[str, str],
        cwd: str,
        runner: Callable[..., str] | None = None,
    ) -> Optional["GitRevisionSource"]:
        """Build a source from pull-request CI variables, or ``None`` outside CI."""
        target = env.get(TARGET_BRANCH_VARIABLE)
        if not target:
            return None
        source = env.get(SOURCE_COMMIT_VARIABLE)
        instance = cls(cwd, target, source or "HEAD", runner=runner)
        if not source:
            instance.source_branch = instance.current_commit()
        return instance

    def diff(self) -> List[FileChange]:
        output = self._run(
            ["git", "diff", "--name-status", f"{self.target_branch}...{self.source_branch}"],
            capture_output=True,
        )
        return parse_name_status(output)

    def checkout(self, revision: str) -> None:
        self.logger.debug("Checking out %s in %s", revision, self.working_dir)
        self._run(["git", "checkout", "-q", revision])

    def current_commit(self) -> str:
        return self._run(["git", "rev-parse", "HEAD"], capture_output=True).strip()

    def _run(self, args: Iterable[str], *, capture_output: bool = False) -> str:
        args = list(args)
        try:
            return self._runner(args, cwd=Path(self.working_dir), capture_output=capture_output)
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() if isinstance(exc.stderr, str) else ""
            message = f"`{' '.join(args)}` failed with exit code {exc.returncode}"
            if detail:
                message = f"{message}: {detail}"
            raise RevisionError(message) from exc
        except OSError as exc:
            raise RevisionError(f"Unable to run git: {exc}") from exc

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=capture_output,
        )
        return completed.stdout if capture_output else ""


def parse_name_status(output: str) -> List[FileChange]:
    """Parse ``git diff --name-status`` output; renames and copies keep the new path."""
    changes: List[FileChange] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        status = parts[0].strip()
        if len(parts) < 2:
            continue
        path = parts[-1] if status[:1] in {"R", "C"} else parts[1]
        changes.append(FileChange(status=status[:1], path=path.strip()))
    return changes


__all__ = [
    "GitRevisionSource",
    "RevisionError",
    "RevisionSource",
    "SOURCE_COMMIT_VARIABLE",
    "TARGET_BRANCH_VARIABLE",
    "parse_name_status",
]
