"""Core data models shared across specgraph components."""

import os
from dataclasses import dataclass, field
from enum import Enum

EXAMPLES_SEGMENT = "examples"


class SpecKind(str, Enum):
    """Kind of tracked specification file."""

    EXAMPLE = "EXAMPLE"
    SCHEMA = "SCHEMA"


def kind_for_path(path: str) -> SpecKind:
    """Files living under an ``examples`` path segment are examples."""
    segments = path.replace("\\", "/").split("/")
    if EXAMPLES_SEGMENT in segments:
        return SpecKind.EXAMPLE
    return SpecKind.SCHEMA


@dataclass(frozen=True)
class Specification:
    """A tracked JSON file, identified by its absolute path."""

    path: str
    manifest_path: str = field(compare=False)
    kind: SpecKind = field(default=SpecKind.SCHEMA, compare=False)

    @classmethod
    def for_path(cls, path: str, manifest_path: str) -> "Specification":
        return cls(path=path, manifest_path=manifest_path, kind=kind_for_path(path))

    @property
    def directory(self) -> str:
        return os.path.dirname(self.path)


@dataclass(frozen=True)
class Reference:
    """A resolved cross-file pointer extracted from a document."""

    target_path: str
    fragment: str = ""


@dataclass(frozen=True)
class FileChange:
    """One changed path reported by a revision source."""

    status: str
    path: str
