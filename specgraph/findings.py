"""Validation findings and their stable identities."""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass, fields
from enum import Enum
from typing import ClassVar, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Type

from .models import SpecKind


class FindingCode(str, Enum):
    """Closed set of finding codes."""

    MISSING_REFERENCED_FILE = "MISSING_REFERENCED_FILE"
    PARSE_ERROR = "PARSE_ERROR"
    CIRCULAR_REFERENCE = "CIRCULAR_REFERENCE"
    UNREFERENCED_FILE = "UNREFERENCED_FILE"
    MISSING_MANIFEST = "MISSING_MANIFEST"
    NOT_RECOGNIZED_MANIFEST = "NOT_RECOGNIZED_MANIFEST"
    MULTIPLE_API_VERSIONS_FOR_TAG = "MULTIPLE_API_VERSIONS_FOR_TAG"
    INCONSISTENT_API_VERSION = "INCONSISTENT_API_VERSION"
    INVALID_FILE_LOCATION = "INVALID_FILE_LOCATION"


class Severity(str, Enum):
    ERROR = "Error"
    WARNING = "Warning"


@dataclass(frozen=True)
class Finding:
    """Base type for findings; each subclass is bound to exactly one code.

    Subclasses declare the fields that locate the problem. ``identity`` is the
    code-specific projection used for the correlation key and must never
    include the message text.
    """

    code: ClassVar[FindingCode]
    level: ClassVar[Severity]
    _registry: ClassVar[Dict[FindingCode, Type["Finding"]]] = {}

    path: str

    def __init_subclass__(cls, abstract: bool = False, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        if abstract:
            return
        code = cls.__dict__.get("code")
        if code is None:
            raise TypeError(f"{cls.__name__} must declare a finding code")
        if code in Finding._registry:
            raise TypeError(f"Finding code {code.value} is already bound to {Finding._registry[code].__name__}")
        Finding._registry[code] = cls

    @property
    def message(self) -> str:
        raise NotImplementedError

    def identity(self) -> Dict[str, object]:
        return {"path": self.path}

    def correlation_key(self) -> str:
        payload = {"code": self.code.value, **self.identity()}
        encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True)
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()

    def path_fields(self) -> List[Tuple[str, str]]:
        """Return ``(tag, path)`` pairs naming every location of this finding."""
        return [("path", self.path)]

    def attributed_paths(self) -> Tuple[str, ...]:
        return tuple(path for _, path in self.path_fields())

    def is_related_to(self, changed_paths: Iterable[str]) -> bool:
        """True when any changed path is, or lies under, an attributed path."""
        attributed = [os.path.normpath(path) for path in self.attributed_paths() if path]
        for changed in changed_paths:
            normalized = os.path.normpath(changed)
            for path in attributed:
                if normalized == path or normalized.startswith(path + os.sep):
                    return True
        return False

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "code": self.code.value,
            "level": self.level.value,
            "message": self.message,
        }
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, tuple):
                value = list(value)
            data[item.name] = value
        return data

    @classmethod
    def type_for(cls, code: FindingCode) -> Type["Finding"]:
        return cls._registry[code]


@dataclass(frozen=True)
class _ManifestAttributed(Finding, abstract=True):
    """Findings about a file declared under, or reached from, a manifest."""

    manifest_path: str = ""

    def path_fields(self) -> List[Tuple[str, str]]:
        pairs = [("path", self.path)]
        if self.manifest_path:
            pairs.append(("manifest", self.manifest_path))
        return pairs


@dataclass(frozen=True)
class MissingReferencedFile(_ManifestAttributed):
    code = FindingCode.MISSING_REFERENCED_FILE
    level = Severity.ERROR

    @property
    def message(self) -> str:
        return "The JSON file is not found but it is referenced from the manifest."


@dataclass(frozen=True)
class ParseError(Finding):
    code = FindingCode.PARSE_ERROR
    level = Severity.ERROR

    line: int = 0
    column: int = 0
    offset: int = 0
    detail: str = ""

    @property
    def message(self) -> str:
        if self.detail:
            return f"The file is not a valid JSON file: {self.detail}."
        return "The file is not a valid JSON file."

    def identity(self) -> Dict[str, object]:
        return {"path": self.path, "line": self.line, "column": self.column}


@dataclass(frozen=True)
class CircularReference(_ManifestAttributed):
    code = FindingCode.CIRCULAR_REFERENCE
    level = Severity.WARNING

    @property
    def message(self) -> str:
        return "The JSON file has a circular reference."


@dataclass(frozen=True)
class UnreferencedFile(_ManifestAttributed):
    code = FindingCode.UNREFERENCED_FILE
    level = Severity.ERROR

    kind: SpecKind = SpecKind.SCHEMA

    @property
    def message(self) -> str:
        if self.kind is SpecKind.EXAMPLE:
            return "The example JSON file is not referenced from the swagger file."
        return "The swagger JSON file is not referenced from the manifest."


@dataclass(frozen=True)
class MissingManifest(Finding):
    """Reported against a directory rather than a file."""

    code = FindingCode.MISSING_MANIFEST
    level = Severity.ERROR

    @property
    def message(self) -> str:
        return "Can not find readme.md in the folder. If no readme.md file, it will block SDK generation."

    def path_fields(self) -> List[Tuple[str, str]]:
        return [("folder", self.path)]


@dataclass(frozen=True)
class NotRecognizedManifest(Finding):
    code = FindingCode.NOT_RECOGNIZED_MANIFEST
    level = Severity.ERROR
    help_url: ClassVar[str] = (
        "http://azure.github.io/autorest/user/literate-file-formats/configuration.html#the-file-format"
    )

    @property
    def message(self) -> str:
        return "The `readme.md` is not an AutoRest markdown file."

    def path_fields(self) -> List[Tuple[str, str]]:
        return [("manifest", self.path)]


@dataclass(frozen=True)
class MultipleApiVersionsForTag(Finding):
    code = FindingCode.MULTIPLE_API_VERSIONS_FOR_TAG
    level = Severity.WARNING

    tag: str = ""
    versions: Tuple[str, ...] = ()

    @property
    def message(self) -> str:
        return f"The default tag '{self.tag}' contains multiple API versions swaggers."

    def path_fields(self) -> List[Tuple[str, str]]:
        return [("manifest", self.path)]


@dataclass(frozen=True)
class InconsistentApiVersion(_ManifestAttributed):
    code = FindingCode.INCONSISTENT_API_VERSION
    level = Severity.ERROR

    version: str = ""

    @property
    def message(self) -> str:
        return "The API version of the swagger is inconsistent with its file path."


@dataclass(frozen=True)
class InvalidFileLocation(_ManifestAttributed):
    code = FindingCode.INVALID_FILE_LOCATION
    level = Severity.WARNING

    @property
    def message(self) -> str:
        return (
            "The management plane swagger JSON file does not match its folder path. "
            "Make sure management plane swagger located in resource-manager folder"
        )


_unbound = [code.value for code in FindingCode if code not in Finding._registry]
if _unbound:  # pragma: no cover - import-time guard
    raise RuntimeError(f"Finding codes without a finding type: {', '.join(_unbound)}")


class FindingMap:
    """Findings keyed by correlation key, in first-seen order; last write wins."""

    def __init__(self, findings: Iterable[Finding] = ()) -> None:
        self._items: Dict[str, Finding] = {}
        for finding in findings:
            self.add(finding)

    def add(self, finding: Finding) -> str:
        key = finding.correlation_key()
        self._items[key] = finding
        return key

    def update(self, other: "FindingMap") -> None:
        for key, finding in other.items():
            self._items[key] = finding

    def get(self, key: str) -> Optional[Finding]:
        return self._items.get(key)

    def discard(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items.keys())

    def values(self) -> List[Finding]:
        return list(self._items.values())

    def items(self) -> List[Tuple[str, Finding]]:
        return list(self._items.items())

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Finding]:
        return iter(list(self._items.values()))


def findings_by_code(findings: Iterable[Finding]) -> Mapping[FindingCode, List[Finding]]:
    grouped: Dict[FindingCode, List[Finding]] = {}
    for finding in findings:
        grouped.setdefault(finding.code, []).append(finding)
    return grouped


__all__ = [
    "CircularReference",
    "Finding",
    "FindingCode",
    "FindingMap",
    "InconsistentApiVersion",
    "InvalidFileLocation",
    "MissingManifest",
    "MissingReferencedFile",
    "MultipleApiVersionsForTag",
    "NotRecognizedManifest",
    "ParseError",
    "Severity",
    "UnreferencedFile",
    "findings_by_code",
]
