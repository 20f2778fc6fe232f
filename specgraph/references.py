"""Extraction of cross-file references from parsed documents."""

from __future__ import annotations

import os
import re
from typing import Iterable, Iterator, Sequence

from .models import Reference

DEFAULT_REFERENCE_KEYS: Sequence[str] = ("$ref",)

_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


def iter_reference_values(document: object, keys: Sequence[str] = DEFAULT_REFERENCE_KEYS) -> Iterator[str]:
    """Yield every string value stored under a reference key, in document order."""
    stack: list[Iterator[tuple[object, object]]] = [_children(document)]
    while stack:
        try:
            key, value = next(stack[-1])
        except StopIteration:
            stack.pop()
            continue
        if key in keys and isinstance(value, str):
            yield value
        elif isinstance(value, (dict, list)):
            stack.append(_children(value))


def _children(node: object) -> Iterator[tuple[object, object]]:
    if isinstance(node, dict):
        return iter(node.items())
    if isinstance(node, list):
        return ((None, item) for item in node)
    return iter(())


def split_reference(value: str) -> tuple[str, str]:
    """Split ``file#pointer`` at the first ``#``."""
    target, _, fragment = value.partition("#")
    return target, fragment


def extract_references(
    source_path: str,
    document: object,
    keys: Sequence[str] = DEFAULT_REFERENCE_KEYS,
) -> Iterator[Reference]:
    """Yield references to other files, resolved against ``source_path``'s directory.

    Fragment-only references point into the same document and are dropped, as
    are absolute URLs which are not part of the local tree.
    """
    base_dir = os.path.dirname(source_path)
    for value in iter_reference_values(document, keys):
        target, fragment = split_reference(value)
        if not target or _URL_SCHEME.match(target):
            continue
        resolved = os.path.normpath(os.path.join(base_dir, *target.split("\\")))
        yield Reference(target_path=os.path.abspath(resolved), fragment=fragment)


def referenced_paths(source_path: str, document: object, keys: Sequence[str] = DEFAULT_REFERENCE_KEYS) -> Iterable[str]:
    return (reference.target_path for reference in extract_references(source_path, document, keys))


__all__ = [
    "DEFAULT_REFERENCE_KEYS",
    "extract_references",
    "iter_reference_values",
    "referenced_paths",
    "split_reference",
]
