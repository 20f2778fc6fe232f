"""Rule implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable, Iterator, List, Sequence, Set

from ..findings import Finding
from ..models import Specification
from .api_version import ApiVersionRule
from .base import Rule
from .file_location import FileLocationRule

_ENTRY_POINT_GROUP = "specgraph.rules"

_BUILTIN_FACTORIES: dict[str, Callable[[], Rule]] = {
    "api_version": ApiVersionRule,
    "file_location": FileLocationRule,
}


def discover_rules(enabled: Sequence[str] | None = None) -> List[Rule]:
    """Return instantiated rules, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    rules: List[Rule] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], Rule]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory()
        if not isinstance(instance, Rule):
            raise TypeError(f"Rule factory for '{name}' did not return a Rule instance")
        rules.append(instance)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        name = entry.name
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - defensive guard
            raise RuntimeError(f"Failed to load rule entry point '{name}': {exc}") from exc

        def _factory(obj: object = loaded) -> Rule:
            return _coerce_rule(obj)

        _add(name, _factory)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown rules requested: {missing}")

    return rules


def run_rules(rules: Iterable[Rule], spec: Specification, document: object) -> Iterator[Finding]:
    """Run every rule against one document, preserving rule order."""
    for rule in rules:
        yield from rule.check(spec, document)


def _coerce_rule(obj: object) -> Rule:
    if isinstance(obj, Rule):
        return obj
    if isinstance(obj, type) and issubclass(obj, Rule):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, Rule):
            return instance
    raise TypeError("Rule entry point must be a Rule subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "ApiVersionRule",
    "FileLocationRule",
    "Rule",
    "discover_rules",
    "run_rules",
]
