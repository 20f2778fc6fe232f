"""Cycle-detecting traversal of the specification reference graph.

Nodes are coloured the usual way for depth-first cycle detection:

+ unvisited: not yet reached (absent from the state).
+ gray: on the current traversal path; its references are still being walked.
+ black: the node and everything reachable from it has been explored.

A reference to a gray node is a back edge, i.e. a cycle. The traversal keeps
an explicit stack of frames instead of recursing, so deep reference chains do
not exhaust the interpreter stack, and findings are yielded in the order they
are discovered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Generator, Iterable, Iterator, List, Optional, Sequence, Set

from .documents import SourcePosition, parse_document, position_of
from .findings import CircularReference, Finding, MissingReferencedFile, ParseError
from .logging import get_logger
from .models import Reference, SpecKind, Specification
from .references import DEFAULT_REFERENCE_KEYS, extract_references
from .rules import Rule, discover_rules, run_rules

FileReader = Callable[[str], str]


class Color(Enum):
    GRAY = "gray"
    BLACK = "black"


class TraversalState:
    """Path -> colour mapping owned by a single traversal."""

    def __init__(self) -> None:
        self._colors: Dict[str, Color] = {}

    def is_gray(self, path: str) -> bool:
        return self._colors.get(path) is Color.GRAY

    def is_black(self, path: str) -> bool:
        return self._colors.get(path) is Color.BLACK

    def mark_gray(self, path: str) -> None:
        if self._colors.get(path) is not Color.BLACK:
            self._colors[path] = Color.GRAY

    def mark_black(self, path: str) -> None:
        self._colors[path] = Color.BLACK

    @property
    def gray(self) -> Set[str]:
        return {path for path, color in self._colors.items() if color is Color.GRAY}

    @property
    def black(self) -> Set[str]:
        return {path for path, color in self._colors.items() if color is Color.BLACK}


@dataclass
class RunResult:
    """Explored paths plus the ordered findings of one traversal."""

    black: Set[str] = field(default_factory=set)
    findings: List[Finding] = field(default_factory=list)


@dataclass
class _Frame:
    spec: Specification
    references: Iterator[Reference]


def read_text(path: str) -> str:
    with open(path, "rb") as handle:
        data = handle.read()
    # Decoding the whole buffer keeps error offsets relative to the file.
    return data.decode("utf-8")


class Walker:
    """Walks specifications depth first, emitting findings as it goes."""

    def __init__(
        self,
        rules: Optional[Iterable[Rule]] = None,
        *,
        reader: FileReader | None = None,
        reference_keys: Sequence[str] = DEFAULT_REFERENCE_KEYS,
    ) -> None:
        self._rules = list(rules) if rules is not None else discover_rules()
        self._reader = reader or read_text
        self._reference_keys = tuple(reference_keys)
        self.logger = get_logger("walker")

    def walk(
        self,
        roots: Iterable[Specification],
        state: TraversalState | None = None,
    ) -> Iterator[Finding]:
        """Yield findings for every root and everything reachable from it."""
        state = state if state is not None else TraversalState()
        for root in roots:
            if state.is_black(root.path):
                self.logger.debug("Skipping %s; already explored", root.path)
                continue
            yield from self._walk_from(root, state)

    def run(self, roots: Iterable[Specification], state: TraversalState | None = None) -> RunResult:
        state = state if state is not None else TraversalState()
        findings = list(self.walk(roots, state))
        return RunResult(black=state.black, findings=findings)

    # ------------------------------------------------------------------
    # Internals

    def _walk_from(self, root: Specification, state: TraversalState) -> Iterator[Finding]:
        frame = yield from self._visit(root, state)
        if frame is None:
            return
        stack: List[_Frame] = [frame]
        while stack:
            top = stack[-1]
            reference = next(top.references, None)
            if reference is None:
                stack.pop()
                state.mark_black(top.spec.path)
                continue
            target = reference.target_path
            if state.is_gray(target):
                self.logger.debug("Back edge %s -> %s", top.spec.path, target)
                yield CircularReference(path=top.spec.path, manifest_path=top.spec.manifest_path)
                # Cycle edges are not walked again.
                state.mark_black(target)
            elif not state.is_black(target):
                child = Specification.for_path(target, top.spec.manifest_path)
                child_frame = yield from self._visit(child, state)
                if child_frame is not None:
                    stack.append(child_frame)

    def _visit(
        self, spec: Specification, state: TraversalState
    ) -> Generator[Finding, None, Optional[_Frame]]:
        state.mark_gray(spec.path)
        self.logger.debug("Visiting %s (%s)", spec.path, spec.kind.value)
        errors: List[ParseError] = []
        try:
            text = self._reader(spec.path)
        except OSError as exc:
            self.logger.debug("Cannot read %s: %s", spec.path, exc)
            yield MissingReferencedFile(path=spec.path, manifest_path=spec.manifest_path)
            state.mark_black(spec.path)
            return None
        except UnicodeDecodeError as exc:
            self.logger.debug("Invalid UTF-8 in %s: %s", spec.path, exc)
            text = _decode_leniently(exc)
            errors.append(_encoding_error(spec.path, exc))

        def _on_error(message: str, position: SourcePosition) -> None:
            # One parse error per file.
            if errors:
                return
            errors.append(
                ParseError(
                    path=spec.path,
                    line=position.line,
                    column=position.column,
                    offset=position.offset,
                    detail=message,
                )
            )

        document = parse_document(spec.path, text, _on_error)
        yield from errors

        if spec.kind is not SpecKind.SCHEMA:
            # Example files are leaves; their references are not followed.
            return _Frame(spec=spec, references=iter(()))

        # Rules only see documents that parsed cleanly.
        if document is not None and not errors:
            yield from run_rules(self._rules, spec, document)
        references = extract_references(spec.path, document, self._reference_keys)
        return _Frame(spec=spec, references=references)


def _decode_leniently(exc: UnicodeDecodeError) -> str:
    data = exc.object
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("utf-8", errors="replace")
    return ""


def _encoding_error(path: str, exc: UnicodeDecodeError) -> ParseError:
    data = exc.object
    if isinstance(data, (bytes, bytearray)):
        position = position_of(bytes(data), exc.start)
    else:
        position = SourcePosition(line=1, column=exc.start + 1, offset=exc.start)
    return ParseError(
        path=path,
        line=position.line,
        column=position.column,
        offset=position.offset,
        detail=f"invalid UTF-8 byte at offset {exc.start}",
    )


__all__ = ["Color", "RunResult", "TraversalState", "Walker", "read_text"]
