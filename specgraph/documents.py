"""Tolerant JSON document parsing.

Well-formed documents go through the standard decoder. When it rejects a
document, the first syntax error is reported and the text is parsed again by
a recovering parser that skips what it cannot understand, so references in
the rest of the document can still be followed.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from json.decoder import scanstring
from typing import Callable, Dict, List, Optional, Tuple

_BOM = "\ufeff"

_TOKEN = re.compile(
    r"""
    (?P<skip>[ \t\r\n]+|//[^\n]*|/\*.*?(?:\*/|\Z))
  | (?P<punct>[{}\[\]:,])
  | (?P<string>")
  | (?P<number>-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][-+]?\d+)?)
  | (?P<word>[A-Za-z_$][\w$.-]*)
  | (?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_LITERALS: Dict[str, object] = {"true": True, "false": False, "null": None}

_MISSING = object()

Token = Tuple[str, object]


@dataclass(frozen=True)
class SourcePosition:
    """1-based line/column plus 0-based character offset."""

    line: int
    column: int
    offset: int


ErrorCallback = Callable[[str, SourcePosition], None]


def parse_document(path: str, text: str, on_error: ErrorCallback) -> Optional[object]:
    """Parse ``text`` as JSON, reporting syntax errors through ``on_error``.

    Never raises for malformed content. Returns the decoded document, the
    part of it that could be recovered, or ``None`` when nothing usable was
    found.
    """
    if text.startswith(_BOM):
        text = text[len(_BOM):]
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        on_error(exc.msg, SourcePosition(line=exc.lineno, column=exc.colno, offset=exc.pos))
    except RecursionError:
        on_error("Document nesting is too deep", SourcePosition(line=1, column=1, offset=0))
        return None
    try:
        return recover_document(text)
    except RecursionError:
        return None


def recover_document(text: str) -> Optional[object]:
    """Best-effort parse of malformed JSON.

    Stray tokens are skipped, missing separators tolerated and unterminated
    containers closed at the end of the text. Returns the first object or
    array found, or ``None``.
    """
    parser = _RecoveringParser(list(_tokenize(text)))
    while not parser.at_end():
        value = parser.value()
        if isinstance(value, (dict, list)):
            return value
    return None


def _tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    position = 0
    while position < len(text):
        match = _TOKEN.match(text, position)
        if match is None:
            break
        kind = match.lastgroup or "other"
        position = match.end()
        if kind in ("skip", "other"):
            continue
        if kind == "string":
            value, position = _scan_string(text, position)
            tokens.append(("string", value))
        else:
            tokens.append((kind, match.group()))
    return tokens


def _scan_string(text: str, start: int) -> Tuple[str, int]:
    try:
        return scanstring(text, start, False)
    except ValueError:
        # Unterminated or badly escaped: keep the rest of the line.
        end = text.find("\n", start)
        end = len(text) if end == -1 else end
        return text[start:end].rstrip('"'), end


class _RecoveringParser:
    def __init__(self, tokens: List[Token]) -> None:
        self._tokens = tokens
        self._index = 0

    def at_end(self) -> bool:
        return self._index >= len(self._tokens)

    def _peek(self) -> Optional[Token]:
        return None if self.at_end() else self._tokens[self._index]

    def _advance(self) -> Optional[Token]:
        token = self._peek()
        self._index += 1
        return token

    def value(self) -> object:
        token = self._advance()
        if token is None:
            return _MISSING
        kind, raw = token
        if kind == "punct":
            if raw == "{":
                return self._object()
            if raw == "[":
                return self._array()
            return _MISSING
        if kind == "number":
            return _number(str(raw))
        if kind == "word":
            return _LITERALS.get(str(raw), raw)
        return raw

    def _member_value(self) -> object:
        token = self._peek()
        if token is None or (token[0] == "punct" and token[1] in ",}]"):
            return _MISSING
        return self.value()

    def _object(self) -> Dict[str, object]:
        result: Dict[str, object] = {}
        while True:
            token = self._peek()
            if token is None:
                return result
            kind, raw = token
            if kind == "punct":
                if raw in "}]":
                    self._advance()
                    return result
                if raw in ",:":
                    self._advance()
                    continue
                # A value without a key.
                self.value()
                continue
            self._advance()
            key = str(raw)
            following = self._peek()
            if following != ("punct", ":"):
                continue
            self._advance()
            item = self._member_value()
            if item is not _MISSING:
                result[key] = item

    def _array(self) -> List[object]:
        result: List[object] = []
        while True:
            token = self._peek()
            if token is None:
                return result
            kind, raw = token
            if kind == "punct" and raw in "]}":
                self._advance()
                return result
            if kind == "punct" and raw in ",:":
                self._advance()
                continue
            item = self.value()
            if item is not _MISSING:
                result.append(item)


def _number(raw: str) -> object:
    if any(char in raw for char in ".eE"):
        return float(raw)
    return int(raw)


def parse_with_errors(path: str, text: str) -> Tuple[Optional[object], List[Tuple[str, SourcePosition]]]:
    """Convenience wrapper collecting errors into a list."""
    errors: List[Tuple[str, SourcePosition]] = []
    document = parse_document(path, text, lambda message, position: errors.append((message, position)))
    return document, errors


def position_of(data: bytes, offset: int) -> SourcePosition:
    """Line and column of a byte offset, for content that is not valid text."""
    line_start = data.rfind(b"\n", 0, offset) + 1
    return SourcePosition(line=data.count(b"\n", 0, offset) + 1, column=offset - line_start + 1, offset=offset)


__all__ = [
    "ErrorCallback",
    "SourcePosition",
    "parse_document",
    "parse_with_errors",
    "position_of",
    "recover_document",
]
