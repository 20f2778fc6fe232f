"""Reader for markdown manifests (``readme.md``) declaring specification inputs."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .logging import get_logger

DEFAULT_MARKER = "see https://aka.ms/autorest"
BASIC_INFORMATION_HEADING = "Basic Information"
THIS_FOLDER = "$(this-folder)"

_FENCE = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_HEADING = re.compile(r"^ {0,3}(#{1,6})\s+(.*?)\s*#*\s*$")
_QUOTE = re.compile(r"^ {0,3}>\s?(.*)$")
_TAG_CONDITION = re.compile(r"\$\(tag\)\s*==\s*['\"]([^'\"]+)['\"]")
_DATA_LANGUAGES = {"yaml", "json"}

logger = get_logger("manifest")


@dataclass
class CodeBlock:
    """A fenced code block and the heading it appears under."""

    info: str
    literal: str
    heading: Optional[str] = None
    _data: Any = field(default=None, init=False, repr=False)
    _loaded: bool = field(default=False, init=False, repr=False)

    @property
    def language(self) -> str:
        parts = self.info.strip().split()
        return parts[0].lower() if parts else ""

    @property
    def tag(self) -> Optional[str]:
        """Tag named by a ``$(tag) == '...'`` condition in the info string."""
        match = _TAG_CONDITION.search(self.info)
        return match.group(1) if match else None

    @property
    def data(self) -> Any:
        if not self._loaded:
            self._data = _safe_load(self.literal)
            self._loaded = True
        return self._data

    def input_files(self) -> List[str]:
        data = self.data
        if not isinstance(data, dict):
            return []
        value = data.get("input-file")
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [item for item in value if isinstance(item, str)]
        return []


class ManifestModel:
    """Structured view over a manifest's headings, code blocks and quotes."""

    def __init__(self, blocks: List[CodeBlock], quotes: List[str]) -> None:
        self.blocks = blocks
        self.quotes = quotes

    def section(self, heading: str) -> Optional[CodeBlock]:
        """Return the first code block that follows ``heading``."""
        for block in self.blocks:
            if block.heading == heading:
                return block
        return None

    def input_files(self, tag: Optional[str] = None) -> List[str]:
        """Return declared input files, optionally restricted to one tag."""
        seen: Dict[str, None] = {}
        for block in self.blocks:
            if block.language != "yaml":
                continue
            if tag is not None and block.tag != tag:
                continue
            for entry in block.input_files():
                seen.setdefault(entry, None)
        return list(seen)

    def default_tag(self) -> Optional[str]:
        basic = self.section(BASIC_INFORMATION_HEADING)
        if basic is not None:
            tag = _tag_of(basic.data)
            if tag:
                return tag
        for block in self.blocks:
            if block.language not in _DATA_LANGUAGES:
                continue
            tag = _tag_of(block.data)
            if tag:
                return tag
        return None

    def has_recognized_marker(self, marker: str = DEFAULT_MARKER) -> bool:
        return any(quote == marker for quote in self.quotes)


def parse_manifest(text: str) -> ManifestModel:
    """Scan markdown text for fenced code blocks, headings and block-quotes."""
    blocks: List[CodeBlock] = []
    quotes: List[str] = []
    heading: Optional[str] = None
    fence: Optional[str] = None
    info = ""
    body: List[str] = []
    in_quote = False
    # True until the first text line of the current block-quote is seen.
    lead_pending = False

    def _close_quote() -> None:
        nonlocal in_quote, lead_pending
        in_quote = False
        lead_pending = False

    for line in text.splitlines():
        if fence is not None:
            stripped = line.strip()
            if stripped.startswith(fence[0] * len(fence)) and not stripped.strip(fence[0]):
                blocks.append(CodeBlock(info=info, literal="\n".join(body) + "\n", heading=heading))
                # Only the first block under a heading is addressable by that heading.
                heading = None
                fence = None
                body = []
            else:
                body.append(line)
            continue

        fence_match = _FENCE.match(line)
        if fence_match:
            _close_quote()
            fence = fence_match.group("fence")
            info = fence_match.group("info").strip()
            continue

        heading_match = _HEADING.match(line)
        if heading_match:
            _close_quote()
            heading = heading_match.group(2).strip()
            continue

        quote_match = _QUOTE.match(line)
        if quote_match:
            content = quote_match.group(1).strip()
            if not in_quote:
                in_quote = True
                lead_pending = True
            if content and lead_pending:
                # Only the first line of the lead paragraph is kept; a soft
                # break ends it.
                quotes.append(content)
                lead_pending = False
            continue

        _close_quote()

    _close_quote()
    if fence is not None:
        # An unterminated fence runs to the end of the document.
        blocks.append(CodeBlock(info=info, literal="\n".join(body) + "\n", heading=heading))
    return ManifestModel(blocks=blocks, quotes=quotes)


def read_manifest(path: Path) -> ManifestModel:
    return parse_manifest(path.read_text(encoding="utf-8"))


def resolve_input_file(manifest_path: str, entry: str) -> str:
    """Resolve a declared input file against the manifest's directory."""
    directory = os.path.dirname(manifest_path)
    normalized = entry.replace(THIS_FOLDER, ".")
    return os.path.abspath(os.path.normpath(os.path.join(directory, *normalized.split("\\"))))


def _tag_of(data: Any) -> Optional[str]:
    if isinstance(data, dict):
        tag = data.get("tag")
        if isinstance(tag, str) and tag:
            return tag
    return None


def _safe_load(literal: str) -> Any:
    try:
        return yaml.safe_load(literal)
    except yaml.YAMLError as exc:
        logger.debug("Ignoring unparsable manifest code block: %s", exc)
        return None


__all__ = [
    "BASIC_INFORMATION_HEADING",
    "CodeBlock",
    "DEFAULT_MARKER",
    "ManifestModel",
    "parse_manifest",
    "read_manifest",
    "resolve_input_file",
]
