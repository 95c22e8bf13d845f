"""Document inspection.

Statistics over an encoded document, computed from the raw link table
without decoding it. Used by ``storyframe inspect``.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from storyframe.observability.logging import get_logger
from storyframe.serde.codec import DOCUMENT_ROOT

log = get_logger(__name__)


@dataclass
class DocumentSummary:
    """High-level document statistics."""

    root_type: str
    total_entries: int = 0
    records: int = 0
    sequences: int = 0
    record_types: dict[str, int] = field(default_factory=dict)
    singleton_refs: dict[str, int] = field(default_factory=dict)
    shared_links: int = 0
    max_depth: int = 0


def _describe_root(entry: Any) -> str:
    if isinstance(entry, list):
        return "list"
    if isinstance(entry, Mapping):
        constructor = entry.get(DOCUMENT_ROOT)
        if isinstance(constructor, str) and constructor.startswith("s"):
            return constructor[1:]
        return "unknown"
    if entry is None:
        return "None"
    if isinstance(entry, str):
        if entry.startswith("_"):
            return "str"
        if entry.startswith("rs"):
            return "RegisteredSymbol"
        if entry.startswith("s"):
            return f"singleton {entry[1:]}"
        if entry.startswith("b"):
            return "int"
    return type(entry).__name__


def _link_depth(link: str) -> int:
    # Count unescaped separators
    depth = 0
    escaped = False
    for char in link:
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ".":
            depth += 1
    return depth


def summarize_document(document: Mapping[str, Any]) -> DocumentSummary:
    """Collect statistics about an encoded document.

    Args:
        document: A document as produced by :func:`storyframe.serde.codec.encode`.

    Returns:
        DocumentSummary. Malformed entries are skipped; use
        :func:`storyframe.serde.codec.check_document` to find them.
    """
    record_types: Counter[str] = Counter()
    singleton_refs: Counter[str] = Counter()
    link_refs: Counter[str] = Counter()
    records = sequences = 0

    def scan(raw: Any) -> None:
        if not isinstance(raw, str):
            return
        if raw == DOCUMENT_ROOT or raw.startswith("."):
            link_refs[raw] += 1
        elif raw.startswith("s"):
            singleton_refs[raw[1:]] += 1

    for entry in document.values():
        if isinstance(entry, list):
            sequences += 1
            for item in entry:
                scan(item)
        elif isinstance(entry, Mapping):
            records += 1
            constructor = entry.get(DOCUMENT_ROOT)
            if isinstance(constructor, str) and constructor.startswith("s"):
                record_types[constructor[1:]] += 1
            for key, item in entry.items():
                if key != DOCUMENT_ROOT:
                    scan(item)

    # Every link is used once by its owner, so further uses are aliases
    shared = sum(1 for link, count in link_refs.items() if count > 1 or link == DOCUMENT_ROOT)

    summary = DocumentSummary(
        root_type=_describe_root(document.get(DOCUMENT_ROOT)),
        total_entries=len(document),
        records=records,
        sequences=sequences,
        record_types=dict(record_types.most_common()),
        singleton_refs=dict(singleton_refs.most_common()),
        shared_links=shared,
        max_depth=max((_link_depth(link) for link in document), default=0),
    )
    log.debug("document_summarized", entries=summary.total_entries, root=summary.root_type)
    return summary


__all__ = ["DocumentSummary", "summarize_document"]
