"""Plain-text extraction for Notion block payloads.

Each Notion block type is registered with the :class:`NodeKind` it maps to and
the function that reads its text. Unregistered block types fall back to
:data:`NodeKind.OTHER` with empty text, which the traversal treats as empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .models import NodeKind

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = " "

TextReader = Callable[[dict, str], str]


@dataclass(frozen=True, slots=True)
class BlockExtractor:
    """How to read one Notion block type."""

    kind: NodeKind
    read: TextReader
    level: int = 0
    ordered: bool = False


@dataclass(frozen=True, slots=True)
class ExtractedText:
    kind: NodeKind
    text: str
    level: int = 0
    ordered: bool = False


def join_rich_text(runs: Iterable[dict], separator: str = DEFAULT_SEPARATOR) -> str:
    """Join the ``plain_text`` of rich text runs with ``separator``."""

    return separator.join(run.get("plain_text") or "" for run in runs)


def _rich_text(payload: dict, separator: str) -> str:
    return join_rich_text(payload.get("rich_text", []), separator)


def _url(payload: dict, separator: str) -> str:
    return payload.get("url") or ""


class ExtractorRegistry:
    """Map Notion block types to text extractors."""

    def __init__(self, separator: str = DEFAULT_SEPARATOR) -> None:
        self.separator = separator
        self._extractors: dict[str, BlockExtractor] = {}

    def register(self, block_type: str, extractor: BlockExtractor) -> None:
        self._extractors[block_type] = extractor

    def supports(self, block_type: str) -> bool:
        return block_type in self._extractors

    def extract(self, block: dict) -> ExtractedText:
        block_type = block.get("type", "")
        extractor = self._extractors.get(block_type)
        if extractor is None:
            logger.debug("Block type %r not supported", block_type)
            return ExtractedText(kind=NodeKind.OTHER, text="")
        payload = block.get(block_type) or {}
        return ExtractedText(
            kind=extractor.kind,
            text=extractor.read(payload, self.separator),
            level=extractor.level,
            ordered=extractor.ordered,
        )


def default_registry(separator: Optional[str] = None) -> ExtractorRegistry:
    registry = ExtractorRegistry(DEFAULT_SEPARATOR if separator is None else separator)
    registry.register("paragraph", BlockExtractor(NodeKind.PARAGRAPH, _rich_text))
    for level in (1, 2, 3):
        registry.register(f"heading_{level}", BlockExtractor(NodeKind.HEADING, _rich_text, level=level))
    registry.register("bulleted_list_item", BlockExtractor(NodeKind.LIST_ITEM, _rich_text))
    registry.register("numbered_list_item", BlockExtractor(NodeKind.LIST_ITEM, _rich_text, ordered=True))
    registry.register("toggle", BlockExtractor(NodeKind.TOGGLE, _rich_text))
    registry.register("code", BlockExtractor(NodeKind.CODE, _rich_text))
    registry.register("callout", BlockExtractor(NodeKind.CALLOUT, _rich_text))
    registry.register("bookmark", BlockExtractor(NodeKind.BOOKMARK, _url))
    registry.register("embed", BlockExtractor(NodeKind.EMBED, _url))
    registry.register("link_preview", BlockExtractor(NodeKind.LINK_PREVIEW, _url))
    return registry
