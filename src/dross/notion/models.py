"""Typed models for Notion content used throughout the ingest pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .naming import title_from_url


class NodeKind(str, enum.Enum):
    """Block kinds the text extractor registry knows how to read."""

    PARAGRAPH = "paragraph"
    HEADING = "heading"
    LIST_ITEM = "list_item"
    TOGGLE = "toggle"
    CODE = "code"
    CALLOUT = "callout"
    BOOKMARK = "bookmark"
    EMBED = "embed"
    LINK_PREVIEW = "link_preview"
    OTHER = "other"


@dataclass(slots=True)
class ContentNode:
    """A single block of content below a page."""

    id: str
    container_id: str
    text: str
    created_at: datetime
    updated_at: datetime
    parent_id: Optional[str] = None
    has_children: bool = False
    kind: NodeKind = NodeKind.PARAGRAPH
    level: int = 0
    ordered: bool = False

    def __post_init__(self) -> None:
        if self.updated_at < self.created_at:
            raise ValueError(
                f"Node {self.id!r} was updated ({self.updated_at}) before it was created ({self.created_at})"
            )

    @property
    def is_empty(self) -> bool:
        return self.text == ""

    def edited_since(self, cutoff: datetime) -> bool:
        return self.updated_at >= cutoff


@dataclass(slots=True)
class Document:
    """A Notion page: the top-level container of content nodes."""

    id: str
    url: str
    created_at: datetime
    updated_at: datetime
    child_nodes: Optional[list[ContentNode]] = None

    @property
    def title(self) -> str:
        return title_from_url(self.url)
