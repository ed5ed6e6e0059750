"""Fetch every child of a content node, following the source's cursors."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Protocol

from dross.notion.client import DEFAULT_PAGE_SIZE, ResultPage
from dross.notion.models import ContentNode

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from dross.notion.models import Document

logger = logging.getLogger(__name__)


class ChildSource(Protocol):
    """The single I/O boundary the traversal depends on."""

    async def list_children(
        self,
        node_id: str,
        *,
        cursor: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        container_id: Optional[str] = None,
    ) -> ResultPage: ...


@dataclass
class TraversalState:
    """Bookkeeping for one root-finding or expansion run."""

    visited: set[str] = field(default_factory=set)
    fetches: int = 0
    truncated: bool = False

    def visit(self, node_id: str) -> bool:
        """Mark ``node_id`` visited; return ``False`` if it already was."""

        if node_id in self.visited:
            return False
        self.visited.add(node_id)
        return True


class RemoteTreeWalker:
    """Retrieve complete child lists from a paginated :class:`ChildSource`."""

    def __init__(self, source: ChildSource, *, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.source = source
        self.page_size = page_size

    async def fetch_children(
        self,
        node_id: str,
        *,
        container_id: Optional[str] = None,
        state: Optional[TraversalState] = None,
    ) -> list[ContentNode]:
        children: list[ContentNode] = []
        cursor: Optional[str] = None
        while True:
            result = await self.source.list_children(
                node_id,
                cursor=cursor,
                page_size=self.page_size,
                container_id=container_id,
            )
            if state is not None:
                state.fetches += 1
            children.extend(result.items)
            if not result.has_more or not result.next_cursor:
                break
            cursor = result.next_cursor
        return children

    async def fetch_document_children(
        self,
        document: "Document",
        *,
        state: Optional[TraversalState] = None,
    ) -> list[ContentNode]:
        """Return the page's immediate children, fetching them if not yet loaded."""

        if document.child_nodes is None:
            document.child_nodes = await self.fetch_children(document.id, container_id=document.id, state=state)
            logger.debug("Loaded %d top-level blocks for page %s", len(document.child_nodes), document.url)
        return document.child_nodes
