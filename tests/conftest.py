from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from dross.ingest.walker import RemoteTreeWalker
from dross.notion.client import ResultPage
from dross.notion.models import ContentNode, Document, NodeKind

NOW = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)
LAST_MONTH = NOW - timedelta(days=30)
YESTERDAY = NOW - timedelta(days=1)


def make_node(
    node_id: str,
    text: str = "",
    *,
    updated: datetime = LAST_MONTH,
    has_children: bool = False,
    container_id: str = "page-1",
    parent_id: Optional[str] = None,
    kind: NodeKind = NodeKind.PARAGRAPH,
    level: int = 0,
    ordered: bool = False,
) -> ContentNode:
    return ContentNode(
        id=node_id,
        container_id=container_id,
        text=text or f"text of {node_id}",
        created_at=min(updated, LAST_MONTH),
        updated_at=updated,
        parent_id=parent_id,
        has_children=has_children,
        kind=kind,
        level=level,
        ordered=ordered,
    )


def make_empty_node(node_id: str, **kwargs) -> ContentNode:
    node = make_node(node_id, **kwargs)
    node.text = ""
    return node


def make_document(
    document_id: str = "page-1",
    *,
    url: str = "https://www.notion.so/Weekly-Notes-0123456789abcdef",
    updated: datetime = NOW,
    child_nodes: Optional[list[ContentNode]] = None,
) -> Document:
    return Document(
        id=document_id,
        url=url,
        created_at=LAST_MONTH,
        updated_at=updated,
        child_nodes=child_nodes,
    )


class FakeSource:
    """In-memory children listing that pages results ``page_size`` at a time."""

    def __init__(self, children: dict[str, list[ContentNode]], *, page_size: int = 2) -> None:
        self.children = children
        self.page_size = page_size
        self.calls: list[tuple[str, Optional[str]]] = []
        self.failures: dict[str, Exception] = {}

    async def list_children(
        self,
        node_id: str,
        *,
        cursor: Optional[str] = None,
        page_size: int = 100,
        container_id: Optional[str] = None,
    ) -> ResultPage:
        self.calls.append((node_id, cursor))
        if node_id in self.failures:
            raise self.failures[node_id]
        items = self.children.get(node_id, [])
        start = int(cursor or 0)
        end = start + min(page_size, self.page_size)
        has_more = end < len(items)
        return ResultPage(
            items=list(items[start:end]),
            next_cursor=str(end) if has_more else None,
            has_more=has_more,
        )

    def fetched(self, node_id: str) -> int:
        return sum(1 for called, cursor in self.calls if called == node_id and cursor is None)


@pytest.fixture
def source_factory():
    def _factory(children: dict[str, list[ContentNode]], **kwargs) -> tuple[FakeSource, RemoteTreeWalker]:
        source = FakeSource(children, **kwargs)
        return source, RemoteTreeWalker(source)

    return _factory


class FakeNotion(FakeSource):
    """FakeSource that also answers the recent-pages search."""

    def __init__(self, documents: list[Document], children: dict[str, list[ContentNode]], **kwargs) -> None:
        super().__init__(children, **kwargs)
        self.documents = documents
        self.searched_with: Optional[datetime] = None
        self.closed = False

    async def search_recent_pages(self, cutoff: datetime) -> list[Document]:
        self.searched_with = cutoff
        return [make_document(document.id, url=document.url) for document in self.documents]

    async def aclose(self) -> None:
        self.closed = True


def sample_notion() -> FakeNotion:
    documents = [
        make_document("page-1", url="https://www.notion.so/Weekly-Notes-1"),
        make_document("page-2", url="https://www.notion.so/Quiet-Page-2"),
        make_document("page-3", url="https://www.notion.so/Reading-List-3"),
    ]
    children = {
        "page-1": [make_node("a", "Task", updated=NOW, has_children=True)],
        "a": [make_node("b", "Sub 1"), make_node("c", "Sub 2")],
        "page-2": [make_node("old", "Untouched")],
        "page-3": [make_node("r", "Book", updated=NOW, container_id="page-3")],
    }
    return FakeNotion(documents, children)
