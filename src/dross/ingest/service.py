"""High-level ingest workflow: recent pages in, one markdown document out."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Callable, Iterable, Optional, Protocol

from dross.notion.client import NotionClient
from dross.notion.models import ContentNode, Document

from .render import DEFAULT_INDENT, MarkdownRenderer
from .roots import DEFAULT_ROOT_BUDGET, find_roots
from .tree import Tree, expand_roots
from .walker import RemoteTreeWalker, TraversalState

logger = logging.getLogger(__name__)


class PageSource(Protocol):
    async def search_recent_pages(self, cutoff: datetime) -> list[Document]: ...


@dataclass(slots=True)
class PageSection:
    """Rendered output for one page."""

    document: Document
    roots: list[ContentNode]
    trees: list[Tree]
    text: str
    truncated: bool = False


@dataclass(slots=True)
class IngestResult:
    """Report produced after an ingest run."""

    document: str
    processed_pages: int
    rendered_pages: int = 0
    root_count: int = 0
    truncated_pages: int = 0
    sections: list[PageSection] = field(default_factory=list)


class IngestService:
    """Coordinate page listing, root finding, expansion and rendering."""

    def __init__(
        self,
        pages: PageSource,
        walker: RemoteTreeWalker,
        renderer: MarkdownRenderer,
        *,
        budget: Optional[float] = DEFAULT_ROOT_BUDGET,
        skip_url_patterns: Iterable[str] = (),
    ) -> None:
        self.pages = pages
        self.walker = walker
        self.renderer = renderer
        self.budget = budget
        self.skip_url_patterns = tuple(skip_url_patterns)
        self.processed_pages = 0
        self.truncated_pages = 0

    async def iter_sections(self, cutoff: datetime) -> AsyncIterator[PageSection]:
        """Yield a rendered section for every recent page with edited content."""

        self.processed_pages = 0
        self.truncated_pages = 0
        documents = await self.pages.search_recent_pages(cutoff)
        logger.info("Retrieved %d pages edited since %s", len(documents), cutoff.isoformat())

        for document in documents:
            if self._skipped(document):
                logger.debug("Skipping page %s", document.url)
                continue
            self.processed_pages += 1

            search = await find_roots(
                document,
                cutoff,
                self.walker,
                budget=self.budget,
                state=TraversalState(),
            )
            if search.truncated:
                self.truncated_pages += 1
            if not search.roots:
                continue

            trees = await expand_roots(search.roots, self.walker, state=TraversalState())
            logger.debug("Grew %d trees for page %s: %r", len(trees), document.url, trees)
            yield PageSection(
                document=document,
                roots=search.roots,
                trees=trees,
                text=self.renderer.render_document(document, trees),
                truncated=search.truncated,
            )

    async def ingest(
        self,
        cutoff: datetime,
        *,
        on_section: Optional[Callable[[PageSection], None]] = None,
    ) -> IngestResult:
        """Run the whole pipeline and return the joined document.

        ``on_section`` is called as soon as each page is rendered, so callers can
        emit output progressively before the run finishes.
        """

        sections: list[PageSection] = []
        async for section in self.iter_sections(cutoff):
            if on_section is not None:
                on_section(section)
            sections.append(section)
        result = IngestResult(
            document=self.renderer.join_sections(section.text for section in sections),
            processed_pages=self.processed_pages,
            rendered_pages=len(sections),
            root_count=sum(len(section.roots) for section in sections),
            truncated_pages=self.truncated_pages,
            sections=sections,
        )
        logger.info("Ingested %d of %d pages", result.rendered_pages, result.processed_pages)
        return result

    def _skipped(self, document: Document) -> bool:
        return any(pattern in document.url for pattern in self.skip_url_patterns)


def create_service(
    client: NotionClient,
    *,
    indent: str = DEFAULT_INDENT,
    render_page_root: bool = False,
    format_markers: bool = False,
    budget: Optional[float] = DEFAULT_ROOT_BUDGET,
    skip_url_patterns: Iterable[str] = (),
) -> IngestService:
    renderer = MarkdownRenderer(
        indent=indent,
        render_page_root=render_page_root,
        format_markers=format_markers,
    )
    return IngestService(
        client,
        RemoteTreeWalker(client),
        renderer,
        budget=budget,
        skip_url_patterns=skip_url_patterns,
    )
