"""Locate the highest recently-edited blocks of a page."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from dross.notion.models import ContentNode, Document

from .walker import RemoteTreeWalker, TraversalState

logger = logging.getLogger(__name__)

DEFAULT_ROOT_BUDGET = 30.0


@dataclass(slots=True)
class RootSearch:
    """Roots found for one page and whether the search ran out of time."""

    document: Document
    roots: list[ContentNode] = field(default_factory=list)
    truncated: bool = False


async def find_roots(
    document: Document,
    cutoff: datetime,
    walker: RemoteTreeWalker,
    *,
    budget: Optional[float] = DEFAULT_ROOT_BUDGET,
    state: Optional[TraversalState] = None,
    clock: Callable[[], float] = time.monotonic,
) -> RootSearch:
    """Breadth-first search for blocks edited at or after ``cutoff``.

    Descent stops at the first edited block on every path, so no returned
    root is an ancestor of another. Stale blocks are descended into when they
    report children. Empty blocks are never returned.

    When ``budget`` seconds elapse the search stops and returns what it has,
    flagged as truncated. Transport failures propagate.
    """

    state = state or TraversalState()
    search = RootSearch(document=document)
    deadline = None if budget is None else clock() + budget

    def expired() -> bool:
        return deadline is not None and clock() >= deadline

    if expired():
        state.truncated = search.truncated = True
        return search

    queue: deque[ContentNode] = deque(await walker.fetch_document_children(document, state=state))
    while queue:
        if expired():
            state.truncated = search.truncated = True
            logger.info(
                "Root search for %s stopped after %.1fs with %d roots and %d blocks pending",
                document.url,
                budget,
                len(search.roots),
                len(queue),
            )
            break

        node = queue.popleft()
        if not state.visit(node.id):
            continue

        if node.edited_since(cutoff):
            if not node.is_empty:
                search.roots.append(node)
            continue

        if node.has_children:
            queue.extend(await walker.fetch_children(node.id, container_id=document.id, state=state))

    logger.debug("Found %d roots in page %s after %d fetches", len(search.roots), document.url, state.fetches)
    return search
