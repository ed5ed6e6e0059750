"""Arena-backed content trees and the breadth-first subtree expander."""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable, Iterator, Optional

from dross.notion.models import ContentNode

from .walker import RemoteTreeWalker, TraversalState

logger = logging.getLogger(__name__)

ROOT_INDEX = 0


class Tree:
    """A tree whose nodes live in one list and reference each other by index."""

    def __init__(self, root: ContentNode) -> None:
        self.nodes: list[ContentNode] = [root]
        self.parents: list[Optional[int]] = [None]
        self._children: list[list[int]] = [[]]

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        return f"Tree(root={self.root.id!r}, size={len(self)})"

    @property
    def root(self) -> ContentNode:
        return self.nodes[ROOT_INDEX]

    def attach(self, parent: int, node: ContentNode) -> int:
        """Append ``node`` as the last child of ``parent`` and return its index."""

        if not 0 <= parent < len(self.nodes):
            raise IndexError(f"No node at index {parent} in {self!r}")
        index = len(self.nodes)
        self.nodes.append(node)
        self.parents.append(parent)
        self._children.append([])
        self._children[parent].append(index)
        return index

    def children(self, index: int) -> list[int]:
        return self._children[index]

    def iter_nodes(self) -> Iterator[ContentNode]:
        """Yield nodes in pre-order."""

        stack = [ROOT_INDEX]
        while stack:
            index = stack.pop()
            yield self.nodes[index]
            stack.extend(reversed(self._children[index]))


async def expand_roots(
    roots: Iterable[ContentNode],
    walker: RemoteTreeWalker,
    *,
    state: Optional[TraversalState] = None,
) -> list[Tree]:
    """Grow a full descendant tree below each root, whatever its edit time.

    A block id is placed at most once across all trees built by one call and
    fetched at most once, so duplicate references and cycles in the source
    terminate. Empty children are dropped. Transport failures propagate and
    discard every tree of the call.
    """

    state = state or TraversalState()
    placed: set[str] = set()
    trees: list[Tree] = []

    for root in roots:
        if root.id in placed:
            logger.debug("Skipping root %s already expanded in this run", root.id)
            continue
        placed.add(root.id)
        tree = Tree(root)
        queue: deque[int] = deque([ROOT_INDEX])
        while queue:
            index = queue.popleft()
            node = tree.nodes[index]
            if not state.visit(node.id):
                continue
            if not node.has_children:
                continue
            for child in await walker.fetch_children(node.id, container_id=node.container_id, state=state):
                if child.is_empty or child.id in placed:
                    continue
                placed.add(child.id)
                queue.append(tree.attach(index, child))
        trees.append(tree)

    logger.debug("Grew %d trees with %d fetches", len(trees), state.fetches)
    return trees
