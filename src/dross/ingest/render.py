"""Flatten content trees into indentation-encoded markdown."""

from __future__ import annotations

from typing import Iterable

from dross.notion.models import ContentNode, Document, NodeKind

from .tree import ROOT_INDEX, Tree

DEFAULT_INDENT = "\t"
PAGE_HEADER = "Page Title: {title}"
SECTION_SEPARATOR = "\n"

_ENTER = 0
_LEAVE = 1


class MarkdownRenderer:
    """Render trees as one line per node, indented by depth.

    ``render_page_root`` decides whether a page's header line acts as the root
    of its trees (block lines indented one extra level) or whether each
    qualifying block is a root at depth zero.
    """

    def __init__(
        self,
        *,
        indent: str = DEFAULT_INDENT,
        render_page_root: bool = False,
        format_markers: bool = False,
    ) -> None:
        self.indent = indent
        self.render_page_root = render_page_root
        self.format_markers = format_markers

    def format_node(self, node: ContentNode) -> str:
        if not self.format_markers:
            return node.text
        if node.kind is NodeKind.HEADING:
            return "#" * max(node.level, 1) + " " + node.text
        if node.kind is NodeKind.LIST_ITEM:
            return ("1. " if node.ordered else "- ") + node.text
        if node.kind is NodeKind.CALLOUT:
            return "> " + node.text
        if node.kind is NodeKind.CODE:
            return f"`{node.text}`"
        return node.text

    def render_tree(self, tree: Tree, *, base_depth: int = 0) -> str:
        lines: list[str] = []
        depth = 0
        stack: list[tuple[int, int]] = [(_LEAVE, ROOT_INDEX), (_ENTER, ROOT_INDEX)]
        while stack:
            event, index = stack.pop()
            if event == _LEAVE:
                depth -= 1
                continue
            depth += 1
            lines.append(self.indent * (depth - 1 + base_depth) + self.format_node(tree.nodes[index]) + "\n")
            for child in reversed(tree.children(index)):
                stack.append((_LEAVE, child))
                stack.append((_ENTER, child))
        if depth != 0:
            raise RuntimeError(f"Depth counter ended at {depth} after rendering {tree!r}")
        return "".join(lines)

    def render_trees(self, trees: Iterable[Tree], *, base_depth: int = 0) -> str:
        return "".join(self.render_tree(tree, base_depth=base_depth) for tree in trees)

    def render_document(self, document: Document, trees: Iterable[Tree]) -> str:
        header = PAGE_HEADER.format(title=document.title) + "\n"
        base_depth = 1 if self.render_page_root else 0
        return header + self.render_trees(trees, base_depth=base_depth)

    @staticmethod
    def join_sections(sections: Iterable[str]) -> str:
        return SECTION_SEPARATOR.join(sections)
