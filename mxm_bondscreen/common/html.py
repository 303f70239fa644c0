"""
Small BeautifulSoup helpers shared by the HTML table sources.

The table sources locate their data by a fixed element path from the
document root (``html/body/div/...``) rather than by CSS classes, and read
each cell through its first text-bearing node. Both walks are bounded:
paths by their own length, text descent by ``max_depth``.
"""

from __future__ import annotations

from typing import Iterator, Optional, Sequence

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

__all__ = [
    "parse_html",
    "element_children",
    "node_by_path",
    "first_text_node",
    "cell_text",
    "next_element_sibling",
    "node_by_table_path",
]

DEFAULT_TEXT_DEPTH = 16


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def element_children(node: Tag) -> Iterator[Tag]:
    """Yield direct element children, skipping text and comments."""
    for child in node.children:
        if isinstance(child, Tag):
            yield child


def node_by_path(root: Tag, path: Sequence[str]) -> Optional[Tag]:
    """
    Resolve an element path such as ``("html", "body", "div", "table")``.

    Every element child with a matching name is tried in document order and
    the walk backtracks on dead ends, so ``div/table`` finds the first ``div``
    that actually contains a ``table``. Returns ``None`` when nothing matches.
    """
    if not path:
        return root
    head, rest = path[0], path[1:]
    for child in element_children(root):
        if child.name != head:
            continue
        found = node_by_path(child, rest)
        if found is not None:
            return found
    return None


def first_text_node(
    node: Tag | NavigableString, max_depth: int = DEFAULT_TEXT_DEPTH
) -> Optional[NavigableString]:
    """
    Depth-first search for the first non-blank text node under ``node``.

    Comments are ignored. The descent stops after ``max_depth`` levels and
    returns ``None`` when no text is reachable.
    """
    if isinstance(node, NavigableString):
        if isinstance(node, Comment) or not node.strip():
            return None
        return node
    if max_depth <= 0:
        return None
    for child in node.children:
        if isinstance(child, (Tag, NavigableString)):
            found = first_text_node(child, max_depth - 1)
            if found is not None:
                return found
    return None


def cell_text(cell: Tag) -> str:
    """Visible text of a table cell (first text node, stripped)."""
    text = first_text_node(cell)
    return text.strip() if text is not None else ""


def next_element_sibling(node: Tag) -> Optional[Tag]:
    sib = node.next_sibling
    while sib is not None and not isinstance(sib, Tag):
        sib = sib.next_sibling
    return sib


def node_by_table_path(root: Tag, path: Sequence[str]) -> Optional[Tag]:
    """
    Like :func:`node_by_path`, tolerating tables served without ``tbody``.

    ``html.parser`` keeps the markup as written and does not synthesize a
    ``tbody`` the way browsers do, so when the literal path fails it is
    retried with every ``tbody`` step removed.
    """
    found = node_by_path(root, path)
    if found is None and "tbody" in path:
        found = node_by_path(root, [step for step in path if step != "tbody"])
    return found
