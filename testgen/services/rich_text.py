"""
Plain text extraction from Atlassian Document Format (ADF) trees.

Only block types that carry readable prose are rendered:

- ``paragraph`` and ``heading``: inline text fragments joined, then a line break
- ``bulletList`` / ``orderedList``: children rendered in order, no marker
- ``listItem``: children rendered and prefixed with ``"- "``

Every other node type contributes nothing. The walk never raises; a node
without ``content`` renders as empty, while an empty ``content`` list on a
paragraph or heading still yields its line break.
"""

from typing import Any, Iterable, List

LIST_ITEM_MARKER = "- "

_INLINE_BLOCKS = ("paragraph", "heading")
_LIST_BLOCKS = ("bulletList", "orderedList")


def extract_plain_text(document: Any) -> str:
    """Render an ADF document (or a bare list of nodes) as plain text.

    Strings are returned unchanged and ``None`` becomes ``""``.
    """
    if document is None:
        return ""
    if isinstance(document, str):
        return document

    if isinstance(document, dict):
        if document.get("type") in _INLINE_BLOCKS + _LIST_BLOCKS + ("listItem",):
            nodes: Any = [document]
        else:
            nodes = document.get("content")
    else:
        nodes = document

    return _render_nodes(nodes).rstrip()


def _children(node: dict) -> List[Any]:
    content = node.get("content")
    return content if isinstance(content, list) else []


def _inline_text(node: dict) -> str:
    parts = []
    for inline in _children(node):
        if isinstance(inline, dict):
            text = inline.get("text")
            if isinstance(text, str):
                parts.append(text)
    return "".join(parts)


def _render_nodes(nodes: Any) -> str:
    if not isinstance(nodes, Iterable) or isinstance(nodes, (str, bytes, dict)):
        return ""

    out: List[str] = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        node_type = node.get("type")
        if node_type in _INLINE_BLOCKS:
            # An empty content list still renders as a blank line
            if isinstance(node.get("content"), list):
                out.append(_inline_text(node) + "\n")
        elif node_type in _LIST_BLOCKS:
            out.append(_render_nodes(_children(node)))
        elif node_type == "listItem":
            out.append(LIST_ITEM_MARKER + _render_nodes(_children(node)))
    return "".join(out)


def collect_link_urls(document: Any) -> List[str]:
    """Return URLs carried by smart links and link marks, in document order.

    These never show up in :func:`extract_plain_text` output, but Jira turns
    pasted pull request URLs into ``inlineCard`` nodes.
    """
    urls: List[str] = []

    def visit(node: Any) -> None:
        if isinstance(node, list):
            for child in node:
                visit(child)
            return
        if not isinstance(node, dict):
            return
        attrs = node.get("attrs")
        if node.get("type") in ("inlineCard", "blockCard", "embedCard") and isinstance(attrs, dict):
            url = attrs.get("url")
            if isinstance(url, str):
                urls.append(url)
        marks = node.get("marks")
        for mark in marks if isinstance(marks, list) else []:
            if isinstance(mark, dict) and mark.get("type") == "link":
                mark_attrs = mark.get("attrs")
                href = mark_attrs.get("href") if isinstance(mark_attrs, dict) else None
                if isinstance(href, str):
                    urls.append(href)
        visit(node.get("content"))

    if isinstance(document, (dict, list)):
        visit(document)
    return urls
