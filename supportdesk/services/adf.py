"""
Atlassian Document Format (ADF) <-> plain text.

Lossy, best-effort conversion used for display (descriptions, comment
bodies) and for submitting plain text from the browser forms.

Plain text made of lines and blank-line separators survives a round trip:
``document_to_text(text_to_document(t)) == t``. Rich nodes (tables, media,
cards) are flattened toward plain text and do not round-trip.
"""

from __future__ import annotations

from typing import Any, Dict, List

MAX_DEPTH = 20

# Leaf blocks always get a newline after their content, even when the
# content already ends with a hardBreak.
_LEAF_BLOCKS = {"paragraph", "heading", "codeBlock"}
# Container blocks end with at most one newline.
_CONTAINER_BLOCKS = {"listItem", "blockquote", "tableCell", "tableHeader"}


def empty_document() -> Dict[str, Any]:
    return {"type": "doc", "version": 1, "content": []}


def text_to_document(text: str | None) -> Dict[str, Any]:
    """Build an ADF document from plain text.

    Blank lines separate paragraphs; single newlines inside a paragraph
    become ``hardBreak`` nodes. Empty input yields a document with no
    content blocks.
    """
    if not text:
        return empty_document()

    safe = text.replace("\r\n", "\n")
    content: List[Dict[str, Any]] = []
    for paragraph in safe.split("\n\n"):
        lines = paragraph.split("\n")
        nodes: List[Dict[str, Any]] = []
        for i, line in enumerate(lines):
            # ADF rejects empty text nodes
            if line:
                nodes.append({"type": "text", "text": line})
            if i < len(lines) - 1:
                nodes.append({"type": "hardBreak"})
        content.append({"type": "paragraph", "content": nodes})

    return {"type": "doc", "version": 1, "content": content}


def _ensure_newline(s: str) -> str:
    return s if s.endswith("\n") else s + "\n"


def _children(node: Dict[str, Any], depth: int, max_depth: int) -> str:
    content = node.get("content")
    if not isinstance(content, list):
        return ""
    return "".join(_walk(child, depth + 1, max_depth) for child in content)


def _walk(node: Any, depth: int, max_depth: int) -> str:
    if depth > max_depth or not isinstance(node, dict):
        return ""

    t = node.get("type")
    attrs = node.get("attrs") or {}

    if t == "text":
        return str(node.get("text") or "")
    if t == "hardBreak":
        return "\n"
    if t == "mention":
        return str(attrs.get("text") or attrs.get("id") or "@user")
    if t == "emoji":
        return str(attrs.get("shortName") or attrs.get("text") or "")
    if t in ("inlineCard", "blockCard"):
        url = attrs.get("url")
        return str(url) if url else ""
    if t in ("media", "mediaSingle", "mediaGroup"):
        return "[attachment]"
    if t == "rule":
        return "---\n"

    if t in ("bulletList", "orderedList"):
        items = node.get("content") if isinstance(node.get("content"), list) else []
        start = attrs.get("order") or 1
        out: List[str] = []
        for i, item in enumerate(items):
            text = _walk(item, depth + 1, max_depth)
            if not text:
                continue
            prefix = "• " if t == "bulletList" else f"{start + i}. "
            out.append(prefix + text)
        return "".join(out)

    if t == "tableRow":
        cells = node.get("content") if isinstance(node.get("content"), list) else []
        parts = [_walk(cell, depth + 1, max_depth).strip() for cell in cells]
        return "| " + " | ".join(parts) + " |\n"

    inner = _children(node, depth, max_depth)
    if t in _LEAF_BLOCKS:
        return inner + "\n"
    if t in _CONTAINER_BLOCKS:
        return _ensure_newline(inner) if inner else ""
    return inner


def document_to_text(doc: Any, max_depth: int = MAX_DEPTH) -> str:
    """Flatten an ADF document (or node list) to plain text.

    Top-level blocks are separated by a blank line. Unknown node types
    contribute their children's text. Nodes nested deeper than
    ``max_depth`` are dropped silently.
    """
    if doc is None:
        return ""
    if isinstance(doc, str):
        return doc

    if isinstance(doc, list):
        blocks = doc
    elif isinstance(doc, dict) and doc.get("type") == "doc":
        blocks = doc.get("content") if isinstance(doc.get("content"), list) else []
    elif isinstance(doc, dict):
        return _walk(doc, 0, max_depth)
    else:
        return ""

    rendered = [_walk(block, 1, max_depth) for block in blocks]
    text = "\n".join(_ensure_newline(r) for r in rendered if r)
    if text.endswith("\n"):
        text = text[:-1]
    return text
