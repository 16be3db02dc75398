"""Markdown → Lexical editor JSON.

Agents and seeders hand us markdown; the admin editor stores Lexical documents.
Parsing is done with markdown-it-py (CommonMark + GFM tables/strikethrough) and
the resulting syntax tree is mapped node by node.
"""

from typing import Any

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

# Lexical text format bits
FORMAT_BOLD = 1
FORMAT_ITALIC = 2
FORMAT_STRIKETHROUGH = 4
FORMAT_CODE = 16

_INLINE_FORMATS = {"strong": FORMAT_BOLD, "em": FORMAT_ITALIC, "s": FORMAT_STRIKETHROUGH}

_md = MarkdownIt("commonmark", {"breaks": False, "html": True}).enable(["table", "strikethrough"])


def _text(text: str, fmt: int = 0) -> dict[str, Any]:
    return {
        "type": "text",
        "text": text,
        "detail": 0,
        "format": fmt,
        "mode": "normal",
        "style": "",
        "version": 1,
    }


def _element(type_: str, children: list[dict[str, Any]], **extra: Any) -> dict[str, Any]:
    return {
        "type": type_,
        **extra,
        "direction": "ltr",
        "format": "",
        "indent": 0,
        "version": 1,
        "children": children,
    }


def _paragraph(children: list[dict[str, Any]]) -> dict[str, Any]:
    return _element("paragraph", children)


def _inline(nodes: list[SyntaxTreeNode], fmt: int = 0) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for node in nodes:
        if node.type == "inline":
            out.extend(_inline(node.children, fmt))
        elif node.type == "text":
            if node.content:
                out.append(_text(node.content, fmt))
        elif node.type in _INLINE_FORMATS:
            out.extend(_inline(node.children, fmt | _INLINE_FORMATS[node.type]))
        elif node.type == "code_inline":
            out.append(_text(node.content, fmt | FORMAT_CODE))
        elif node.type == "softbreak":
            out.append(_text(" ", fmt))
        elif node.type == "hardbreak":
            out.append({"type": "linebreak", "version": 1})
        elif node.type == "link":
            out.append(
                _element(
                    "link",
                    _inline(node.children, fmt),
                    url=str(node.attrs.get("href") or "#"),
                    title=str(node.attrs.get("title") or ""),
                    rel="noreferrer noopener",
                    target="_blank",
                )
            )
        elif node.content:
            # image alt text, inline html, anything unmapped
            out.append(_text(node.content, fmt))
    return out


def _inline_children(node: SyntaxTreeNode) -> list[SyntaxTreeNode]:
    """Children of the single ``inline`` node a paragraph/heading wraps."""
    if len(node.children) == 1 and node.children[0].type == "inline":
        return node.children[0].children
    return node.children


def _media(image: SyntaxTreeNode) -> dict[str, Any]:
    return {
        "type": "lexical-media",
        "url": str(image.attrs.get("src") or ""),
        "alt": image.content or "",
        "version": 1,
    }


def _cell_align(cell: SyntaxTreeNode) -> str | None:
    style = str(cell.attrs.get("style") or "")
    if style.startswith("text-align:"):
        return style.split(":", 1)[1].strip()
    return None


def _table(node: SyntaxTreeNode) -> dict[str, Any]:
    rows = []
    for section in node.children:  # thead / tbody
        for tr in section.children:
            rows.append(
                {
                    "type": "tablerow",
                    "version": 1,
                    "children": [
                        {
                            "type": "tablecell",
                            "header": cell.type == "th",
                            "align": _cell_align(cell),
                            "version": 1,
                            "children": [_paragraph(_inline(cell.children))],
                        }
                        for cell in tr.children
                    ],
                }
            )
    return {"type": "table", "version": 1, "children": rows}


def _list(node: SyntaxTreeNode) -> dict[str, Any]:
    ordered = node.type == "ordered_list"
    items = []
    for position, item in enumerate(node.children, start=1):
        children = [child for child in (_block(c) for c in item.children) if child is not None]
        items.append(_element("listitem", children, value=position))
    return _element(
        "list",
        items,
        listType="number" if ordered else "bullet",
        start=int(node.attrs.get("start", 1)) if ordered else 1,
        tag="ol" if ordered else "ul",
    )


def _block(node: SyntaxTreeNode) -> dict[str, Any] | None:
    if node.type == "heading":
        return _element("heading", _inline(_inline_children(node)), tag=node.tag)

    if node.type == "paragraph":
        inline = _inline_children(node)
        if len(inline) == 1 and inline[0].type == "image":
            return _media(inline[0])
        return _paragraph(_inline(inline))

    if node.type in ("bullet_list", "ordered_list"):
        return _list(node)

    if node.type in ("fence", "code_block"):
        language = node.info.strip().split(" ", 1)[0] if node.info else ""
        return _element("code", [_text(node.content.rstrip("\n"))], language=language or None)

    if node.type == "blockquote":
        children = [child for child in (_block(c) for c in node.children) if child is not None]
        return _element("quote", children or [_paragraph([])])

    if node.type == "hr":
        return {"type": "horizontalrule", "version": 1}

    if node.type == "table":
        return _table(node)

    if node.type == "html_block":
        return _paragraph([_text(node.content.strip())])

    return None


def markdown_to_lexical(markdown: str, *, skip_first_h1: bool = True) -> dict[str, Any]:
    """Convert a markdown string into a Lexical root document.

    With ``skip_first_h1`` the first level-one heading is dropped, for content
    whose title is rendered separately.
    """
    tree = SyntaxTreeNode(_md.parse(markdown or ""))

    children: list[dict[str, Any]] = []
    skipped_h1 = False
    for node in tree.children:
        if skip_first_h1 and not skipped_h1 and node.type == "heading" and node.tag == "h1":
            skipped_h1 = True
            continue
        converted = _block(node)
        if converted is not None:
            children.append(converted)

    return {
        "root": {
            "type": "root",
            "direction": "ltr",
            "format": "",
            "indent": 0,
            "version": 1,
            "children": children,
        }
    }
