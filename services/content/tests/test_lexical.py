from app.richtext.lexical import FORMAT_BOLD, FORMAT_CODE, FORMAT_ITALIC, markdown_to_lexical


def _children(markdown: str, **kwargs) -> list[dict]:
    return markdown_to_lexical(markdown, **kwargs)["root"]["children"]


def test_paragraph_with_inline_formats() -> None:
    (paragraph,) = _children("plain **bold** *it* `code`")
    assert paragraph["type"] == "paragraph"
    texts = [(node["text"], node["format"]) for node in paragraph["children"]]
    assert texts == [
        ("plain ", 0),
        ("bold", FORMAT_BOLD),
        (" ", 0),
        ("it", FORMAT_ITALIC),
        (" ", 0),
        ("code", FORMAT_CODE),
    ]


def test_nested_formats_combine() -> None:
    (paragraph,) = _children("***both***")
    (node,) = paragraph["children"]
    assert node["text"] == "both"
    assert node["format"] == FORMAT_BOLD | FORMAT_ITALIC


def test_first_h1_is_skipped_by_default() -> None:
    children = _children("# Title\n\n## Section\n\nBody")
    assert [c["type"] for c in children] == ["heading", "paragraph"]
    assert children[0]["tag"] == "h2"


def test_first_h1_kept_when_requested() -> None:
    children = _children("# Title\n\nBody", skip_first_h1=False)
    assert children[0]["type"] == "heading"
    assert children[0]["tag"] == "h1"
    assert children[0]["children"][0]["text"] == "Title"


def test_lists_number_their_items() -> None:
    bullet, ordered = _children("- a\n- b\n\n1. one\n2. two\n", skip_first_h1=False)
    assert bullet["listType"] == "bullet"
    assert bullet["tag"] == "ul"
    assert [item["value"] for item in bullet["children"]] == [1, 2]
    assert ordered["listType"] == "number"
    assert ordered["tag"] == "ol"
    assert ordered["children"][1]["children"][0]["children"][0]["text"] == "two"


def test_fenced_code_keeps_language() -> None:
    (code,) = _children("```python\nprint(1)\n```\n")
    assert code["type"] == "code"
    assert code["language"] == "python"
    assert code["children"][0]["text"] == "print(1)"


def test_link_quote_rule_and_image() -> None:
    children = _children(
        "[site](https://example.com)\n\n> quoted\n\n---\n\n![alt text](/img.png)\n"
    )
    link = children[0]["children"][0]
    assert link["type"] == "link"
    assert link["url"] == "https://example.com"
    assert link["children"][0]["text"] == "site"
    assert children[1]["type"] == "quote"
    assert children[2] == {"type": "horizontalrule", "version": 1}
    assert children[3] == {"type": "lexical-media", "url": "/img.png", "alt": "alt text", "version": 1}


def test_table_marks_header_cells() -> None:
    (table,) = _children("| a | b |\n|---|:-:|\n| 1 | 2 |\n")
    header, row = table["children"]
    assert [cell["header"] for cell in header["children"]] == [True, True]
    assert [cell["header"] for cell in row["children"]] == [False, False]
    assert row["children"][1]["align"] == "center"
    assert row["children"][0]["children"][0]["children"][0]["text"] == "1"


def test_empty_markdown_gives_empty_root() -> None:
    assert markdown_to_lexical("")["root"]["children"] == []
