import copy

from app.cms.canonical import CanonicalModule, CanonicalPost
from app.registry.registry import ModuleRegistry
from app.registry.schemas import FieldSchema, ModuleSchema
from app.richtext.lexical import markdown_to_lexical
from app.richtext.normalize import normalize_fields, normalize_snapshot_richtext


def _doc(markdown: str) -> dict:
    return markdown_to_lexical(markdown, skip_first_h1=False)


def _snapshot(*modules: CanonicalModule) -> CanonicalPost:
    return CanonicalPost(modules=list(modules))


def test_plain_markdown_is_converted(registry: ModuleRegistry) -> None:
    snapshot = _snapshot(
        CanonicalModule(type="text-block", scope="post", props={"title": "# Keep", "text": "**hi**"})
    )
    normalize_snapshot_richtext(snapshot, registry)
    props = snapshot.modules[0].props
    assert props["text"] == _doc("**hi**")
    # Non-richtext fields are left alone
    assert props["title"] == "# Keep"


def test_json_looking_and_empty_strings_are_left_alone(registry: ModuleRegistry) -> None:
    snapshot = _snapshot(
        CanonicalModule(type="text-block", scope="post", props={"text": '  {"root": {}}'}),
        CanonicalModule(type="text-block", scope="post", props={"text": "[1, 2]"}),
        CanonicalModule(type="text-block", scope="post", props={"text": "   "}),
    )
    normalize_snapshot_richtext(snapshot, registry)
    assert [m.props["text"] for m in snapshot.modules] == ['  {"root": {}}', "[1, 2]", "   "]


def test_nested_object_and_repeater_fields(registry: ModuleRegistry) -> None:
    snapshot = _snapshot(
        CanonicalModule(
            type="faq",
            scope="post",
            props={
                "items": [
                    {"question": "Why?", "answer": "Because *so*"},
                    {"question": "How?", "answer": {"root": {"children": []}}},
                    "not an object",
                ]
            },
        ),
    )
    normalize_snapshot_richtext(snapshot, registry)
    items = snapshot.modules[0].props["items"]
    assert items[0] == {"question": "Why?", "answer": _doc("Because *so*")}
    assert items[1]["answer"] == {"root": {"children": []}}
    assert items[2] == "not an object"


def test_unknown_module_type_is_skipped(registry: ModuleRegistry) -> None:
    snapshot = _snapshot(CanonicalModule(type="mystery", scope="post", props={"text": "**x**"}))
    normalize_snapshot_richtext(snapshot, registry)
    assert snapshot.modules[0].props == {"text": "**x**"}


def test_normalization_is_idempotent(registry: ModuleRegistry) -> None:
    snapshot = _snapshot(
        CanonicalModule(type="text-block", scope="post", props={"text": "**hi**"}),
        CanonicalModule(
            type="feature-grid",
            scope="global",
            props={"features": [{"title": "A", "body": "- one\n- two"}]},
        ),
        CanonicalModule(type="text-block", scope="post", props={"text": '{"root": {}}'}),
    )
    normalize_snapshot_richtext(snapshot, registry)
    once = copy.deepcopy([m.props for m in snapshot.modules])
    normalize_snapshot_richtext(snapshot, registry)
    assert [m.props for m in snapshot.modules] == once


def test_custom_normalizer_and_object_fields() -> None:
    registry = ModuleRegistry(
        [
            ModuleSchema(
                type="card",
                name="Card",
                field_schema=[
                    FieldSchema(
                        slug="content",
                        type="object",
                        fields=[FieldSchema(slug="body", type="richtext")],
                    )
                ],
            )
        ]
    )
    calls = []

    def fake_normalizer(markdown: str, *, skip_first_h1: bool = True) -> dict:
        calls.append((markdown, skip_first_h1))
        return {"converted": markdown}

    props = {"content": {"body": "text", "other": "x"}}
    normalize_fields(props, registry.get_schema("card").field_schema, fake_normalizer)
    assert props == {"content": {"body": {"converted": "text"}, "other": "x"}}
    assert calls == [("text", False)]
