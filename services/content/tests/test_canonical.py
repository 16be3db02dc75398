import uuid

import pytest

from app.cms.canonical import CANONICAL_VERSION, CanonicalPost
from app.cms.scope import SCOPE_POLICIES, normalize_scope, parse_identifier, policy_for
from app.models.enums import ModuleScope, PostStatus


def test_from_payload_falls_back_on_legacy_keys() -> None:
    attachment_id = str(uuid.uuid4())
    instance_id = str(uuid.uuid4())
    snapshot = CanonicalPost.from_payload(
        {
            "title": "Hello",
            "status": "published",
            "metaTitle": "Meta",
            "customFields": [{"slug": "color", "value": "red"}],
            "taxonomyTermIds": [uuid.UUID(int=1), None, "abc"],
            "modules": [
                {
                    "id": attachment_id,
                    "moduleId": instance_id,
                    "type": "text-block",
                    "scope": "local",
                    "locked": 1,
                    "props": {"text": "x"},
                },
                {"type": "cta", "scope": "global", "globalSlug": "signup", "postModuleId": ""},
            ],
        }
    )
    assert snapshot.metadata.version == CANONICAL_VERSION
    assert snapshot.post.title == "Hello"
    assert snapshot.post.status is PostStatus.PUBLISHED
    assert snapshot.post.meta_title == "Meta"
    assert snapshot.post.custom_fields[0].slug == "color"
    assert snapshot.post.taxonomy_term_ids == [str(uuid.UUID(int=1)), "abc"]

    first, second = snapshot.modules
    assert first.post_module_id == attachment_id
    assert first.module_instance_id == instance_id
    assert first.scope is ModuleScope.POST
    assert first.locked is True
    assert second.post_module_id is None
    assert second.locked is False
    assert second.global_slug == "signup"


def test_from_payload_without_lists_leaves_them_unset() -> None:
    snapshot = CanonicalPost.from_payload({"title": "Only title"})
    assert snapshot.post.custom_fields is None
    assert snapshot.post.taxonomy_term_ids is None
    assert snapshot.modules == []


def test_source_fields_skip_missing_required_columns() -> None:
    snapshot = CanonicalPost.from_payload({"excerpt": None, "title": "T"})
    fields = snapshot.post.source_fields()
    assert fields["title"] == "T"
    assert "slug" not in fields
    assert "noindex" not in fields
    # Nullable columns are written through, clearing them
    assert fields["excerpt"] is None
    assert "type" not in fields


def test_draft_round_trip_keeps_bookkeeping_out_of_post_fields() -> None:
    snapshot = CanonicalPost.from_payload(
        {"title": "Draft", "modules": [{"type": "text-block", "scope": "post", "props": {"text": "a"}}]}
    )
    blob = snapshot.to_draft("User")
    assert blob["savedBy"] == "User"
    assert "savedAt" in blob
    assert blob["title"] == "Draft"
    assert blob["modules"][0]["props"] == {"text": "a"}
    assert blob["modules"][0]["scope"] == "post"

    rebuilt = CanonicalPost.from_draft(blob)
    assert rebuilt.post.title == "Draft"
    assert rebuilt.modules[0].props == {"text": "a"}
    assert "savedBy" not in rebuilt.post.model_dump(by_alias=True)


def test_scope_policy_table() -> None:
    assert policy_for("post").props_mutable is True
    assert policy_for("post").overrides_mutable is False
    assert policy_for("local").dies_with_attachment is True
    assert policy_for(ModuleScope.GLOBAL).props_mutable is False
    assert policy_for(ModuleScope.GLOBAL).overrides_mutable is True
    assert SCOPE_POLICIES[ModuleScope.GLOBAL].dies_with_attachment is False


def test_normalize_scope_rejects_unknown_values() -> None:
    assert normalize_scope("local") is ModuleScope.POST
    with pytest.raises(ValueError):
        normalize_scope("site")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("6f1c2f3e-8d4b-4c1a-9e2f-0a1b2c3d4e5f", True),
        ("6F1C2F3E-8D4B-4C1A-9E2F-0A1B2C3D4E5F", True),
        ("temp-1", False),
        ("", False),
        (None, False),
        ("6f1c2f3e8d4b4c1a9e2f0a1b2c3d4e5f", False),
        # Version nibble 0 is not a storage id
        ("6f1c2f3e-8d4b-0c1a-9e2f-0a1b2c3d4e5f", False),
    ],
)
def test_parse_identifier(value, expected: bool) -> None:
    assert (parse_identifier(value) is not None) is expected
