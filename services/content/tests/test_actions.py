import uuid

import pytest
from sqlalchemy import select

from app.cms.actions import (
    _unwrap_json,
    add_module_to_post,
    apply_post_taxonomy_assignments,
    update_post,
    update_post_module,
    upsert_post_custom_fields,
)
from app.cms.exceptions import (
    GlobalSlugRequiredError,
    ModuleLockedError,
    PostModuleNotFoundError,
    PostNotFoundError,
    UnknownModuleTypeError,
)
from app.models import PostCustomFieldValue, PostTaxonomyTerm
from app.models.enums import ModuleScope, PostStatus, SnapshotMode


@pytest.mark.asyncio
async def test_update_post_sets_fields(db_session, make_post) -> None:
    post = await make_post()
    updated = await update_post(post.id, {"title": "New", "status": PostStatus.PUBLISHED}, db_session)
    assert updated.title == "New"
    assert updated.status is PostStatus.PUBLISHED


@pytest.mark.asyncio
async def test_update_missing_post_raises(db_session) -> None:
    with pytest.raises(PostNotFoundError):
        await update_post(uuid.uuid4(), {"title": "x"}, db_session)


@pytest.mark.asyncio
async def test_add_module_uses_default_props_and_appends(db_session, make_post, make_module, registry) -> None:
    post = await make_post()
    await make_module(post, order_index=4)

    instance, attachment = await add_module_to_post(post.id, "cta", "local", db_session, registry)
    assert instance.scope is ModuleScope.POST
    assert instance.post_id == post.id
    assert instance.props == {"heading": "", "color": "blue"}
    assert attachment.order_index == 5
    assert attachment.review_added is False


@pytest.mark.asyncio
async def test_add_module_in_draft_mode_flags_added(db_session, make_post, registry) -> None:
    post = await make_post()
    _, attachment = await add_module_to_post(
        post.id, "text-block", "post", db_session, registry,
        props={"text": "x"}, mode=SnapshotMode.AI_REVIEW,
    )
    assert attachment.order_index == 0
    assert attachment.ai_review_added is True
    assert attachment.review_added is False


@pytest.mark.asyncio
async def test_add_global_module_reuses_instance_by_slug(db_session, make_post, registry) -> None:
    first_post = await make_post()
    second_post = await make_post()

    first, _ = await add_module_to_post(
        first_post.id, "cta", "global", db_session, registry,
        props={"heading": "Join"}, global_slug="signup", overrides={"color": "red"},
    )
    second, attachment = await add_module_to_post(
        second_post.id, "cta", "global", db_session, registry,
        props={"heading": "ignored"}, global_slug="signup",
    )
    assert second.id == first.id
    assert second.props == {"heading": "Join"}
    assert second.post_id is None
    assert attachment.post_id == second_post.id


@pytest.mark.asyncio
async def test_add_module_validation(db_session, make_post, registry) -> None:
    post = await make_post()
    with pytest.raises(UnknownModuleTypeError):
        await add_module_to_post(post.id, "mystery", "post", db_session, registry)
    with pytest.raises(GlobalSlugRequiredError):
        await add_module_to_post(post.id, "cta", "global", db_session, registry)
    with pytest.raises(PostNotFoundError):
        await add_module_to_post(uuid.uuid4(), "cta", "post", db_session, registry)


@pytest.mark.asyncio
async def test_add_post_module_ignores_overrides(db_session, make_post, registry) -> None:
    post = await make_post()
    _, attachment = await add_module_to_post(
        post.id, "cta", "post", db_session, registry, overrides={"color": "red"}
    )
    assert attachment.overrides is None


@pytest.mark.asyncio
async def test_custom_fields_merge_by_slug(db_session, make_post) -> None:
    post = await make_post()
    await upsert_post_custom_fields(
        post.id, [{"slug": "color", "value": "red"}, {"slug": "size", "value": 1}], db_session
    )
    await upsert_post_custom_fields(
        post.id,
        [{"slug": "color", "value": "blue"}, {"slug": "  ", "value": "dropped"}, {"slug": "tags", "value": '["a", "b"]'}],
        db_session,
    )
    rows = (
        await db_session.execute(
            select(PostCustomFieldValue).where(PostCustomFieldValue.post_id == post.id)
        )
    ).scalars().all()
    assert {row.field_slug: row.value for row in rows} == {
        "color": "blue",
        "size": 1,
        "tags": ["a", "b"],
    }


def test_unwrap_json_handles_nested_encoding() -> None:
    assert _unwrap_json('"plain"') == '"plain"'
    assert _unwrap_json('{"a": 1}') == {"a": 1}
    assert _unwrap_json(['["x", "y"]']) == ["x", "y"]
    assert _unwrap_json('"[1, 2]"') == '"[1, 2]"'
    assert _unwrap_json("[not json") == "[not json"
    assert _unwrap_json("[broken]") == "[broken]"


@pytest.mark.asyncio
async def test_taxonomy_assignments_replace_within_allowed_taxonomies(
    db_session, make_post, make_taxonomy
) -> None:
    post = await make_post(type="article")
    _, topics = await make_taxonomy("topics", ["news", "sports"], post_types=["article"])
    _, sections = await make_taxonomy("sections", ["home"], post_types=["page"])
    _, tags = await make_taxonomy("tags", ["a", "b"])

    await apply_post_taxonomy_assignments(
        post.id, "article", [str(topics[0].id), str(tags[0].id), str(sections[0].id)], db_session
    )
    await apply_post_taxonomy_assignments(
        post.id, "article", [str(topics[1].id), str(topics[1].id), "temp"], db_session
    )

    assigned = (
        await db_session.execute(
            select(PostTaxonomyTerm.taxonomy_term_id).where(PostTaxonomyTerm.post_id == post.id)
        )
    ).scalars().all()
    assert assigned == [topics[1].id]


@pytest.mark.asyncio
async def test_update_module_in_review_merges_into_review_props(db_session, make_post, make_module) -> None:
    post = await make_post()
    instance, attachment = await make_module(
        post, "hero", props={"heading": "Live", "cta": {"label": "Go", "url": "/a"}}, order_index=0
    )

    await update_post_module(
        post.id,
        attachment.id,
        SnapshotMode.REVIEW,
        {"overrides": {"cta": {"label": "Start"}}, "order_index": 4, "admin_label": "Hero"},
        db_session,
    )

    assert instance.props == {"heading": "Live", "cta": {"label": "Go", "url": "/a"}}
    assert instance.review_props == {"heading": "Live", "cta": {"label": "Start", "url": "/a"}}
    assert attachment.review_overrides is None
    # Ordering and labels are staged in the draft document, not on the row
    assert attachment.order_index == 0
    assert attachment.admin_label is None

    # A second edit builds on the review props, not on source
    await update_post_module(
        post.id, attachment.id, SnapshotMode.REVIEW, {"overrides": {"heading": "Draft"}}, db_session
    )
    assert instance.review_props == {"heading": "Draft", "cta": {"label": "Start", "url": "/a"}}
    assert instance.ai_review_props is None


@pytest.mark.asyncio
async def test_update_module_in_source(db_session, make_post, make_module) -> None:
    post = await make_post()
    instance, attachment = await make_module(post, "text-block", props={"text": "a", "align": "left"})
    shared, global_attachment = await make_module(
        post, "cta", ModuleScope.GLOBAL, global_slug="signup", props={"color": "green"}, order_index=1
    )

    await update_post_module(
        post.id,
        attachment.id,
        SnapshotMode.SOURCE,
        {"overrides": {"text": "b"}, "order_index": 3, "admin_label": "Intro", "locked": True},
        db_session,
    )
    assert instance.props == {"text": "b", "align": "left"}
    assert (attachment.order_index, attachment.admin_label, attachment.locked) == (3, "Intro", True)

    await update_post_module(
        post.id, global_attachment.id, SnapshotMode.SOURCE, {"overrides": {"color": "red"}}, db_session
    )
    await update_post_module(
        post.id, global_attachment.id, SnapshotMode.AI_REVIEW, {"overrides": {"color": "blue"}}, db_session
    )
    assert shared.props == {"color": "green"}
    assert shared.ai_review_props is None
    assert global_attachment.overrides == {"color": "red"}
    assert global_attachment.ai_review_overrides == {"color": "blue"}


@pytest.mark.asyncio
async def test_update_module_guards(db_session, make_post, make_module) -> None:
    post = await make_post()
    other = await make_post()
    _, locked = await make_module(post, "text-block", locked=True)
    _, foreign = await make_module(other, "text-block")

    with pytest.raises(ModuleLockedError):
        await update_post_module(post.id, locked.id, SnapshotMode.SOURCE, {"order_index": 2}, db_session)
    # Locked modules can still be edited and unlocked
    await update_post_module(
        post.id, locked.id, SnapshotMode.SOURCE, {"overrides": {"text": "x"}, "locked": False}, db_session
    )
    assert locked.locked is False

    with pytest.raises(PostModuleNotFoundError):
        await update_post_module(post.id, foreign.id, SnapshotMode.SOURCE, {"locked": True}, db_session)
    with pytest.raises(PostModuleNotFoundError):
        await update_post_module(post.id, uuid.uuid4(), SnapshotMode.SOURCE, {}, db_session)
