import uuid
from collections.abc import AsyncGenerator

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings
from app.database import get_db
from app.dependencies import get_module_registry, get_settings
from app.main import create_app
from app.models import ModuleInstance, Post, PostModule
from app.models.enums import ModuleScope
from app.registry.registry import ModuleRegistry
from shared.database import session_scope

JWT_SECRET = "test-secret"
USER_ID = uuid.uuid4()


@pytest_asyncio.fixture
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    registry: ModuleRegistry,
) -> AsyncGenerator[AsyncClient, None]:
    app = create_app()

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_module_registry] = lambda: registry
    app.dependency_overrides[get_settings] = lambda: Settings(jwt_secret=JWT_SECRET)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        ac.headers["Authorization"] = "Bearer " + jwt.encode(
            {"sub": str(USER_ID)}, JWT_SECRET, algorithm="HS256"
        )
        yield ac


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> dict:
    async with session_scope(session_factory) as session:
        post = Post(type="page", slug="home", title="Home")
        session.add(post)
        await session.flush()
        instance = ModuleInstance(scope=ModuleScope.POST, type="text-block", post_id=post.id, props={"text": "live"})
        shared = ModuleInstance(scope=ModuleScope.GLOBAL, type="cta", global_slug="signup", props={"color": "green"})
        session.add_all([instance, shared])
        await session.flush()
        attachment = PostModule(post_id=post.id, module_id=instance.id, order_index=0)
        locked = PostModule(post_id=post.id, module_id=shared.id, order_index=1, locked=True)
        session.add_all([attachment, locked])
        await session.flush()
    return {
        "post_id": post.id,
        "instance_id": instance.id,
        "attachment_id": attachment.id,
        "locked_id": locked.id,
        "shared_id": shared.id,
    }


def _base(post_id) -> str:
    return f"/api/v1/cms/posts/{post_id}"


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "content"}
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_requires_bearer_token(async_client: AsyncClient, seeded: dict) -> None:
    response = await async_client.get(
        f"{_base(seeded['post_id'])}/snapshot", headers={"Authorization": ""}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_source_snapshot(async_client: AsyncClient, seeded: dict) -> None:
    response = await async_client.get(f"{_base(seeded['post_id'])}/snapshot")
    assert response.status_code == 200
    body = response.json()
    assert body["post"]["title"] == "Home"
    assert [m["postModuleId"] for m in body["modules"]] == [
        str(seeded["attachment_id"]),
        str(seeded["locked_id"]),
    ]
    assert body["modules"][1]["globalSlug"] == "signup"


@pytest.mark.asyncio
async def test_unknown_post_is_404(async_client: AsyncClient) -> None:
    response = await async_client.get(f"{_base(uuid.uuid4())}/snapshot")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_review_draft_round_trip(async_client: AsyncClient, seeded: dict) -> None:
    base = _base(seeded["post_id"])
    payload = {
        "title": "Draft",
        "modules": [
            {
                "id": str(seeded["attachment_id"]),
                "moduleId": str(seeded["instance_id"]),
                "type": "text-block",
                "scope": "local",
                "props": {"text": "**draft**"},
            }
        ],
    }
    saved = await async_client.put(f"{base}/snapshot", params={"mode": "review"}, json=payload)
    assert saved.status_code == 200

    review = (await async_client.get(f"{base}/snapshot", params={"mode": "review"})).json()
    assert review["post"]["title"] == "Draft"
    assert review["modules"][0]["props"]["text"]["root"]["children"][0]["children"][0]["format"] == 1

    source = (await async_client.get(f"{base}/snapshot")).json()
    assert source["post"]["title"] == "Home"
    assert source["modules"][0]["props"] == {"text": "live"}

    published = await async_client.post(f"{base}/drafts/review/publish")
    assert published.status_code == 200
    source = (await async_client.get(f"{base}/snapshot")).json()
    assert source["post"]["title"] == "Draft"
    # The locked global module was left out of the draft and is gone from source
    assert [m["postModuleId"] for m in source["modules"]] == [str(seeded["attachment_id"])]

    revisions = (await async_client.get(f"{base}/revisions")).json()
    assert revisions["total"] == 1
    revision_id = revisions["items"][0]["id"]
    assert revisions["items"][0]["action"] == "publish-review"
    assert revisions["items"][0]["user_id"] == str(USER_ID)

    restored = await async_client.post(f"{base}/revisions/{revision_id}/restore")
    assert restored.status_code == 200
    source = (await async_client.get(f"{base}/snapshot")).json()
    assert source["post"]["title"] == "Home"
    assert len(source["modules"]) == 2


@pytest.mark.asyncio
async def test_invalid_payload_is_422(async_client: AsyncClient, seeded: dict) -> None:
    response = await async_client.put(
        f"{_base(seeded['post_id'])}/snapshot",
        json={"modules": [{"type": "text-block", "scope": "site"}]},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_module_type_is_422(async_client: AsyncClient, seeded: dict) -> None:
    response = await async_client.post(
        f"{_base(seeded['post_id'])}/modules", json={"type": "mystery", "scope": "post"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_add_and_delete_modules(async_client: AsyncClient, seeded: dict) -> None:
    base = _base(seeded["post_id"])
    created = await async_client.post(
        f"{base}/modules", json={"type": "faq", "scope": "post", "mode": "review"}
    )
    assert created.status_code == 201
    body = created.json()
    assert body["orderIndex"] == 2

    review = (await async_client.get(f"{base}/snapshot", params={"mode": "review"})).json()
    assert body["postModuleId"] in [m["postModuleId"] for m in review["modules"]]
    source = (await async_client.get(f"{base}/snapshot")).json()
    assert body["postModuleId"] not in [m["postModuleId"] for m in source["modules"]]

    locked = await async_client.delete(f"{base}/modules/{seeded['locked_id']}")
    assert locked.status_code == 409

    deleted = await async_client.delete(f"{base}/modules/{seeded['attachment_id']}")
    assert deleted.status_code == 204
    missing = await async_client.delete(f"{base}/modules/{seeded['attachment_id']}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_workflow_errors(async_client: AsyncClient, seeded: dict) -> None:
    base = _base(seeded["post_id"])
    assert (await async_client.post(f"{base}/drafts/ai-review/promote")).status_code == 409
    assert (await async_client.post(f"{base}/drafts/source/reject")).status_code == 422
    assert (await async_client.post(f"{base}/drafts/bogus/refresh")).status_code == 422

    refreshed = await async_client.post(f"{base}/drafts/ai-review/refresh")
    assert refreshed.status_code == 200
    assert refreshed.json()["draft"]["savedBy"] == "System (Sync)"

    rejected = await async_client.post(f"{base}/drafts/ai-review/reject")
    assert rejected.status_code == 204
    revisions = (await async_client.get(f"{base}/revisions")).json()
    assert [item["action"] for item in revisions["items"]] == ["reject-ai-review"]


@pytest.mark.asyncio
async def test_patch_module_refreshes_draft(async_client: AsyncClient, seeded: dict) -> None:
    base = _base(seeded["post_id"])
    url = f"{base}/modules/{seeded['attachment_id']}"

    edited = await async_client.patch(url, params={"mode": "review"}, json={"overrides": {"text": "edited"}})
    assert edited.status_code == 200
    assert edited.json()["props"] == {"text": "edited"}

    review = (await async_client.get(f"{base}/snapshot", params={"mode": "review"})).json()
    assert review["modules"][0]["props"] == {"text": "edited"}
    source = (await async_client.get(f"{base}/snapshot")).json()
    assert source["modules"][0]["props"] == {"text": "live"}

    locked = await async_client.patch(f"{base}/modules/{seeded['locked_id']}", json={"orderIndex": 0})
    assert locked.status_code == 409
    missing = await async_client.patch(f"{base}/modules/{uuid.uuid4()}", json={"locked": True})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_compare_revision(async_client: AsyncClient, seeded: dict) -> None:
    base = _base(seeded["post_id"])
    await async_client.post(f"{base}/drafts/ai-review/reject")
    revision_id = (await async_client.get(f"{base}/revisions")).json()["items"][0]["id"]

    await async_client.put(f"{base}/snapshot", json={"title": "Renamed", "modules": []})

    response = await async_client.get(f"{base}/revisions/{revision_id}/compare")
    assert response.status_code == 200
    body = response.json()
    assert body["has_changes"] is True
    assert body["diff"]["title"] == {"current": "Renamed", "revision": "Home"}
    assert "slug" not in body["diff"]
