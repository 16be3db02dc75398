from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import create_all
from app.models import ModuleInstance, Post, PostModule, Taxonomy, TaxonomyTerm
from app.models.enums import ModuleScope, PostStatus
from app.registry.registry import ModuleRegistry, load_module_registry
from shared.database.postgres import get_async_session_factory

# One in-memory database per test; StaticPool keeps it on a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    factory = get_async_session_factory(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_all(factory)
    yield factory
    await factory.kw["bind"].dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def registry() -> ModuleRegistry:
    return load_module_registry()


@pytest.fixture
def make_post(db_session: AsyncSession):
    counter = {"n": 0}

    async def _make(**fields: Any) -> Post:
        counter["n"] += 1
        post = Post(
            type=fields.pop("type", "page"),
            slug=fields.pop("slug", f"post-{counter['n']}"),
            title=fields.pop("title", f"Post {counter['n']}"),
            status=fields.pop("status", PostStatus.DRAFT),
            **fields,
        )
        db_session.add(post)
        await db_session.flush()
        return post

    return _make


@pytest.fixture
def make_module(db_session: AsyncSession):
    async def _make(
        post: Post,
        module_type: str = "text-block",
        scope: ModuleScope = ModuleScope.POST,
        *,
        props: dict[str, Any] | None = None,
        overrides: dict[str, Any] | None = None,
        order_index: int = 0,
        global_slug: str | None = None,
        instance: ModuleInstance | None = None,
        **attachment_fields: Any,
    ) -> tuple[ModuleInstance, PostModule]:
        if instance is None:
            instance = ModuleInstance(
                scope=scope,
                type=module_type,
                post_id=post.id if scope is ModuleScope.POST else None,
                global_slug=global_slug,
                props=props if props is not None else {},
            )
            db_session.add(instance)
            await db_session.flush()
        attachment = PostModule(
            post_id=post.id,
            module_id=instance.id,
            order_index=order_index,
            overrides=overrides,
            **attachment_fields,
        )
        db_session.add(attachment)
        await db_session.flush()
        return instance, attachment

    return _make


@pytest.fixture
def make_taxonomy(db_session: AsyncSession):
    async def _make(
        slug: str, term_slugs: list[str], post_types: list[str] | None = None
    ) -> tuple[Taxonomy, list[TaxonomyTerm]]:
        taxonomy = Taxonomy(slug=slug, name=slug.title(), post_types=post_types)
        db_session.add(taxonomy)
        await db_session.flush()
        terms = [TaxonomyTerm(taxonomy_id=taxonomy.id, slug=s, name=s.title()) for s in term_slugs]
        db_session.add_all(terms)
        await db_session.flush()
        return taxonomy, terms

    return _make
