"""Canonical post: the version-agnostic shape every editor, agent and workflow speaks.

A canonical post is never stored as such. It is projected into source tables
or one of the draft targets by the snapshot applier, and rebuilt from storage
by the serializer.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.cms.scope import normalize_scope
from app.models.enums import ModuleScope, PostStatus
from app.models.post import SOURCE_FIELD_COLUMNS

CANONICAL_VERSION = "2.0.0"

# Draft blob keys that are bookkeeping, not post fields
_DRAFT_META_KEYS = frozenset({"modules", "savedAt", "savedBy"})

# Source columns that cannot be NULL; a missing value keeps the stored one
_REQUIRED_SOURCE_COLUMNS = frozenset({"slug", "title", "status", "noindex", "nofollow"})


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class SnapshotMetadata(CamelModel):
    version: str = CANONICAL_VERSION
    exported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CustomFieldEntry(CamelModel):
    slug: str
    value: Any = None


class CanonicalPostFields(CamelModel):
    type: str | None = None
    locale: str | None = None
    slug: str | None = None
    title: str | None = None
    status: PostStatus | None = None
    excerpt: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    canonical_url: str | None = None
    robots_json: dict[str, Any] | None = None
    jsonld_overrides: dict[str, Any] | None = None
    og_title: str | None = None
    og_description: str | None = None
    og_image_id: uuid.UUID | None = None
    noindex: bool | None = None
    nofollow: bool | None = None
    featured_image_id: uuid.UUID | None = None
    custom_fields: list[CustomFieldEntry] | None = None
    taxonomy_term_ids: list[str] | None = None

    @field_validator("taxonomy_term_ids", mode="before")
    @classmethod
    def _stringify_term_ids(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(item) for item in value if item is not None and str(item)]
        return value

    def source_fields(self) -> dict[str, Any]:
        """Column values for the ``posts`` row, as written by a source apply."""
        fields: dict[str, Any] = {}
        for column in SOURCE_FIELD_COLUMNS:
            value = getattr(self, column)
            if value is None and column in _REQUIRED_SOURCE_COLUMNS:
                continue
            fields[column] = value
        return fields


class CanonicalModule(CamelModel):
    """One module entry. No ``post_module_id`` means the module is new."""

    post_module_id: str | None = None
    module_instance_id: str | None = None
    type: str
    scope: ModuleScope
    order_index: int | None = None
    locked: bool = False
    props: dict[str, Any] | None = None
    overrides: dict[str, Any] | None = None
    global_slug: str | None = None
    admin_label: str | None = None

    @field_validator("scope", mode="before")
    @classmethod
    def _normalize_scope(cls, value: Any) -> Any:
        if isinstance(value, str):
            return normalize_scope(value)
        return value

    @field_validator("post_module_id", "module_instance_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("locked", mode="before")
    @classmethod
    def _coerce_locked(cls, value: Any) -> bool:
        return bool(value)


class CanonicalPost(CamelModel):
    metadata: SnapshotMetadata = Field(default_factory=SnapshotMetadata)
    post: CanonicalPostFields = Field(default_factory=CanonicalPostFields)
    modules: list[CanonicalModule] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> CanonicalPost:
        """Build from an editor or agent payload (flat post fields + ``modules``)."""
        modules = [
            {
                "postModuleId": m.get("postModuleId") or m.get("id"),
                "moduleInstanceId": m.get("moduleInstanceId") or m.get("moduleId"),
                "type": m.get("type"),
                "scope": m.get("scope"),
                "orderIndex": m.get("orderIndex"),
                "locked": m.get("locked"),
                "props": m.get("props"),
                "overrides": m.get("overrides"),
                "globalSlug": m.get("globalSlug"),
                "adminLabel": m.get("adminLabel"),
            }
            for m in payload.get("modules") or []
        ]
        return cls.model_validate(
            {
                "metadata": SnapshotMetadata(),
                "post": CanonicalPostFields.model_validate(payload),
                "modules": modules,
            }
        )

    @classmethod
    def from_draft(cls, blob: dict[str, Any]) -> CanonicalPost:
        """Rebuild from a stored ``review_draft`` / ``ai_review_draft`` document."""
        post = {key: value for key, value in blob.items() if key not in _DRAFT_META_KEYS}
        return cls.model_validate({"post": post, "modules": blob.get("modules") or []})

    def to_draft(self, saved_by: str) -> dict[str, Any]:
        """Denormalized draft document: post fields + modules + savedAt + savedBy."""
        return {
            **self.post.model_dump(by_alias=True, mode="json"),
            "modules": [m.model_dump(by_alias=True, mode="json") for m in self.modules],
            "savedAt": datetime.now(timezone.utc).isoformat(),
            "savedBy": saved_by,
        }
