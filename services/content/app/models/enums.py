import enum
from dataclasses import dataclass

from sqlalchemy import JSON, Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB


class PostStatus(str, enum.Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ModuleScope(str, enum.Enum):
    POST = "post"      # owned by exactly one post, dies with its attachment
    GLOBAL = "global"  # named, shared across posts


class SnapshotMode(str, enum.Enum):
    """Storage target a canonical post can be applied to."""

    SOURCE = "source"
    REVIEW = "review"
    AI_REVIEW = "ai-review"

    @property
    def is_draft(self) -> bool:
        return self is not SnapshotMode.SOURCE


class RevisionMode(str, enum.Enum):
    ACTIVE_VERSIONS = "active-versions"


@dataclass(frozen=True)
class DraftColumns:
    """Column names holding one draft mode's state across the three tables."""

    draft: str      # posts
    props: str      # module_instances
    overrides: str  # post_modules
    added: str      # post_modules
    deleted: str    # post_modules
    saved_by: str


DRAFT_COLUMNS: dict[SnapshotMode, DraftColumns] = {
    SnapshotMode.REVIEW: DraftColumns(
        draft="review_draft",
        props="review_props",
        overrides="review_overrides",
        added="review_added",
        deleted="review_deleted",
        saved_by="User",
    ),
    SnapshotMode.AI_REVIEW: DraftColumns(
        draft="ai_review_draft",
        props="ai_review_props",
        overrides="ai_review_overrides",
        added="ai_review_added",
        deleted="ai_review_deleted",
        saved_by="AI Agent",
    ),
}

DRAFT_MODES = tuple(DRAFT_COLUMNS)


def draft_columns(mode: SnapshotMode) -> DraftColumns:
    try:
        return DRAFT_COLUMNS[SnapshotMode(mode)]
    except KeyError:
        raise ValueError(f"'{mode}' is not a draft mode") from None


@dataclass(frozen=True)
class DraftFlags:
    """Whether an attachment was added or deleted relative to source in one draft mode."""

    added: bool = False
    deleted: bool = False


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


# Enum columns store the lowercase values, not the member names
post_status_enum = SAEnum(PostStatus, name="post_status", values_callable=_enum_values)
module_scope_enum = SAEnum(ModuleScope, name="module_scope", values_callable=_enum_values)

# JSONB on PostgreSQL, plain JSON elsewhere; None is stored as SQL NULL
JsonDocument = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")
