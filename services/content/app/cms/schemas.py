from typing import Any
from uuid import UUID

from pydantic import Field

from app.cms.canonical import CamelModel
from app.models.enums import ModuleScope, SnapshotMode


class AddModuleRequest(CamelModel):
    type: str = Field(..., min_length=1, max_length=100)
    scope: ModuleScope = ModuleScope.POST
    props: dict[str, Any] | None = None
    global_slug: str | None = Field(default=None, max_length=255)
    order_index: int | None = Field(default=None, ge=0)
    locked: bool = False
    overrides: dict[str, Any] | None = None
    admin_label: str | None = None
    mode: SnapshotMode = SnapshotMode.SOURCE


class AddModuleResponse(CamelModel):
    post_module_id: UUID
    module_instance_id: UUID
    order_index: int


class DraftResponse(CamelModel):
    mode: SnapshotMode
    draft: dict[str, Any]


class UpdateModuleRequest(CamelModel):
    """Only the fields sent are applied."""

    order_index: int | None = Field(default=None, ge=0)
    overrides: dict[str, Any] | None = None
    locked: bool | None = None
    admin_label: str | None = None
