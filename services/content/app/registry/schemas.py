"""Pydantic schemas describing module types and their fields."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FieldSchema(BaseModel):
    """One field of a module's props.

    ``fields`` describes the keys of an ``object`` field; ``item`` describes each
    element of a ``repeater`` field.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    slug: str = Field(..., min_length=1)
    type: str = Field(..., description="text, textarea, richtext, number, boolean, media, link, object, repeater, ...")
    label: str | None = None
    fields: list[FieldSchema] | None = None
    item: FieldSchema | None = None


class ModuleSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: str = Field(..., min_length=1, max_length=100)
    name: str
    field_schema: list[FieldSchema] = Field(default_factory=list)
    default_props: dict[str, Any] = Field(default_factory=dict)


FieldSchema.model_rebuild()
