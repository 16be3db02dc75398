import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from app.registry.registry import ModuleRegistry
from app.registry.schemas import FieldSchema
from app.richtext.lexical import markdown_to_lexical

if TYPE_CHECKING:
    from app.cms.canonical import CanonicalPost

logger = logging.getLogger(__name__)

# (markdown, *, skip_first_h1) -> rich-text document
RichTextNormalizer = Callable[..., Any]


def _is_markdown(value: Any) -> bool:
    """Plain, non-empty text that is not already serialized JSON."""
    if not isinstance(value, str):
        return False
    trimmed = value.strip()
    return bool(trimmed) and not trimmed.startswith(("{", "["))


def _normalize_value(value: Any, field: FieldSchema, normalizer: RichTextNormalizer) -> Any:
    if field.type == "richtext":
        if _is_markdown(value):
            return normalizer(value, skip_first_h1=False)
        return value

    if field.type == "object" and isinstance(value, dict):
        normalize_fields(value, field.fields or [], normalizer)
        return value

    if field.type == "repeater" and isinstance(value, list) and field.item is not None:
        for index, element in enumerate(value):
            value[index] = _normalize_value(element, field.item, normalizer)
        return value

    return value


def normalize_fields(
    props: dict[str, Any],
    fields: list[FieldSchema],
    normalizer: RichTextNormalizer = markdown_to_lexical,
) -> None:
    """Convert markdown strings in richtext fields of ``props``, in place.

    Keys without a schema entry and values of unexpected shape are left as-is.
    """
    for field in fields:
        if field.slug in props:
            props[field.slug] = _normalize_value(props[field.slug], field, normalizer)


def normalize_snapshot_richtext(
    snapshot: "CanonicalPost",
    registry: ModuleRegistry,
    normalizer: RichTextNormalizer = markdown_to_lexical,
) -> None:
    """Run the richtext conversion over every module of ``snapshot``.

    Idempotent: converted values are documents, no longer strings.
    """
    for module in snapshot.modules:
        if not module.props:
            continue
        if not registry.has(module.type):
            logger.debug("Skipping richtext conversion for unknown module type %s", module.type)
            continue
        schema = registry.get_schema(module.type)
        normalize_fields(module.props, schema.field_schema, normalizer)
