"""What a save may change on a module, decided by the module's scope."""

import re
import uuid
from dataclasses import dataclass

from app.models.enums import ModuleScope


@dataclass(frozen=True)
class ScopePolicy:
    props_mutable: bool
    overrides_mutable: bool
    dies_with_attachment: bool


# Post-scoped props *are* the post's content. A global instance's props are
# shared, so one post may only vary its per-attachment overrides.
SCOPE_POLICIES: dict[ModuleScope, ScopePolicy] = {
    ModuleScope.POST: ScopePolicy(props_mutable=True, overrides_mutable=False, dies_with_attachment=True),
    ModuleScope.GLOBAL: ScopePolicy(props_mutable=False, overrides_mutable=True, dies_with_attachment=False),
}


def normalize_scope(value: str | ModuleScope) -> ModuleScope:
    """Map the legacy ``'local'`` spelling onto ``post``."""
    if isinstance(value, ModuleScope):
        return value
    return ModuleScope.POST if value == "local" else ModuleScope(value)


def policy_for(scope: str | ModuleScope) -> ScopePolicy:
    return SCOPE_POLICIES[normalize_scope(scope)]


_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def parse_identifier(value: object) -> uuid.UUID | None:
    """Storage id for ``value``, or None for missing / client-side temporary ids."""
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str) and _UUID_RE.match(value):
        return uuid.UUID(value)
    return None
