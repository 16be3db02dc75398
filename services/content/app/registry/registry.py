import json
import logging
from collections.abc import Iterable
from pathlib import Path

from app.registry.builtin import BUILTIN_MODULES
from app.registry.schemas import ModuleSchema

logger = logging.getLogger(__name__)


class UnknownModuleTypeError(Exception):
    def __init__(self, module_type: str) -> None:
        self.module_type = module_type
        super().__init__(f"Module type '{module_type}' is not registered")


class ModuleRegistry:
    """Read-mostly lookup of module schemas by type.

    Instances are built at startup and handed to the services that need them,
    so tests can substitute a fixed schema set.
    """

    def __init__(self, schemas: Iterable[ModuleSchema] = ()) -> None:
        self._schemas: dict[str, ModuleSchema] = {}
        for schema in schemas:
            self.register(schema)

    def register(self, schema: ModuleSchema) -> None:
        self._schemas[schema.type] = schema

    def has(self, module_type: str) -> bool:
        return module_type in self._schemas

    def get_schema(self, module_type: str) -> ModuleSchema:
        try:
            return self._schemas[module_type]
        except KeyError:
            raise UnknownModuleTypeError(module_type) from None

    def types(self) -> list[str]:
        return sorted(self._schemas)


def load_module_registry(schemas_path: str | None = None) -> ModuleRegistry:
    """Built-in module types, extended or replaced by a JSON list of schemas."""
    registry = ModuleRegistry(BUILTIN_MODULES)
    if not schemas_path:
        return registry

    raw = json.loads(Path(schemas_path).read_text(encoding="utf-8"))
    for item in raw:
        registry.register(ModuleSchema.model_validate(item))
    logger.info("Loaded %d module schemas from %s", len(raw), schemas_path)
    return registry
