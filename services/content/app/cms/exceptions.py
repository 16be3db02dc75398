# Domain exceptions raised by the service layer.
# The controller layer catches these and converts them to HTTPException.

from app.registry.registry import UnknownModuleTypeError

__all__ = [
    "PostNotFoundError",
    "PostModuleNotFoundError",
    "UnknownModuleTypeError",
    "GlobalSlugRequiredError",
    "ModuleLockedError",
    "NotADraftModeError",
    "NoPendingDraftError",
]


class PostNotFoundError(Exception):
    def __init__(self, post_id) -> None:
        self.post_id = post_id
        super().__init__(f"Post {post_id} not found")


class PostModuleNotFoundError(Exception):
    def __init__(self, post_module_id) -> None:
        self.post_module_id = post_module_id
        super().__init__(f"Post module {post_module_id} not found")


class GlobalSlugRequiredError(Exception):
    def __init__(self, module_type: str) -> None:
        self.module_type = module_type
        super().__init__(f"Global module '{module_type}' requires a globalSlug")


class ModuleLockedError(Exception):
    def __init__(self, post_module_id) -> None:
        self.post_module_id = post_module_id
        super().__init__(f"Post module {post_module_id} is locked")


class NotADraftModeError(Exception):
    def __init__(self, mode: str) -> None:
        self.mode = mode
        super().__init__(f"'{mode}' is not a draft mode")


class NoPendingDraftError(Exception):
    def __init__(self, post_id, mode: str) -> None:
        self.post_id = post_id
        self.mode = mode
        super().__init__(f"Post {post_id} has no pending {mode} draft")
