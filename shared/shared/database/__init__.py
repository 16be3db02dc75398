from shared.database.postgres import (
    AsyncSessionFactory,
    get_async_session_factory,
    session_scope,
)

__all__ = [
    "get_async_session_factory",
    "AsyncSessionFactory",
    "session_scope",
]
