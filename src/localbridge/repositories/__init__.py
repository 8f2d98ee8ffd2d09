"""SQL repositories for localbridge.

One repository wraps one named database instance: an SQLAlchemy async
engine, a dialect-bound ``QueryBuilder``, and the engine-specific catalog
queries used by the tools.

Example:
    ```python
    from localbridge.repositories import connect_repositories

    repositories = await connect_repositories(settings.databases)
    repo = repositories["mysql_main"]
    plan = repo.query_builder.build_count("orders", {"status": "paid"})
    result = await repo.execute(plan.text, plan.params)
    ```
"""

from .base import BaseRepository
from .factory import REPOSITORY_TYPES, close_repositories, connect_repositories, create_repository
from .mysql import MySQLRepository
from .postgres import PostgresRepository

__all__ = [
    "BaseRepository",
    "MySQLRepository",
    "PostgresRepository",
    "REPOSITORY_TYPES",
    "create_repository",
    "connect_repositories",
    "close_repositories",
]
