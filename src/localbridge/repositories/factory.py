"""Repository factory.

Maps each configured database engine to its repository class and opens one
repository per enabled instance at server startup.

Startup rules:
    - Zero enabled instances is a configuration error
    - Any instance that cannot be reached aborts startup; repositories
      opened before the failure are closed again
"""

from typing import Dict, Optional, Type

from localbridge.common.exceptions import LocalBridgeError, configuration_error
from localbridge.constants.sql import Dialect
from localbridge.logging import get_logger
from localbridge.settings.databases import BaseDatabaseSettings, DatabasesSettings

from .base import BaseRepository
from .mysql import MySQLRepository
from .postgres import PostgresRepository

logger = get_logger(__name__)


REPOSITORY_TYPES: Dict[Dialect, Type[BaseRepository]] = {
    Dialect.MYSQL: MySQLRepository,
    Dialect.POSTGRES: PostgresRepository,
}


def create_repository(
    settings: BaseDatabaseSettings,
    default_timeout: Optional[float] = None,
) -> BaseRepository:
    """Create the repository for one instance without connecting it."""
    repository_cls = REPOSITORY_TYPES.get(settings.driver)
    if repository_cls is None:
        raise configuration_error(
            f"unsupported database driver '{settings.driver}' for instance '{settings.name}'",
            config_key=f"databases.{settings.name}",
        )
    return repository_cls(settings, default_timeout=default_timeout)


async def connect_repositories(
    settings: DatabasesSettings,
    default_timeout: Optional[float] = None,
) -> Dict[str, BaseRepository]:
    """Create and connect a repository for every enabled instance.

    Args:
        settings: The ``databases`` configuration section
        default_timeout: Deadline applied to queries that pass none

    Returns:
        Repositories keyed by instance name

    Raises:
        LocalBridgeError: CONFIG_INVALID when no instance is enabled,
            CONNECTION_ERROR when an instance cannot be reached
    """
    instances = settings.enabled()
    if not instances:
        raise configuration_error("no databases configured or enabled", config_key="databases")

    repositories: Dict[str, BaseRepository] = {}
    try:
        for instance in instances:
            logger.info(
                "Initializing repository",
                extra={"database": instance.name, "db.system": instance.driver.value},
            )
            repository = create_repository(instance, default_timeout=default_timeout)
            repositories[instance.name] = repository
            await repository.connect()
    except LocalBridgeError:
        await close_repositories(repositories)
        raise

    logger.info("Repositories initialized", extra={"databases": sorted(repositories)})
    return repositories


async def close_repositories(repositories: Dict[str, BaseRepository]) -> None:
    for name, repository in repositories.items():
        try:
            await repository.close()
        except Exception as exc:
            logger.error("Failed to close repository", extra={"database": name, "error": str(exc)})
