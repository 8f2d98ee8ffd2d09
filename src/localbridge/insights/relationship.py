from collections import deque
from typing import Any, Deque, Dict, List, Mapping, Optional, Set, Tuple

from localbridge.cache import RedisClient
from localbridge.common.exceptions import LocalBridgeError
from localbridge.logging import get_logger
from localbridge.repositories import BaseRepository
from localbridge.settings.tools import RelationshipSettings
from localbridge.tools.common import get_repository, to_json

from .cache import ResultCache
from .introspection import utc_timestamp
from .prompts import build_relationship_prompt

logger = get_logger(__name__)

RelationshipGraph = Dict[str, List[Dict[str, Any]]]


class RelationshipHandler:
    """Foreign-key graph of a database, or of the neighbourhood of one table.

    Starting from a single table the graph follows referenced tables
    breadth-first for at most ``max_depth`` hops.
    """

    def __init__(
        self,
        repositories: Mapping[str, BaseRepository],
        redis_clients: Mapping[str, RedisClient],
        settings: RelationshipSettings,
    ):
        self.repositories = repositories
        self.settings = settings
        self.cache = ResultCache(redis_clients, settings.cache_enabled, settings.cache_ttl)

    async def relationship(self, database: str, table: Optional[str] = None) -> str:
        """Analyze foreign key relationships between tables. Returns the
        relationship graph and an LLM prompt template for understanding the
        data model. Pass table to analyze one table and the tables it
        references; omit it to analyze every table.
        """
        repository = get_repository(self.repositories, database)
        table = (table or "").strip()
        cache_key = f"relationships:{database}:{table}" if table else f"relationships:{database}"

        cached = await self.cache.get(cache_key)
        if cached:
            return cached

        if table:
            graph = await self._neighbourhood(repository, table)
        else:
            graph = await self._whole_database(repository)

        result: Dict[str, Any] = {
            "database": database,
            "table_filter": table,
            "relationships": graph,
            "relationship_count": sum(len(fks) for fks in graph.values()),
            "cached_at": utc_timestamp(),
            "llm_prompt": build_relationship_prompt(database, graph),
        }
        if table:
            result["max_depth"] = self.settings.max_depth

        payload = to_json(result)
        await self.cache.set(cache_key, payload)
        return payload

    async def _whole_database(self, repository: BaseRepository) -> RelationshipGraph:
        graph: RelationshipGraph = {}
        for table in await repository.list_tables():
            foreign_keys = await self._foreign_keys(repository, table)
            if foreign_keys:
                graph[table] = foreign_keys
        return graph

    async def _neighbourhood(self, repository: BaseRepository, root: str) -> RelationshipGraph:
        # Errors on the requested table reach the caller
        graph: RelationshipGraph = {}
        root_keys = [fk.to_dict() for fk in await repository.list_foreign_keys(root)]
        if root_keys:
            graph[root] = root_keys

        visited: Set[str] = {root}
        queue: Deque[Tuple[str, int]] = deque(
            (fk["referenced_table"], 1) for fk in root_keys
        )
        while queue:
            table, depth = queue.popleft()
            if table in visited or depth >= self.settings.max_depth:
                continue
            visited.add(table)

            foreign_keys = await self._foreign_keys(repository, table)
            if foreign_keys:
                graph[table] = foreign_keys
            queue.extend((fk["referenced_table"], depth + 1) for fk in foreign_keys)
        return graph

    async def _foreign_keys(self, repository: BaseRepository, table: str) -> List[Dict[str, Any]]:
        try:
            return [fk.to_dict() for fk in await repository.list_foreign_keys(table)]
        except LocalBridgeError as exc:
            logger.warning(
                "Skipping foreign keys of table",
                extra={"database": repository.name, "table": table, "error": str(exc)},
            )
            return []
