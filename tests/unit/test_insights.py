"""Unit tests for the insight tools."""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from localbridge.common.exceptions import ErrorCode, LocalBridgeError
from localbridge.insights import (
    AnalyticsHandler,
    IntrospectionHandler,
    MetadataHandler,
    RelationshipHandler,
    ResultCache,
    SemanticSummaryHandler,
)
from localbridge.insights.prompts import format_columns
from localbridge.settings import (
    AnalyticsSettings,
    IntrospectionSettings,
    RelationshipSettings,
    SemanticSummarySettings,
)
from localbridge.types import ColumnInfo, ColumnMetadata, ForeignKeyInfo, TableInfo, TableMetadata


def table_info(name, columns=None):
    return TableInfo(
        table_name=name,
        schema_name="shop",
        columns=columns or [ColumnInfo(name="id", data_type="int", is_nullable=False, is_primary_key=True)],
        row_count=10,
    )


def fk(source, column, target):
    return ForeignKeyInfo(
        name=f"fk_{source}_{target}",
        source_table=source,
        source_column=column,
        referenced_table=target,
        referenced_column="id",
    )


@pytest.fixture
def repo(repositories):
    return repositories["mysql_main"]


@pytest.fixture
def cache_client():
    client = Mock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock()
    return client


class TestResultCache:
    async def test_disabled_cache_never_touches_redis(self, cache_client):
        cache = ResultCache({"redis_main": cache_client}, enabled=False, ttl=60)

        assert not cache.active
        assert await cache.get("k") is None
        await cache.set("k", "v")
        cache_client.get.assert_not_awaited()
        cache_client.set.assert_not_awaited()

    async def test_failures_are_logged_not_raised(self, cache_client):
        cache_client.get.side_effect = LocalBridgeError("redis down")
        cache_client.set.side_effect = LocalBridgeError("redis down")
        cache = ResultCache({"redis_main": cache_client}, enabled=True, ttl=60)

        assert await cache.get("k") is None
        await cache.set("k", "v")

    async def test_enabled_without_clients(self):
        assert not ResultCache({}, enabled=True, ttl=60).active


class TestIntrospection:
    async def test_describes_every_table(self, repositories, repo):
        repo.list_tables = AsyncMock(return_value=["orders", "users"])
        repo.describe_table = AsyncMock(side_effect=lambda table: table_info(table))
        repo.list_foreign_keys = AsyncMock(
            side_effect=lambda table: [fk("orders", "user_id", "users")] if table == "orders" else []
        )
        handler = IntrospectionHandler(repositories, {}, IntrospectionSettings(cache_ttl=120))

        payload = json.loads(await handler.introspection("mysql_main"))

        assert payload["database"] == "mysql_main"
        assert payload["table_count"] == 2
        assert payload["cache_ttl"] == 120
        assert payload["cached_at"].endswith("Z")
        orders, users = payload["tables"]
        assert orders["description"] == "Has 1 foreign key(s)"
        assert users["description"] == ""

    async def test_failing_tables_are_skipped(self, repositories, repo):
        repo.list_tables = AsyncMock(return_value=["broken", "users"])

        async def describe(table):
            if table == "broken":
                raise LocalBridgeError("permission denied")
            return table_info(table)

        repo.describe_table = AsyncMock(side_effect=describe)
        repo.list_foreign_keys = AsyncMock(return_value=[])
        handler = IntrospectionHandler(repositories, {}, IntrospectionSettings())

        payload = json.loads(await handler.introspection("mysql_main"))

        assert [t["table_name"] for t in payload["tables"]] == ["users"]

    async def test_cached_result_is_returned(self, repositories, repo, cache_client):
        cache_client.get.return_value = '{"cached": true}'
        repo.list_tables = AsyncMock()
        handler = IntrospectionHandler(
            repositories, {"redis_main": cache_client}, IntrospectionSettings(use_redis_cache=True)
        )

        assert await handler.introspection("mysql_main") == '{"cached": true}'
        cache_client.get.assert_awaited_once_with("introspection:mysql_main")
        repo.list_tables.assert_not_awaited()

    async def test_refresh_rebuilds_and_stores(self, repositories, repo, cache_client):
        cache_client.get.return_value = '{"cached": true}'
        repo.list_tables = AsyncMock(return_value=[])
        handler = IntrospectionHandler(
            repositories, {"redis_main": cache_client}, IntrospectionSettings(use_redis_cache=True, cache_ttl=90)
        )

        payload = await handler.introspection("mysql_main", refresh=True)

        assert json.loads(payload)["table_count"] == 0
        cache_client.get.assert_not_awaited()
        cache_client.set.assert_awaited_once_with("introspection:mysql_main", payload, ttl=90)


class TestSemanticSummary:
    async def test_schema_sample_and_prompt(self, repositories, repo, make_result):
        repo.describe_table = AsyncMock(return_value=table_info("users", [
            ColumnInfo(name="id", data_type="int", is_nullable=False, is_primary_key=True),
            ColumnInfo(name="email", data_type="varchar", is_nullable=True),
        ]))
        repo.execute.return_value = make_result([{"id": 1, "email": "a@example.com"}])
        handler = SemanticSummaryHandler(repositories, SemanticSummarySettings(sample_size=3))

        payload = json.loads(await handler.semantic_summary("mysql_main", "users"))

        assert repo.execute.await_args.args[0] == "SELECT * FROM `users` LIMIT 3"
        assert payload["sample_count"] == 1
        assert payload["schema"]["table_name"] == "users"
        assert "Generate a Semantic Summary" in payload["llm_prompt"]
        assert "  - id (int, NOT NULL) [PRIMARY KEY]" in payload["llm_prompt"]
        assert "  - email (varchar, NULL)" in payload["llm_prompt"]
        assert "a@example.com" in payload["llm_prompt"]

    async def test_missing_table_propagates(self, repositories, repo):
        repo.describe_table = AsyncMock(side_effect=LocalBridgeError(
            "table 'ghost' not found", error_code=ErrorCode.RESOURCE_NOT_FOUND
        ))
        handler = SemanticSummaryHandler(repositories, SemanticSummarySettings())

        with pytest.raises(LocalBridgeError):
            await handler.semantic_summary("mysql_main", "ghost")

    def test_column_listing_is_capped(self):
        columns = [ColumnInfo(name=f"c{i}", data_type="int", is_nullable=True) for i in range(4)]

        listing = format_columns(columns, max_columns=2)

        assert "c1" in listing and "c2" not in listing
        assert "2 more column(s) omitted" in listing


class TestRelationship:
    @pytest.fixture
    def chain(self, repo):
        """orders -> users -> accounts -> regions"""
        edges = {
            "orders": [fk("orders", "user_id", "users")],
            "users": [fk("users", "account_id", "accounts")],
            "accounts": [fk("accounts", "region_id", "regions")],
            "regions": [],
        }
        repo.list_tables = AsyncMock(return_value=list(edges))
        repo.list_foreign_keys = AsyncMock(side_effect=lambda table: edges[table])
        return repo

    async def test_whole_database(self, repositories, chain):
        handler = RelationshipHandler(repositories, {}, RelationshipSettings())

        payload = json.loads(await handler.relationship("mysql_main"))

        assert sorted(payload["relationships"]) == ["accounts", "orders", "users"]
        assert payload["relationship_count"] == 3
        assert payload["table_filter"] == ""
        assert "max_depth" not in payload
        assert "Analyze Database Relationships" in payload["llm_prompt"]

    async def test_neighbourhood_respects_max_depth(self, repositories, chain):
        handler = RelationshipHandler(repositories, {}, RelationshipSettings(max_depth=2))

        payload = json.loads(await handler.relationship("mysql_main", "orders"))

        assert list(payload["relationships"]) == ["orders", "users"]
        assert payload["max_depth"] == 2
        assert payload["table_filter"] == "orders"

    async def test_cycles_terminate(self, repositories, repo):
        edges = {
            "a": [fk("a", "b_id", "b")],
            "b": [fk("b", "a_id", "a")],
        }
        repo.list_foreign_keys = AsyncMock(side_effect=lambda table: edges[table])
        handler = RelationshipHandler(repositories, {}, RelationshipSettings(max_depth=10))

        payload = json.loads(await handler.relationship("mysql_main", "a"))

        assert sorted(payload["relationships"]) == ["a", "b"]
        assert repo.list_foreign_keys.await_count == 2

    async def test_invalid_root_table_is_reported(self, repositories, repo):
        repo.list_foreign_keys = AsyncMock(side_effect=LocalBridgeError(
            "invalid table name", error_code=ErrorCode.INVALID_IDENTIFIER
        ))
        handler = RelationshipHandler(repositories, {}, RelationshipSettings())

        with pytest.raises(LocalBridgeError):
            await handler.relationship("mysql_main", "bad;table")

    async def test_cache_key_includes_table(self, repositories, chain, cache_client):
        handler = RelationshipHandler(
            repositories, {"redis_main": cache_client}, RelationshipSettings(cache_enabled=True)
        )

        await handler.relationship("mysql_main", "orders")

        cache_client.get.assert_awaited_once_with("relationships:mysql_main:orders")
        assert cache_client.set.await_args.args[0] == "relationships:mysql_main:orders"


class TestAnalytics:
    async def test_grouped_aggregation(self, repositories, repo, make_result):
        repo.execute.return_value = make_result([
            {"region": "eu", "result": 10},
            {"region": "us", "result": 20},
        ])
        handler = AnalyticsHandler(repositories, AnalyticsSettings(execution_timeout=4, max_result_rows=50))

        payload = json.loads(await handler.analytics(
            "mysql_main", "orders", "amount", "sum", '{"status": "paid"}', group_by="region"
        ))

        repo.execute.assert_awaited_once_with(
            "SELECT `region`, SUM(`amount`) AS result FROM `orders` WHERE `status` = ? GROUP BY `region` LIMIT 51",
            ["paid"],
            timeout=4,
        )
        assert payload["function"] == "SUM"
        assert payload["result_count"] == 2
        assert payload["truncated"] is False
        assert payload["results"][1] == {"region": "us", "result": 20}

    async def test_results_are_capped(self, repositories, repo, make_result):
        repo.execute.return_value = make_result([{"g": i, "result": i} for i in range(3)])
        handler = AnalyticsHandler(repositories, AnalyticsSettings(max_result_rows=2))

        payload = json.loads(await handler.analytics("mysql_main", "t", "x", "COUNT", group_by="g"))

        assert repo.execute.await_args.args[0].endswith("GROUP BY `g` LIMIT 3")
        assert payload["result_count"] == 2
        assert payload["results"] == [{"g": 0, "result": 0}, {"g": 1, "result": 1}]
        assert payload["truncated"] is True

    async def test_result_at_cap_is_not_truncated(self, repositories, repo, make_result):
        repo.execute.return_value = make_result([{"g": i, "result": i} for i in range(2)])
        handler = AnalyticsHandler(repositories, AnalyticsSettings(max_result_rows=2))

        payload = json.loads(await handler.analytics("mysql_main", "t", "x", "COUNT", group_by="g"))

        assert payload["result_count"] == 2
        assert payload["truncated"] is False

    async def test_invalid_function(self, repositories, repo):
        handler = AnalyticsHandler(repositories, AnalyticsSettings())

        with pytest.raises(LocalBridgeError) as exc_info:
            await handler.analytics("mysql_main", "orders", "amount", "DROP")

        assert exc_info.value.error_code == ErrorCode.INVALID_AGGREGATE_FUNCTION
        repo.execute.assert_not_awaited()

    async def test_function_required(self, repositories):
        handler = AnalyticsHandler(repositories, AnalyticsSettings())

        with pytest.raises(LocalBridgeError) as exc_info:
            await handler.analytics("mysql_main", "orders", "amount", "")
        assert exc_info.value.error_code == ErrorCode.MISSING_PARAMETER


class TestMetadata:
    async def test_comments(self, repositories, repo):
        repo.get_table_metadata = AsyncMock(return_value=TableMetadata(
            database="mysql_main",
            table="users",
            table_comment="Registered users",
            columns=[ColumnMetadata(name="id", type="int", nullable=False, key="PRI", comment="Primary id")],
        ))
        handler = MetadataHandler(repositories)

        payload = json.loads(await handler.metadata("mysql_main", "users"))

        assert payload["table_comment"] == "Registered users"
        assert payload["column_count"] == 1
        assert payload["columns"][0]["comment"] == "Primary id"

    async def test_backend_failure_becomes_warning(self, repositories, repo):
        repo.get_table_metadata = AsyncMock(side_effect=LocalBridgeError("access denied to information_schema"))
        handler = MetadataHandler(repositories)

        payload = json.loads(await handler.metadata("mysql_main", "users"))

        assert payload["warning"] == "Metadata retrieval failed or not supported"
        assert "access denied" in payload["error"]
        assert payload["columns"] == []

    async def test_invalid_identifier_is_an_error(self, repositories, repo):
        repo.get_table_metadata = AsyncMock(side_effect=LocalBridgeError(
            "invalid table name", error_code=ErrorCode.INVALID_IDENTIFIER
        ))
        handler = MetadataHandler(repositories)

        with pytest.raises(LocalBridgeError):
            await handler.metadata("mysql_main", "bad;table")
