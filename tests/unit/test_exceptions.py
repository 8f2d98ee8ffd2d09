import logging

from sqlalchemy.exc import OperationalError

from localbridge.common.exceptions import (
    ErrorCode,
    LocalBridgeError,
    backend_error,
    database_not_found_error,
    feature_not_enabled_error,
    invalid_identifier_error,
    redis_not_found_error,
    timeout_error,
)


class TestLocalBridgeError:
    def test_str_carries_code_and_message(self):
        err = LocalBridgeError("boom", error_code=ErrorCode.CONFIG_INVALID)
        assert str(err) == "[CONFIG_003] boom"

    def test_to_dict(self):
        err = invalid_identifier_error("users;", "table")
        data = err.to_dict()

        assert data["error_code"] == "VALIDATION_004"
        assert data["error_name"] == "INVALID_IDENTIFIER"
        assert data["details"] == {"field": "table", "value": "users;"}
        assert data["is_retryable"] is False

    def test_caller_errors_log_at_warning(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="localbridge.common.exceptions"):
            invalid_identifier_error("x y", "column")
            LocalBridgeError("driver exploded")

        levels = [record.levelno for record in caplog.records]
        assert levels == [logging.WARNING, logging.ERROR]


class TestErrorHelpers:
    def test_database_not_found_lists_sorted_names(self):
        err = database_not_found_error("nope", ["pg_main", "mysql_main"])

        assert err.error_code == ErrorCode.DATABASE_NOT_FOUND
        assert err.message == (
            "database 'nope' not found or not enabled. Available databases: mysql_main, pg_main"
        )

    def test_database_not_found_without_databases(self):
        err = database_not_found_error("nope", [])
        assert err.message == "database 'nope' not found. No databases are configured or enabled."

    def test_redis_not_found(self):
        err = redis_not_found_error("cache", ["redis_main"])

        assert err.error_code == ErrorCode.CACHE_NOT_FOUND
        assert "Available redis instances: redis_main" in err.message

    def test_backend_error_keeps_native_message(self):
        native = OperationalError("SELECT 1", {}, Exception("Unknown column 'x' in 'where clause'"))
        err = backend_error("SELECT * FROM t WHERE x = ?", native, database="mysql_main")

        assert err.error_code == ErrorCode.QUERY_EXECUTION_ERROR
        assert err.message == "query execution failed: Unknown column 'x' in 'where clause'"
        assert err.details["database"] == "mysql_main"
        assert err.cause is native

    def test_backend_error_truncates_long_queries(self):
        err = backend_error("SELECT " + "x" * 1000, RuntimeError("too long"))
        assert len(err.details["query"]) == 503

    def test_timeout_is_retryable(self):
        err = timeout_error("query", 2.5, database="pg_main")

        assert err.error_code == ErrorCode.TIMEOUT_ERROR
        assert err.is_retryable
        assert err.message == "query exceeded the 2.5s deadline and was cancelled"

    def test_feature_not_enabled(self):
        err = feature_not_enabled_error("db_table_preview", "tools.db.enable_preview")

        assert err.error_code == ErrorCode.FEATURE_DISABLED
        assert "tools.db.enable_preview" in err.message
