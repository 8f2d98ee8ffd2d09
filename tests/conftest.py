from unittest.mock import AsyncMock, Mock

import pytest

from localbridge.repositories import MySQLRepository, PostgresRepository
from localbridge.settings import MySQLSettings, PostgresSettings
from localbridge.settings import _reload_settings
from localbridge.types import QueryResult


def _result(rows):
    columns = list(rows[0].keys()) if rows else []
    return QueryResult(columns=columns, rows=rows, row_count=len(rows))


@pytest.fixture
def make_result():
    """Build a QueryResult from a list of row dictionaries."""
    return _result


@pytest.fixture(autouse=True)
def reset_settings():
    _reload_settings()
    yield
    _reload_settings()


@pytest.fixture
def mysql_settings():
    return MySQLSettings(name="mysql_main", database="shop", user="app")


@pytest.fixture
def postgres_settings():
    return PostgresSettings(name="pg_main", database="shop", user="app")


@pytest.fixture
def mysql_repo(mysql_settings):
    """MySQL repository whose engine is never touched."""
    return MySQLRepository(mysql_settings, engine=Mock())


@pytest.fixture
def postgres_repo(postgres_settings):
    return PostgresRepository(postgres_settings, engine=Mock())


@pytest.fixture
def repositories(mysql_repo, postgres_repo):
    mysql_repo.execute = AsyncMock(return_value=_result([]))
    postgres_repo.execute = AsyncMock(return_value=_result([]))
    return {"mysql_main": mysql_repo, "pg_main": postgres_repo}
