"""Database instance settings.

Each configured MySQL or PostgreSQL instance becomes one repository with its
own SQLAlchemy async engine and connection pool.
"""

from typing import Any, ClassVar, Dict, List, Literal

from pydantic import BaseModel, Field, SecretStr
from sqlalchemy.engine import URL

from localbridge.constants.sql import DEFAULT_POSTGRES_SCHEMA, Dialect


class BaseDatabaseSettings(BaseModel):
    """Connection and pool settings shared by every SQL engine.

    Pool sizing follows the ``max_open_conns`` / ``max_idle_conns`` pair:
    SQLAlchemy keeps ``pool_size`` idle connections and may open up to
    ``max_overflow`` more under load.
    """

    driver: ClassVar[Dialect]
    drivername: ClassVar[str]

    name: str = Field(..., min_length=1, description="Instance name used by tool callers")
    enabled: bool = Field(default=True, description="Whether the instance is connected at startup")
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(..., ge=1, le=65535, description="Database port")
    user: str = Field(default="", description="Login user")
    password: SecretStr = Field(default=SecretStr(""), description="Login password")
    database: str = Field(..., min_length=1, description="Database (catalog) to connect to")

    max_open_conns: int = Field(default=10, ge=1, description="Upper bound on open connections")
    max_idle_conns: int = Field(default=5, ge=0, description="Connections kept open while idle")
    conn_max_lifetime: int = Field(
        default=3600,
        ge=0,
        description="Seconds after which a pooled connection is recycled (0 disables recycling)"
    )
    connect_timeout: float = Field(default=10.0, gt=0, description="Seconds allowed to establish a connection")

    @property
    def pool_size(self) -> int:
        return max(1, min(self.max_idle_conns, self.max_open_conns))

    @property
    def max_overflow(self) -> int:
        return max(0, self.max_open_conns - self.pool_size)

    @property
    def pool_recycle(self) -> int:
        return self.conn_max_lifetime if self.conn_max_lifetime > 0 else -1

    def url(self) -> URL:
        """Build the SQLAlchemy URL for this instance."""
        return URL.create(
            self.drivername,
            username=self.user or None,
            password=self.password.get_secret_value() or None,
            host=self.host,
            port=self.port,
            database=self.database,
        )

    def connect_args(self) -> Dict[str, Any]:
        return {}

    def engine_options(self) -> Dict[str, Any]:
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_recycle": self.pool_recycle,
            "pool_pre_ping": True,
            "connect_args": self.connect_args(),
        }


class MySQLSettings(BaseDatabaseSettings):
    driver: ClassVar[Dialect] = Dialect.MYSQL
    drivername: ClassVar[str] = "mysql+aiomysql"

    port: int = Field(default=3306, ge=1, le=65535, description="MySQL port")
    charset: str = Field(default="utf8mb4", description="Connection character set")

    def connect_args(self) -> Dict[str, Any]:
        return {
            "connect_timeout": self.connect_timeout,
            "charset": self.charset,
        }


class PostgresSettings(BaseDatabaseSettings):
    driver: ClassVar[Dialect] = Dialect.POSTGRES
    drivername: ClassVar[str] = "postgresql+psycopg"

    port: int = Field(default=5432, ge=1, le=65535, description="PostgreSQL port")
    sslmode: Literal["disable", "allow", "prefer", "require", "verify-ca", "verify-full"] = Field(
        default="disable",
        description="libpq SSL mode passed to psycopg"
    )
    default_schema: str = Field(default=DEFAULT_POSTGRES_SCHEMA, description="Schema used when a tool call names none")

    def connect_args(self) -> Dict[str, Any]:
        return {
            "sslmode": self.sslmode,
            # libpq rejects a fractional connect_timeout
            "connect_timeout": max(1, int(self.connect_timeout)),
        }


class DatabasesSettings(BaseModel):
    mysql: List[MySQLSettings] = Field(default_factory=list, description="MySQL instances")
    postgres: List[PostgresSettings] = Field(default_factory=list, description="PostgreSQL instances")

    def enabled(self) -> List[BaseDatabaseSettings]:
        """All enabled instances, MySQL first, in configuration order."""
        return [db for db in [*self.mysql, *self.postgres] if db.enabled]
