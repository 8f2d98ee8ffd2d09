"""SQL dialect strategies.

Each dialect decides how identifiers are quoted and what placeholder syntax
marks a bound parameter. A dialect is chosen once when a builder is created;
no other builder code branches on the engine.
"""

from dataclasses import dataclass
from typing import Union

from localbridge.constants.sql import Dialect, MYSQL_PLACEHOLDER
from localbridge.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DialectAdapter:
    """Immutable quoting and placeholder strategy for one SQL dialect.

    Attributes:
        dialect: The dialect this adapter renders for.
        quote_char: Character wrapped around each identifier segment.
        numbered_placeholders: ``$1, $2, ...`` when True, ``?`` otherwise.
    """

    dialect: Dialect
    quote_char: str
    numbered_placeholders: bool

    @property
    def name(self) -> str:
        return self.dialect.value

    def quote(self, identifier: str) -> str:
        """Quote an already validated identifier, segment by segment.

        ``sales.orders`` becomes ```sales`.`orders``` on MySQL and
        ``"sales"."orders"`` on PostgreSQL.
        """
        q = self.quote_char
        return ".".join(f"{q}{part}{q}" for part in identifier.split("."))

    def placeholder(self, position: int) -> str:
        """Return the placeholder for the 1-based parameter ``position``."""
        if self.numbered_placeholders:
            return f"${position}"
        return MYSQL_PLACEHOLDER


MYSQL = DialectAdapter(dialect=Dialect.MYSQL, quote_char="`", numbered_placeholders=False)
POSTGRES = DialectAdapter(dialect=Dialect.POSTGRES, quote_char='"', numbered_placeholders=True)

_ADAPTERS = {
    Dialect.MYSQL: MYSQL,
    Dialect.POSTGRES: POSTGRES,
}


def get_dialect(driver: Union[str, Dialect, DialectAdapter]) -> DialectAdapter:
    """Resolve a driver name to its dialect adapter.

    ``"mysql"`` and ``"postgres"`` select their adapters. Any other driver
    name falls back to MySQL.
    """
    if isinstance(driver, DialectAdapter):
        return driver
    try:
        return _ADAPTERS[Dialect(driver)]
    except ValueError:
        logger.warning("Unknown driver %r, falling back to mysql dialect", driver)
        return MYSQL
