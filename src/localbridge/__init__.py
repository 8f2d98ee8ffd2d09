from localbridge.__version__ import __version__

from localbridge.common.exceptions import ErrorCode, LocalBridgeError
from localbridge.constants import AggregateFunction, Dialect
from localbridge.query_builder import QueryBuilder, is_valid_identifier, is_valid_order_by
from localbridge.settings import LocalBridgeSettings, get_settings, load_settings
from localbridge.types import QueryPlan


__all__ = [
    "__version__",

    # Query construction
    "QueryBuilder",
    "QueryPlan",
    "Dialect",
    "AggregateFunction",
    "is_valid_identifier",
    "is_valid_order_by",

    # Exceptions (public API)
    "LocalBridgeError",
    "ErrorCode",

    # Settings
    "LocalBridgeSettings",
    "get_settings",
    "load_settings",
]
