import json
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import StrictBool, StrictFloat, StrictInt, StrictStr, TypeAdapter, ValidationError

from localbridge.cache import RedisClient
from localbridge.common.exceptions import (
    database_not_found_error,
    missing_parameter_error,
    redis_not_found_error,
    validation_error,
)
from localbridge.query_builder import Conditions
from localbridge.repositories import BaseRepository

_CONDITIONS_ADAPTER = TypeAdapter(Dict[str, Union[StrictBool, StrictInt, StrictFloat, StrictStr]])

_CONDITIONS_SHAPE = (
    "conditions must be a JSON object mapping column names to a string, "
    'number or boolean, e.g. {"status": "active", "age": 25}'
)


def to_json(payload: Any) -> str:
    """Serialize a tool result; values JSON cannot represent are rendered with ``str``."""
    return json.dumps(payload, indent=2, default=str, ensure_ascii=False)


def require(value: Any, name: str) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise missing_parameter_error(name)
    return value


def parse_conditions(raw: Optional[Union[str, Mapping[str, Any]]]) -> Dict[str, Any]:
    """Validate caller conditions into the closed scalar condition map.

    Accepts a JSON object string or an already decoded mapping. Empty input
    means no conditions.

    Raises:
        LocalBridgeError: INVALID_ARGUMENT naming the expected shape
    """
    if raw is None:
        return {}

    if isinstance(raw, str):
        if not raw.strip():
            return {}
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise validation_error(
                f"invalid conditions JSON: {exc}. {_CONDITIONS_SHAPE}", field="conditions", value=raw
            ) from exc

    try:
        conditions: Conditions = _CONDITIONS_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise validation_error(_CONDITIONS_SHAPE, field="conditions", value=raw, cause=exc) from exc
    return dict(conditions)


def get_repository(repositories: Mapping[str, BaseRepository], name: str) -> BaseRepository:
    require(name, "database")
    repository = repositories.get(name)
    if repository is None:
        raise database_not_found_error(name, repositories.keys())
    return repository


def get_redis(clients: Mapping[str, RedisClient], name: str) -> RedisClient:
    require(name, "redis")
    client = clients.get(name)
    if client is None:
        raise redis_not_found_error(name, clients.keys())
    return client
