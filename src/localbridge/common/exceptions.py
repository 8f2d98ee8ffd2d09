import logging
from enum import Enum
from typing import Any, Dict, Iterable, Optional


class ErrorCode(Enum):
    """Standard error codes for localbridge operations.

    Categorized codes identify the failure without a separate exception
    class per case. Each category has its own number range.

    Attributes:
        CONFIG_*: Configuration errors (1xxx)
        VALIDATION_*: Caller input validation errors (2xxx)
        CONNECTION_*: Network, connection and deadline errors (3xxx)
        EXECUTION_*: Backend execution errors (4xxx)
        RESOURCE_*: Unknown database, cache or table (5xxx)
    """
    # Configuration errors (1xxx)
    CONFIG_INVALID = "CONFIG_003"
    FEATURE_DISABLED = "CONFIG_004"

    # Validation errors (2xxx)
    INVALID_ARGUMENT = "VALIDATION_002"
    MISSING_PARAMETER = "VALIDATION_003"
    INVALID_IDENTIFIER = "VALIDATION_004"
    INVALID_AGGREGATE_FUNCTION = "VALIDATION_005"

    # Connection errors (3xxx)
    CONNECTION_ERROR = "CONNECTION_001"
    TIMEOUT_ERROR = "CONNECTION_003"

    # Execution errors (4xxx)
    QUERY_EXECUTION_ERROR = "EXECUTION_002"

    # Resource errors (5xxx)
    RESOURCE_NOT_FOUND = "RESOURCE_001"
    DATABASE_NOT_FOUND = "RESOURCE_002"
    CACHE_NOT_FOUND = "RESOURCE_003"


_CALLER_ERROR_CODES = frozenset({
    ErrorCode.INVALID_ARGUMENT,
    ErrorCode.MISSING_PARAMETER,
    ErrorCode.INVALID_IDENTIFIER,
    ErrorCode.INVALID_AGGREGATE_FUNCTION,
    ErrorCode.RESOURCE_NOT_FOUND,
    ErrorCode.DATABASE_NOT_FOUND,
    ErrorCode.CACHE_NOT_FOUND,
    ErrorCode.FEATURE_DISABLED,
})

_MAX_QUERY_DETAIL = 500


class LocalBridgeError(Exception):
    """Base exception for all localbridge errors.

    A single exception class carries an ``ErrorCode`` for categorization.
    Tool handlers turn it into an MCP error result whose text is ``str(err)``,
    so messages name the offending value and the rule it broke.

    Attributes:
        message: Error message
        error_code: Error code from ErrorCode enum
        details: Additional error details
        cause: Optional underlying exception
        is_retryable: Whether the error is transient and can be retried
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.QUERY_EXECUTION_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        is_retryable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.is_retryable = is_retryable

        # Caller mistakes are expected traffic for an LLM-facing server
        level = logging.WARNING if error_code in _CALLER_ERROR_CODES else logging.ERROR
        logging.getLogger(__name__).log(
            level,
            message,
            extra={
                "error_code": error_code.value,
                "details": self.details,
                "is_retryable": is_retryable,
            },
            exc_info=cause,
        )

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
            "is_retryable": self.is_retryable
        }

    @classmethod
    def from_error_code(
        cls,
        error_code: ErrorCode,
        message: str,
        **kwargs
    ) -> "LocalBridgeError":
        """Create exception from error code.

        Deadline errors are marked retryable unless the caller says otherwise.
        """
        if error_code == ErrorCode.TIMEOUT_ERROR:
            kwargs.setdefault('is_retryable', True)

        return cls(message=message, error_code=error_code, **kwargs)


def _truncate_query(query: str) -> str:
    return query[:_MAX_QUERY_DETAIL] + "..." if len(query) > _MAX_QUERY_DETAIL else query


def configuration_error(
    message: str,
    config_key: Optional[str] = None,
    **kwargs
) -> LocalBridgeError:
    """Create a configuration error.

    Args:
        message: Error message
        config_key: Configuration key or file that caused the error
        **kwargs: Additional error details

    Returns:
        LocalBridgeError with CONFIG_INVALID code
    """
    details = kwargs.pop('details', {})
    if config_key:
        details["config_key"] = config_key

    return LocalBridgeError(
        message=message,
        error_code=ErrorCode.CONFIG_INVALID,
        details=details,
        **kwargs
    )


def validation_error(
    message: str,
    field: Optional[str] = None,
    value: Any = None,
    error_code: ErrorCode = ErrorCode.INVALID_ARGUMENT,
    **kwargs
) -> LocalBridgeError:
    """Create a validation error for caller supplied input.

    Args:
        message: Error message
        field: Argument that failed validation
        value: Invalid value
        error_code: Validation code, INVALID_ARGUMENT unless narrowed
        **kwargs: Additional error details

    Returns:
        LocalBridgeError with a VALIDATION_* code
    """
    details = kwargs.pop('details', {})
    if field:
        details["field"] = field
    if value is not None:
        details["value"] = str(value)

    return LocalBridgeError(
        message=message,
        error_code=error_code,
        details=details,
        **kwargs
    )


def missing_parameter_error(name: str) -> LocalBridgeError:
    return validation_error(
        f"missing required parameter '{name}'",
        field=name,
        error_code=ErrorCode.MISSING_PARAMETER,
    )


def invalid_identifier_error(value: Any, role: str = "identifier") -> LocalBridgeError:
    """Create the error raised when a table, column or schema name is rejected."""
    return validation_error(
        f"invalid {role} name: {value!r}. Names may only contain ASCII letters, "
        f"digits, underscores and dots",
        field=role,
        value=value,
        error_code=ErrorCode.INVALID_IDENTIFIER,
    )


def invalid_aggregate_function_error(function: Any, allowed: Iterable[str]) -> LocalBridgeError:
    return validation_error(
        f"invalid aggregate function: {function}. Must be one of: {', '.join(allowed)}",
        field="function",
        value=function,
        error_code=ErrorCode.INVALID_AGGREGATE_FUNCTION,
    )


def connection_error(
    message: str,
    service: Optional[str] = None,
    host: Optional[str] = None,
    **kwargs
) -> LocalBridgeError:
    """Create a connection error.

    Args:
        message: Error message
        service: Named instance that failed to connect
        host: Host/endpoint that failed
        **kwargs: Additional error details

    Returns:
        LocalBridgeError with CONNECTION_ERROR code
    """
    details = kwargs.pop('details', {})
    if service:
        details["service"] = service
    if host:
        details["host"] = host

    return LocalBridgeError(
        message=message,
        error_code=ErrorCode.CONNECTION_ERROR,
        details=details,
        **kwargs
    )


def backend_error(
    query: str,
    original_error: Exception,
    database: Optional[str] = None,
) -> LocalBridgeError:
    """Create the error raised when the engine rejects or fails a query.

    The engine-native message is kept verbatim so the caller can act on it.

    Args:
        query: SQL text (or cache command) that failed
        original_error: The driver exception
        database: Named instance the query ran against

    Returns:
        LocalBridgeError with QUERY_EXECUTION_ERROR code
    """
    native = getattr(original_error, "orig", None) or original_error
    details: Dict[str, Any] = {"query": _truncate_query(query)}
    if database:
        details["database"] = database

    return LocalBridgeError(
        message=f"query execution failed: {native}",
        error_code=ErrorCode.QUERY_EXECUTION_ERROR,
        details=details,
        cause=original_error,
    )


def timeout_error(
    operation: str,
    timeout: float,
    database: Optional[str] = None,
) -> LocalBridgeError:
    details: Dict[str, Any] = {"operation": operation, "timeout_seconds": timeout}
    if database:
        details["database"] = database

    return LocalBridgeError.from_error_code(
        ErrorCode.TIMEOUT_ERROR,
        f"{operation} exceeded the {timeout:g}s deadline and was cancelled",
        details=details,
    )


def feature_not_enabled_error(feature_name: str, config_key: str) -> LocalBridgeError:
    return LocalBridgeError(
        message=f"{feature_name} is disabled. Enable it with '{config_key}' in the server configuration",
        error_code=ErrorCode.FEATURE_DISABLED,
        details={"feature": feature_name, "config_key": config_key},
    )


def resource_not_found_error(
    message: str,
    resource_type: Optional[str] = None,
    resource_name: Optional[str] = None,
    error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
) -> LocalBridgeError:
    """Create a resource not found error.

    Args:
        message: Error message
        resource_type: Type of resource (database, redis, table)
        resource_name: Name of the missing resource
        error_code: RESOURCE_* code

    Returns:
        LocalBridgeError with a RESOURCE_* code
    """
    details: Dict[str, Any] = {}
    if resource_type:
        details["resource_type"] = resource_type
    if resource_name:
        details["resource_name"] = resource_name

    return LocalBridgeError(message=message, error_code=error_code, details=details)


def _not_found_message(kind: str, name: str, available: Iterable[str]) -> str:
    names = sorted(available)
    if not names:
        return f"{kind} '{name}' not found. No {kind}s are configured or enabled."
    return f"{kind} '{name}' not found or not enabled. Available {kind}s: {', '.join(names)}"


def database_not_found_error(name: str, available: Iterable[str]) -> LocalBridgeError:
    """Create the shared 'unknown database instance' error.

    The message lists the configured instance names in sorted order so the
    caller can retry with a valid one.
    """
    return resource_not_found_error(
        _not_found_message("database", name, available),
        resource_type="database",
        resource_name=name,
        error_code=ErrorCode.DATABASE_NOT_FOUND,
    )


def redis_not_found_error(name: str, available: Iterable[str]) -> LocalBridgeError:
    return resource_not_found_error(
        _not_found_message("redis instance", name, available),
        resource_type="redis",
        resource_name=name,
        error_code=ErrorCode.CACHE_NOT_FOUND,
    )
