"""Common exceptions for localbridge.

Exception Design:
    The exception system uses error codes for categorization rather than
    numerous specific exception classes. Every error raised by the query
    builder, the repositories, the cache client and the tool handlers is a
    ``LocalBridgeError`` carrying an ``ErrorCode``; the helper functions below
    build the common cases with consistent messages and details.
"""

from localbridge.common.exceptions import (
    LocalBridgeError,
    ErrorCode,
    # Helper functions
    configuration_error,
    validation_error,
    missing_parameter_error,
    invalid_identifier_error,
    invalid_aggregate_function_error,
    connection_error,
    backend_error,
    timeout_error,
    feature_not_enabled_error,
    resource_not_found_error,
    database_not_found_error,
    redis_not_found_error,
)

__all__ = [
    # Base Exception and Error Codes
    "LocalBridgeError",
    "ErrorCode",
    # Helper functions
    "configuration_error",
    "validation_error",
    "missing_parameter_error",
    "invalid_identifier_error",
    "invalid_aggregate_function_error",
    "connection_error",
    "backend_error",
    "timeout_error",
    "feature_not_enabled_error",
    "resource_not_found_error",
    "database_not_found_error",
    "redis_not_found_error",
]
