import asyncio
import functools
import time
from typing import Any, Callable, Dict, Optional, Tuple, Type, TypeVar

from opentelemetry.trace import SpanKind, Status, StatusCode

from localbridge.logging import get_logger
from localbridge.telemetry import get_tracer


F = TypeVar('F', bound=Callable[..., Any])
T = TypeVar('T')

logger = get_logger(__name__)


def traced(
    span_name: Optional[str] = None,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Optional[Dict[str, Any]] = None,
    attribute_getter: Optional[Callable[..., Optional[Dict[str, Any]]]] = None,
) -> Callable[[F], F]:
    """Instrument a function with an OpenTelemetry span.

    Args:
        span_name: Optional explicit span name. Defaults to module-qualified function name.
        kind: Span kind, defaults to INTERNAL.
        attributes: Static span attributes to attach.
        attribute_getter: Callable returning additional attributes at call time.
            It receives the same arguments as the wrapped function.
    """

    def decorator(func: F) -> F:
        is_coroutine = asyncio.iscoroutinefunction(func)

        def _collect_attributes(args: tuple, kwargs: dict) -> Dict[str, Any]:
            collected: Dict[str, Any] = {}
            if attributes:
                collected.update({k: v for k, v in attributes.items() if v is not None})

            if attribute_getter:
                try:
                    dynamic_attrs = attribute_getter(*args, **kwargs)
                except Exception as exc:  # pragma: no cover
                    logger.warning("trace attribute getter failed: %s", exc)
                    dynamic_attrs = None

                if dynamic_attrs:
                    collected.update({k: v for k, v in dynamic_attrs.items() if v is not None})

            return collected

        if is_coroutine:

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                tracer = get_tracer(func.__module__)
                name = span_name or f"{func.__module__}.{func.__qualname__}"

                with tracer.start_as_current_span(name, kind=kind) as span:
                    for key, value in _collect_attributes(args, kwargs).items():
                        span.set_attribute(key, value)

                    try:
                        return await func(*args, **kwargs)
                    except Exception as exc:
                        span.record_exception(exc)
                        span.set_status(Status(StatusCode.ERROR, str(exc)))
                        raise

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(func.__module__)
            name = span_name or f"{func.__module__}.{func.__qualname__}"

            with tracer.start_as_current_span(name, kind=kind) as span:
                for key, value in _collect_attributes(args, kwargs).items():
                    span.set_attribute(key, value)

                try:
                    return func(*args, **kwargs)
                except Exception as exc:
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    raise

        return sync_wrapper  # type: ignore[return-value]

    return decorator


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    retry_on: Optional[Tuple[Type[Exception], ...]] = None,
    retry_condition: Optional[Callable[[Exception], bool]] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for retrying operations with exponential backoff.

    Works with both synchronous and asynchronous functions. The delay between
    attempts follows ``min(initial_delay * exponential_base ** attempt, max_delay)``.

    Only connection establishment is wrapped with this decorator. Query
    execution is never retried: a failed statement is reported to the caller
    as-is.

    Args:
        max_retries: Maximum number of retry attempts.
        initial_delay: Initial delay in seconds between retries.
        max_delay: Maximum delay in seconds (caps exponential growth).
        exponential_base: Base for exponential backoff calculation.
        retry_on: Exception types to retry on. If None, retries on all
            exceptions.
        retry_condition: Optional predicate deciding, per exception, whether
            to retry.

    Returns:
        Decorator function that can be applied to both sync and async functions.

    Raises:
        The last exception encountered if all retry attempts fail.

    Example:
        >>> @retry_with_backoff(max_retries=2, retry_on=(ConnectionError,))
        ... async def connect():
        ...     return await open_pool()
    """
    def _should_retry(exc: Exception) -> bool:
        should_retry = retry_on is None or isinstance(exc, retry_on)
        if should_retry and retry_condition:
            should_retry = retry_condition(exc)
        return should_retry

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> T:
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if _should_retry(e) and attempt < max_retries:
                        logger.warning(
                            f"Attempt {attempt + 1} failed for {func.__name__}: {e}. "
                            f"Retrying in {delay} seconds..."
                        )
                        await asyncio.sleep(delay)
                        delay = min(delay * exponential_base, max_delay)
                    else:
                        if attempt == max_retries:
                            logger.error(
                                f"All {max_retries + 1} attempts failed for {func.__name__}"
                            )
                        raise
            raise AssertionError("unreachable")  # pragma: no cover

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> T:
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if _should_retry(e) and attempt < max_retries:
                        logger.warning(
                            f"Attempt {attempt + 1} failed for {func.__name__}: {e}. "
                            f"Retrying in {delay} seconds..."
                        )
                        time.sleep(delay)
                        delay = min(delay * exponential_base, max_delay)
                    else:
                        if attempt == max_retries:
                            logger.error(
                                f"All {max_retries + 1} attempts failed for {func.__name__}"
                            )
                        raise
            raise AssertionError("unreachable")  # pragma: no cover

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator

