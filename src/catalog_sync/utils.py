"""
Shared utilities for catalog sync operations.

This module provides retry functionality with exponential backoff, a
cursor-based pagination helper for remote list endpoints and timestamp
helpers.
"""

from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

from tenacity import RetryError, Retrying, stop_after_attempt, wait_exponential

from .audit.logger import CatalogSyncLogger
from .config.models import RetryConfig


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string with a Z suffix."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def retry_with_logging(
    retry_config: RetryConfig, logger: Optional[CatalogSyncLogger] = None
):
    """
    Decorator for retrying operations with logging.

    The wrapped function never raises. It returns a tuple of
    (result, error, attempt_number, max_attempts) where error is the last
    exception when every attempt failed and None otherwise.

    Args:
        retry_config: RetryConfig object with retry settings
        logger: Optional logger for logging attempts

    Returns:
        Decorated function with retry logic and logging
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            max_attempts = retry_config.max_attempts
            attempt_number = 0

            def log_failure(retry_state):
                if logger:
                    logger.warning(
                        f"{func.__name__} failed on attempt "
                        f"{retry_state.attempt_number}/{max_attempts}: "
                        f"{retry_state.outcome.exception()}"
                    )

            retrying = Retrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential(multiplier=retry_config.retry_delay_seconds),
                before_sleep=log_failure,
                reraise=True,
            )

            try:
                for attempt in retrying:
                    attempt_number = attempt.retry_state.attempt_number
                    with attempt:
                        if logger:
                            logger.debug(
                                f"Attempting {func.__name__} "
                                f"(attempt {attempt_number}/{max_attempts})"
                            )
                        result = func(*args, **kwargs)
            except RetryError as e:
                return None, e, attempt_number, max_attempts
            except Exception as e:
                if logger:
                    logger.warning(
                        f"{func.__name__} failed after {attempt_number} "
                        f"attempt(s): {e}"
                    )
                return None, e, attempt_number, max_attempts

            return result, None, attempt_number, max_attempts

        return wrapper

    return decorator


def paginate_list(
    list_fn: Callable[..., Any], params: Optional[Dict[str, Any]] = None
) -> List[Any]:
    """
    Collect every item from a cursor-paginated list endpoint.

    The endpoint must return an object exposing ``data`` (a list of items
    with an ``id``) and ``has_more``. Pages are requested with the original
    params plus ``starting_after`` set to the id of the last item seen.

    Args:
        list_fn: Callable performing a single page request
        params: Filters and limits passed on every request

    Returns:
        All items across all pages
    """
    params = dict(params or {})
    results: List[Any] = []
    current_params = dict(params)

    while True:
        response = list_fn(**current_params)
        data = get_field(response, "data")
        if not isinstance(data, list):
            raise ValueError("Invalid response: data field must be a list")

        results.extend(data)

        if get_field(response, "has_more") is not True or not data:
            break

        current_params = {**params, "starting_after": get_field(data[-1], "id")}

    return results


def get_field(obj: Any, name: str) -> Any:
    """Read a field from a dict or an SDK object."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)
