"""Bounded query execution.

Every service query goes through ``execute`` so that a slow or unreachable
cluster surfaces as a ``StorageUnavailableError`` within the configured
request timeout, and any other driver failure as a ``StorageError`` carrying
the driver's message. Calls are never retried.
"""

import asyncio
from typing import Any

import structlog
from cassandra import OperationTimedOut, Timeout, Unavailable
from cassandra.cluster import NoHostAvailable

from blog_api.core.exceptions import BlogError, StorageError, StorageUnavailableError


logger = structlog.get_logger(__name__)

UNAVAILABLE_ERRORS = (
    TimeoutError,
    OperationTimedOut,
    Timeout,
    Unavailable,
    NoHostAvailable,
)


async def execute(
    session: Any,
    statement: Any,
    parameters: list[Any] | None = None,
    timeout: float = 10.0,
) -> list[Any]:
    """Run a statement with ``session.aexecute`` under a timeout.

    Args:
        session: Cassandra session with aexecute() support
        statement: Prepared statement or CQL string
        parameters: Bind values
        timeout: Seconds to wait before giving up

    Returns:
        Result rows as a list

    Raises:
        StorageUnavailableError: On timeout or when no replica can serve the query
        StorageError: On any other driver failure
    """
    try:
        result = await asyncio.wait_for(
            session.aexecute(statement, parameters), timeout=timeout
        )
    except BlogError:
        raise
    except UNAVAILABLE_ERRORS as e:
        logger.warning(
            "storage_unavailable",
            error=str(e) or type(e).__name__,
            error_type=type(e).__name__,
            timeout=timeout,
        )
        raise StorageUnavailableError from e
    except Exception as e:
        logger.error("storage_error", error=str(e), error_type=type(e).__name__)
        raise StorageError(str(e) or type(e).__name__) from e

    if result is None:
        return []
    return list(result)


def was_applied(rows: list[Any]) -> bool:
    """Read the ``[applied]`` flag of a lightweight-transaction result."""
    if not rows:
        return True
    return bool(getattr(rows[0], "applied", True))
