"""
Transaction helpers for operations that combine row locks with external calls.

Pattern used by the send path:
    1. BEGIN
    2. SELECT ... FOR UPDATE on the rows that guard the operation
    3. Verify business rules against the locked rows
    4. Write the database changes
    5. Call the external service
    6. COMMIT if everything succeeded, ROLLBACK on any exception

Row locks are released on COMMIT/ROLLBACK, so concurrent requests for the
same user serialize on the lock for the duration of one transaction.
"""

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

import psycopg
from psycopg import errors as pg_errors
from psycopg import sql

from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

ISOLATION_LEVELS = frozenset(
    {"READ UNCOMMITTED", "READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE"}
)

# Errors after which re-running the whole transaction is safe
RETRYABLE_ERRORS = (pg_errors.DeadlockDetected, pg_errors.SerializationFailure)


@asynccontextmanager
async def db_transaction(
    isolation_level: str = "READ COMMITTED",
) -> AsyncGenerator[psycopg.AsyncConnection, None]:
    """
    Open a transaction on a dedicated pooled connection.

    Commits when the block exits normally, rolls back when it raises.
    """
    if isolation_level not in ISOLATION_LEVELS:
        raise ValueError(f"Unsupported isolation level: {isolation_level}")

    async with db_pool.transaction() as conn:
        if isolation_level != "READ COMMITTED":
            await conn.execute(
                sql.SQL("SET TRANSACTION ISOLATION LEVEL {}").format(sql.SQL(isolation_level))
            )
        yield conn


async def with_transaction(
    callback: Callable[[psycopg.AsyncConnection], Awaitable[T]],
    *,
    isolation_level: str = "READ COMMITTED",
    max_retries: int = 3,
    retry_delay: float = 0.1,
) -> T:
    """
    Run `callback(conn)` inside a transaction.

    Deadlocks and serialization failures re-run the callback with exponential
    backoff; every other exception rolls back and propagates unchanged.
    The callback must therefore not perform irreversible side effects before
    its last database statement when it relies on retries.

    Args:
        callback: Coroutine function receiving the transaction connection
        isolation_level: Transaction isolation level
        max_retries: Total attempts for retryable errors
        retry_delay: Base delay in seconds between attempts
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            async with db_transaction(isolation_level) as conn:
                return await callback(conn)

        except RETRYABLE_ERRORS as e:
            if attempt >= max_retries:
                logger.error(
                    "Transaction failed after all retries",
                    attempts=attempt,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            delay = retry_delay * (2 ** (attempt - 1))
            logger.warning(
                "Retryable transaction error, retrying",
                attempt=attempt,
                max_retries=max_retries,
                delay=delay,
                error_type=type(e).__name__,
            )
            await asyncio.sleep(delay)
