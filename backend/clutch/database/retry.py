"""Unit-of-work runner with bounded retries for transient storage failures."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clutch.config import get_settings
from clutch.exceptions import Unavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_in_transaction(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    label: str,
) -> T:
    """
    Run `operation` as one unit of work and commit it.

    The operation runs inside a SAVEPOINT. When it raises, only the savepoint
    is rolled back, so nothing it wrote is observable while objects the
    caller already holds stay loaded. The enclosing transaction is then
    committed to release its locks and the error propagates unchanged.

    OperationalError (lock contention, serialization failures, dropped
    connections) rolls back the whole session and is retried with
    exponential backoff up to `database.max_retries` attempts before
    surfacing as Unavailable.
    """
    config = get_settings().database
    retry_count = 0

    while True:
        try:
            async with db.begin_nested():
                result = await operation()
            await db.commit()
            return result

        except OperationalError as e:
            await db.rollback()
            retry_count += 1
            if retry_count >= config.max_retries:
                logger.error(f"{label} failed after {retry_count} attempts: {e}")
                raise Unavailable(
                    f"{label} could not be completed, please try again"
                ) from e

            wait_time = config.retry_backoff_seconds * 2 ** (retry_count - 1)
            logger.warning(
                f"{label} hit a transient storage error, "
                f"retrying in {wait_time:.2f}s ({retry_count}/{config.max_retries})"
            )
            await asyncio.sleep(wait_time)

        except Exception:
            try:
                await db.commit()
            except SQLAlchemyError:
                await db.rollback()
            raise
