"""
Integration Test: Transactions

Tests the unit-of-work runner shared by every service.

Test cases:
- Transient storage errors are retried, then succeed
- Persistent transient errors surface as Unavailable
- Business errors are not retried and leave nothing behind
- Objects loaded before a business error stay usable
"""

import pytest
from sqlalchemy.exc import OperationalError

from clutch.database import get_db_session, run_in_transaction
from clutch.exceptions import Unavailable, ValidationError
from clutch.models import LedgerCause
from clutch.services import points_ledger


def _locked() -> OperationalError:
    return OperationalError("UPDATE point_accounts", {}, Exception("database is locked"))


def test_transient_error_is_retried(run_db) -> None:
    attempts = []

    async def scenario() -> None:
        async with get_db_session() as db:

            async def operation() -> int:
                attempts.append(1)
                await points_ledger.record_delta(db, 5, 10, LedgerCause.ADJUSTMENT)
                if len(attempts) < 3:
                    raise _locked()
                return len(attempts)

            assert await run_in_transaction(db, operation, "flaky credit") == 3
            # Only the successful attempt was committed
            assert await points_ledger.get_balance(db, 5) == 1010

    run_db(scenario)


def test_retries_are_bounded(run_db) -> None:
    attempts = []

    async def scenario() -> None:
        async with get_db_session() as db:

            async def operation() -> None:
                attempts.append(1)
                raise _locked()

            with pytest.raises(Unavailable):
                await run_in_transaction(db, operation, "doomed credit")

    run_db(scenario)
    assert len(attempts) == 3


def test_business_errors_roll_back_without_retry(run_db) -> None:
    attempts = []

    async def scenario() -> None:
        async with get_db_session() as db:

            async def operation() -> None:
                attempts.append(1)
                await points_ledger.record_delta(db, 5, 10, LedgerCause.ADJUSTMENT)
                raise ValidationError("nope")

            with pytest.raises(ValidationError):
                await run_in_transaction(db, operation, "rejected credit")

            assert await points_ledger.get_account(db, 5) is None

    run_db(scenario)
    assert len(attempts) == 1


def test_business_errors_keep_caller_objects_loaded(run_db) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            account = await points_ledger.ensure_account(db, 5)

            async def operation() -> None:
                await points_ledger.record_delta(db, 6, 10, LedgerCause.ADJUSTMENT)
                raise ValidationError("nope")

            with pytest.raises(ValidationError):
                await run_in_transaction(db, operation, "rejected credit")

            assert account.user_id == 5
            assert account.balance == 1000
            assert await points_ledger.get_account(db, 6) is None

    run_db(scenario)
