"""
Integration Test: Points Ledger

Tests balance mutations against a temporary SQLite database.

Test cases:
- Untouched accounts report the starting grant
- Deltas are floored at zero and recorded with what was actually applied
- Replaying an attributed delta is a no-op
- Balance always equals the replayed ledger
- Concurrent deltas on one account are all applied
"""

import asyncio

import pytest

from clutch.database import get_db_session
from clutch.exceptions import ValidationError
from clutch.models import LedgerCause
from clutch.services import points_ledger


def test_untouched_account_has_starting_grant(run_db) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            assert await points_ledger.get_balance(db, 5) == 1000
            assert await points_ledger.get_account(db, 5) is None

            account = await points_ledger.ensure_account(db, 5)
            assert account.balance == 1000

            history = await points_ledger.history(db, 5)
            assert [e.cause for e in history] == [LedgerCause.GRANT.value]

    run_db(scenario)


def test_ensure_account_is_idempotent(run_db) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            await points_ledger.ensure_account(db, 5)
            await points_ledger.apply_delta(db, 5, -100)
            account = await points_ledger.ensure_account(db, 5)

            assert account.balance == 900
            assert len(await points_ledger.history(db, 5)) == 2

    run_db(scenario)


def test_apply_delta_returns_new_balance(run_db) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            assert await points_ledger.apply_delta(db, 5, 250) == 1250
            assert await points_ledger.apply_delta(db, 5, -50) == 1200
            assert await points_ledger.get_balance(db, 5) == 1200

    run_db(scenario)


def test_overdraw_is_floored_at_zero(run_db) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            assert await points_ledger.apply_delta(db, 5, -1500) == 0
            assert await points_ledger.apply_delta(db, 5, -10) == 0

            latest, previous = (await points_ledger.history(db, 5))[:2]
            assert latest.requested_delta == -10
            assert latest.applied_delta == 0
            assert previous.requested_delta == -1500
            assert previous.applied_delta == -1000
            assert previous.balance_after == 0

    run_db(scenario)


def test_attributed_delta_applies_once(run_db) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            first = await points_ledger.apply_delta(
                db, 5, 40, LedgerCause.PAYOUT, reference_id="topic_x"
            )
            replay = await points_ledger.apply_delta(
                db, 5, 40, LedgerCause.PAYOUT, reference_id="topic_x"
            )

            assert first == 1040
            assert replay == 1040

    run_db(scenario)


def test_balance_matches_replayed_ledger(run_db) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            for delta in (300, -1200, -400, 75, 10):
                await points_ledger.apply_delta(db, 9, delta)

            assert await points_ledger.get_balance(db, 9) == 85
            assert await points_ledger.replay_balance(db, 9) == 85

    run_db(scenario)


def test_non_integer_delta_is_rejected(run_db) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            with pytest.raises(ValidationError):
                await points_ledger.apply_delta(db, 5, 2.5)

            assert await points_ledger.get_account(db, 5) is None

    run_db(scenario)


def test_history_is_newest_first_and_limited(run_db) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            for i in range(1, 6):
                await points_ledger.apply_delta(db, 5, i)

            history = await points_ledger.history(db, 5, limit=3)
            assert [e.requested_delta for e in history] == [5, 4, 3]

    run_db(scenario)


def test_concurrent_deltas_are_not_lost(run_db) -> None:
    async def credit(amount: int) -> None:
        async with get_db_session() as db:
            await points_ledger.apply_delta(db, 5, amount)

    async def scenario() -> None:
        await asyncio.gather(*(credit(amount) for amount in (1, 2, 3, 4, 5, 6)))

        async with get_db_session() as db:
            assert await points_ledger.get_balance(db, 5) == 1021
            assert await points_ledger.replay_balance(db, 5) == 1021

    run_db(scenario)
