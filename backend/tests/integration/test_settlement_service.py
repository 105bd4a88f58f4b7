"""
Integration Test: Settlement

Tests topic settlement against a temporary SQLite database.

Test cases:
- Worked example: three winners split a pool of 60
- No refund when nobody staked on the correct choice
- Mission topics pay a flat reward
- Exactly-once settlement, also under concurrent settle calls
- Invalid outcome and unauthorized callers change nothing
- A failure mid-payout rolls back the whole settlement
"""

import asyncio

import pytest

from clutch.database import get_db_session
from clutch.exceptions import AlreadySettled, Forbidden, InvalidChoice, NotFound
from clutch.models import LedgerCause, PayoutModel, TopicStatus
from clutch.services import (
    Actor,
    participation_service,
    points_ledger,
    settlement_service,
    topic_service,
)
from clutch.services.points_ledger import FIRST_WIN_BADGE


async def _staked_topic(db, make_topic):
    """Three users stake 10 on Team A, one stakes 30 on Team B."""
    topic = await make_topic(db)
    for user_id in (11, 12, 13):
        await participation_service.submit(db, topic.topic_id, user_id, "Team A", stake=10)
    await participation_service.submit(db, topic.topic_id, 14, "Team B", stake=30)
    return topic


def test_winners_split_the_pool(run_db, admin, make_topic) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            topic = await _staked_topic(db, make_topic)

            result = await settlement_service.settle(db, topic.topic_id, "Team A", admin)

            assert result.payout_model == PayoutModel.POOL
            assert result.total_pool == 60
            assert result.winning_pool == 30
            assert result.total_credited == 60
            assert sorted((p.user_id, p.amount) for p in result.payouts) == [
                (11, 20),
                (12, 20),
                (13, 20),
            ]
            assert [(s.choice, s.votes, s.points) for s in result.choice_stats] == [
                ("Team A", 3, 30),
                ("Team B", 1, 30),
            ]

            for user_id in (11, 12, 13):
                assert await points_ledger.get_balance(db, user_id) == 1010
                account = await points_ledger.get_account(db, user_id)
                assert FIRST_WIN_BADGE in account.badges
            assert await points_ledger.get_balance(db, 14) == 970

            revealed = await topic_service.get(db, topic.topic_id)
            assert revealed.status == TopicStatus.REVEALED.value
            assert revealed.correct_choice == "Team A"
            assert revealed.revealed_at is not None

            participations = await participation_service.list_by_topic(db, topic.topic_id)
            assert {p.user_id: p.payout for p in participations} == {11: 20, 12: 20, 13: 20, 14: 0}
            assert all(p.revealed_at is not None for p in participations)

            record = await settlement_service.get_settlement(db, topic.topic_id)
            assert record.settled_by == admin.user_id
            assert record.winner_count == 3
            assert record.total_credited == 60

    run_db(scenario)


def test_no_refund_without_winning_stake(run_db, admin, make_topic) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            topic = await make_topic(db, options=("Team A", "Team B", "Draw"))
            await participation_service.submit(db, topic.topic_id, 11, "Team A", stake=40)
            await participation_service.submit(db, topic.topic_id, 12, "Team B", stake=60)

            result = await settlement_service.settle(db, topic.topic_id, "Draw", admin)

            assert result.total_pool == 100
            assert result.winning_pool == 0
            assert result.payouts == []
            assert result.total_credited == 0
            assert await points_ledger.get_balance(db, 11) == 960
            assert await points_ledger.get_balance(db, 12) == 940

            revealed = await topic_service.get(db, topic.topic_id)
            assert revealed.status == TopicStatus.REVEALED.value

    run_db(scenario)


def test_mission_pays_flat_reward(run_db, admin, make_topic) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            topic = await make_topic(
                db, "mission", options=("done", "failed"), metadata={"reward_points": 25}
            )
            await participation_service.submit(db, topic.topic_id, 11, "done")
            await participation_service.submit(db, topic.topic_id, 12, "done", anonymous=True)
            await participation_service.submit(db, topic.topic_id, 13, "failed")

            result = await settlement_service.settle(db, topic.topic_id, "done", admin)

            assert result.payout_model == PayoutModel.FLAT
            assert result.total_pool == 0
            assert result.total_credited == 50
            assert await points_ledger.get_balance(db, 11) == 1025
            assert await points_ledger.get_balance(db, 12) == 1025
            assert await points_ledger.get_balance(db, 13) == 1000

            latest = (await points_ledger.history(db, 12))[0]
            assert latest.cause == LedgerCause.MISSION_REWARD.value
            assert latest.reference_id == topic.topic_id

    run_db(scenario)


def test_closed_topic_can_be_settled(run_db, admin, make_topic) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            topic = await _staked_topic(db, make_topic)
            await topic_service.close(db, topic.topic_id, admin)

            result = await settlement_service.settle(db, topic.topic_id, "Team B", admin)

            assert [(p.user_id, p.amount) for p in result.payouts] == [(14, 60)]
            assert await points_ledger.get_balance(db, 14) == 1030

    run_db(scenario)


def test_settle_twice_is_rejected(run_db, admin, make_topic) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            topic = await _staked_topic(db, make_topic)
            await settlement_service.settle(db, topic.topic_id, "Team A", admin)

            with pytest.raises(AlreadySettled):
                await settlement_service.settle(db, topic.topic_id, "Team A", admin)
            with pytest.raises(AlreadySettled):
                await settlement_service.settle(db, topic.topic_id, "Team B", admin)

            assert await points_ledger.get_balance(db, 11) == 1010
            assert await points_ledger.get_balance(db, 14) == 970

    run_db(scenario)


def test_concurrent_settlement_pays_once(run_db, admin, make_topic) -> None:
    async def settle(topic_id: str, choice: str):
        async with get_db_session() as db:
            try:
                return await settlement_service.settle(db, topic_id, choice, admin)
            except AlreadySettled as e:
                return e

    async def scenario() -> None:
        async with get_db_session() as db:
            topic = await _staked_topic(db, make_topic)

        outcomes = await asyncio.gather(
            settle(topic.topic_id, "Team A"),
            settle(topic.topic_id, "Team B"),
            settle(topic.topic_id, "Team A"),
        )

        winners = [o for o in outcomes if not isinstance(o, AlreadySettled)]
        assert len(winners) == 1
        declared = winners[0].correct_choice

        async with get_db_session() as db:
            revealed = await topic_service.get(db, topic.topic_id)
            assert revealed.correct_choice == declared

            balances = [await points_ledger.get_balance(db, u) for u in (11, 12, 13, 14)]
            # Conservation: the pool of 60 was paid out exactly once
            assert sum(balances) == 4 * 1000
            if declared == "Team A":
                assert balances == [1010, 1010, 1010, 970]
            else:
                assert balances == [990, 990, 990, 1030]

    run_db(scenario)


def test_invalid_choice_changes_nothing(run_db, admin, make_topic) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            topic = await _staked_topic(db, make_topic)

            with pytest.raises(InvalidChoice):
                await settlement_service.settle(db, topic.topic_id, "Team C", admin)

            unchanged = await topic_service.get(db, topic.topic_id)
            assert unchanged.status == TopicStatus.ACTIVE.value
            assert unchanged.correct_choice is None
            assert await settlement_service.get_settlement(db, topic.topic_id) is None
            assert await points_ledger.get_balance(db, 11) == 990

    run_db(scenario)


def test_only_creator_or_admin_can_settle(run_db, make_topic) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            topic = await _staked_topic(db, make_topic)

            with pytest.raises(Forbidden):
                await settlement_service.settle(db, topic.topic_id, "Team A", Actor(user_id=11))

            unchanged = await topic_service.get(db, topic.topic_id)
            assert unchanged.status == TopicStatus.ACTIVE.value

            # The creator does not need the admin role
            result = await settlement_service.settle(
                db, topic.topic_id, "Team A", Actor(user_id=1)
            )
            assert result.settled_by == 1

    run_db(scenario)


def test_unknown_topic(run_db, admin) -> None:
    async def scenario() -> None:
        async with get_db_session() as db:
            with pytest.raises(NotFound):
                await settlement_service.settle(db, "topic_missing", "Team A", admin)

    run_db(scenario)


def test_failure_mid_payout_rolls_everything_back(run_db, admin, make_topic, monkeypatch) -> None:
    calls = []
    original_award_badge = points_ledger.award_badge

    async def flaky_award_badge(db, user_id, badge):
        calls.append(user_id)
        if len(calls) == 2:
            raise RuntimeError("storage went away")
        return await original_award_badge(db, user_id, badge)

    async def scenario() -> None:
        async with get_db_session() as db:
            topic = await _staked_topic(db, make_topic)

            monkeypatch.setattr(points_ledger, "award_badge", flaky_award_badge)
            with pytest.raises(RuntimeError):
                await settlement_service.settle(db, topic.topic_id, "Team A", admin)

            unchanged = await topic_service.get(db, topic.topic_id)
            assert unchanged.status == TopicStatus.ACTIVE.value
            assert await settlement_service.get_settlement(db, topic.topic_id) is None
            for user_id in (11, 12, 13):
                assert await points_ledger.get_balance(db, user_id) == 990
                history = await points_ledger.history(db, user_id)
                assert LedgerCause.PAYOUT.value not in [e.cause for e in history]

            result = await settlement_service.settle(db, topic.topic_id, "Team A", admin)
            assert result.total_credited == 60
            assert await points_ledger.get_balance(db, 11) == 1010

    run_db(scenario)
