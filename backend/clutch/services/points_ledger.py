"""Points ledger: per-user balances backed by an append-only delta log."""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from clutch.config import get_settings
from clutch.database import run_in_transaction, utcnow
from clutch.exceptions import InsufficientBalance, ValidationError
from clutch.models import LedgerCause, LedgerEntry, PointAccount

logger = logging.getLogger(__name__)

FIRST_WIN_BADGE = "first_win"


class PointsLedgerService:
    """
    Owns every balance mutation.

    Each delta is written as a LedgerEntry attributed to a cause and an
    optional reference id, and the account balance is updated under a
    per-account row lock in the same transaction. Balances never go below
    zero: a delta that would overdraw is floored at zero unless the caller
    requires sufficient funds.

    ensure_account and apply_delta are complete units of work. The
    transaction participants below join the caller's transaction and never
    commit, so a stake or payout commits or rolls back together with the
    participation or settlement it belongs to.
    """

    async def get_account(
        self, db: AsyncSession, user_id: int
    ) -> Optional[PointAccount]:
        result = await db.execute(
            select(PointAccount).where(PointAccount.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_balance(self, db: AsyncSession, user_id: int) -> int:
        """Current balance, or the starting grant for an untouched account."""
        account = await self.get_account(db, user_id)
        if account is None:
            return get_settings().points.starting_grant
        return account.balance

    async def ensure_account(self, db: AsyncSession, user_id: int) -> PointAccount:
        """Create the account with its starting grant if it does not exist."""

        async def _op() -> PointAccount:
            await self.open_account(db, user_id)
            return await self.lock_account(db, user_id)

        return await run_in_transaction(db, _op, f"ensure account {user_id}")

    async def apply_delta(
        self,
        db: AsyncSession,
        user_id: int,
        delta: int,
        cause: LedgerCause = LedgerCause.ADJUSTMENT,
        reference_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> int:
        """
        Apply a signed delta and return the new balance.

        A delta already recorded for the same (cause, reference_id) is not
        applied again.
        """

        async def _op() -> int:
            await self.record_delta(db, user_id, delta, cause, reference_id, description)
            account = await self.get_account(db, user_id)
            return account.balance

        return await run_in_transaction(db, _op, f"apply delta to user {user_id}")

    async def history(
        self, db: AsyncSession, user_id: int, limit: int = 50
    ) -> list[LedgerEntry]:
        """Ledger entries for a user, most recent first."""
        result = await db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.user_id == user_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def replay_balance(self, db: AsyncSession, user_id: int) -> int:
        """Recompute a balance from the ledger alone."""
        entries = await db.execute(
            select(LedgerEntry.applied_delta).where(LedgerEntry.user_id == user_id)
        )
        return sum(entries.scalars().all())

    # ------------------------------------------------------------------
    # Transaction participants
    # ------------------------------------------------------------------

    async def open_account(self, db: AsyncSession, user_id: int) -> None:
        """Insert the account if missing; concurrent creators do not conflict."""
        grant = get_settings().points.starting_grant
        values = {
            "user_id": user_id,
            "balance": grant,
            "streak": 0,
            "badges": [],
            "created_at": utcnow(),
            "updated_at": utcnow(),
        }

        if db.get_bind().dialect.name == "postgresql":
            stmt = pg_insert(PointAccount.__table__)
        else:
            stmt = sqlite_insert(PointAccount.__table__)
        stmt = stmt.values(**values).on_conflict_do_nothing(index_elements=["user_id"])

        result = await db.execute(stmt)
        if result.rowcount:
            db.add(
                LedgerEntry(
                    user_id=user_id,
                    cause=LedgerCause.GRANT.value,
                    reference_id="signup",
                    requested_delta=grant,
                    applied_delta=grant,
                    balance_after=grant,
                    description="Starting grant",
                )
            )
            logger.info(f"Opened points account for user {user_id} with {grant} points")

    async def lock_account(self, db: AsyncSession, user_id: int) -> PointAccount:
        """
        Take the per-account write lock and return a fresh copy of the row.

        The no-op UPDATE acquires the write lock on every backend; FOR UPDATE
        additionally pins the row where supported.
        """
        await db.execute(
            update(PointAccount)
            .where(PointAccount.user_id == user_id)
            .values(updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(
            select(PointAccount)
            .where(PointAccount.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def record_delta(
        self,
        db: AsyncSession,
        user_id: int,
        delta: int,
        cause: LedgerCause,
        reference_id: Optional[str] = None,
        description: Optional[str] = None,
        require_funds: bool = False,
    ) -> Optional[LedgerEntry]:
        """
        Apply one attributable delta inside the caller's transaction.

        Returns the new LedgerEntry, or None when the same
        (cause, reference_id) was already applied.
        """
        if not isinstance(delta, int) or isinstance(delta, bool):
            raise ValidationError("Point deltas must be whole numbers")
        cause = LedgerCause(cause)

        await self.open_account(db, user_id)
        account = await self.lock_account(db, user_id)

        if reference_id is not None:
            existing = await db.execute(
                select(LedgerEntry.id).where(
                    LedgerEntry.user_id == user_id,
                    LedgerEntry.cause == cause.value,
                    LedgerEntry.reference_id == reference_id,
                )
            )
            if existing.first() is not None:
                logger.info(
                    f"Skipping replayed {cause.value} delta for user {user_id} ({reference_id})"
                )
                return None

        if require_funds and delta < 0 and account.balance < -delta:
            raise InsufficientBalance(
                f"Insufficient points: {account.balance} available, {-delta} required"
            )

        previous = account.balance
        new_balance = max(0, previous + delta)
        account.balance = new_balance

        entry = LedgerEntry(
            user_id=user_id,
            cause=cause.value,
            reference_id=reference_id,
            requested_delta=delta,
            applied_delta=new_balance - previous,
            balance_after=new_balance,
            description=description,
        )
        db.add(entry)
        await db.flush()

        logger.info(
            f"Ledger {cause.value} for user {user_id}: {delta:+d} "
            f"({previous} -> {new_balance}) ref={reference_id}"
        )
        return entry

    async def extend_streak(self, db: AsyncSession, user_id: int) -> None:
        """Extend the user's consecutive participation streak."""
        await self.open_account(db, user_id)
        account = await self.lock_account(db, user_id)
        account.streak += 1
        await db.flush()

    async def award_badge(self, db: AsyncSession, user_id: int, badge: str) -> bool:
        """Add a badge once. Returns True when newly awarded."""
        account = await self.lock_account(db, user_id)
        badges = list(account.badges or [])
        if badge in badges:
            return False
        account.badges = badges + [badge]
        await db.flush()
        logger.info(f"Awarded badge {badge!r} to user {user_id}")
        return True


# Singleton instance
points_ledger = PointsLedgerService()
