"""
Free usage quota ledger

One row per identity holds the remaining free generations for the current
calendar month. All mutations are single conditional UPDATE statements so
that concurrent requests from the same identity cannot spend the same use
twice.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from halal_tools.core.config import get_settings
from halal_tools.core.errors import StorageError
from halal_tools.core.logging_config import LoggingConfig
from halal_tools.core.metrics import quota_decisions_total
from halal_tools.models.usage import UsageAccount
from halal_tools.utils.datetime_utils import month_start, utc_now

logger = LoggingConfig.get_logger(__name__)

UNLIMITED = "unlimited"


@dataclass(frozen=True)
class QuotaDecision:
    """Outcome of a quota check"""
    allowed: bool
    remaining: Union[int, str]

    @property
    def is_unlimited(self) -> bool:
        return self.remaining == UNLIMITED


class QuotaLedger:
    """
    Monthly free-use counter per identity

    Identities are opaque strings; callers use ``user:<id>`` for signed-in
    users and ``ip:<address>`` for anonymous ones.
    """

    def __init__(
        self,
        db: Session,
        max_free: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.max_free = get_settings().max_free_generations if max_free is None else max_free
        self.clock = clock

    def check_and_consume(
        self,
        identity: str,
        unlimited: bool = False,
        user_id: Optional[UUID] = None,
        with_rows: Sequence[object] = (),
    ) -> QuotaDecision:
        """
        Spend one free use for ``identity`` if any is left

        Args:
            identity: Quota key
            unlimited: True for premium users; nothing is spent
            user_id: Owner to link when the account is created
            with_rows: ORM objects committed in the same transaction as an
                allowed use; a denied use or a failed commit writes none
                of them and spends nothing

        Returns:
            QuotaDecision with the remaining count after this call
        """
        now = self.clock()
        try:
            if unlimited:
                self._commit_with(with_rows)
                return self._record(identity, QuotaDecision(True, UNLIMITED))

            account = self._get_account(identity)
            if account is None:
                created = self._create_account(identity, user_id, now, with_rows)
                if created is not None:
                    return self._record(identity, created)
                account = self._get_account(identity)
                if account is None:
                    raise StorageError(f"Usage account for {identity} could not be created")

            if account.is_unlimited:
                self._commit_with(with_rows)
                return self._record(identity, QuotaDecision(True, UNLIMITED))

            refilled = self.db.execute(
                update(UsageAccount)
                .where(
                    UsageAccount.id == account.id,
                    UsageAccount.last_reset < month_start(now),
                    UsageAccount.is_unlimited.is_(False),
                )
                .values(remaining_uses=self.max_free, last_reset=now)
                .execution_options(synchronize_session=False)
            ).rowcount
            if refilled:
                logger.info(
                    f"Monthly free uses restored for {identity}",
                    extra={"identity": identity, "remaining": self.max_free},
                )

            consumed = self.db.execute(
                update(UsageAccount)
                .where(UsageAccount.id == account.id, UsageAccount.remaining_uses > 0)
                .values(remaining_uses=UsageAccount.remaining_uses - 1, last_used_at=now)
                .execution_options(synchronize_session=False)
            ).rowcount

            if not consumed:
                self.db.commit()
                return self._record(identity, QuotaDecision(False, 0))

            remaining = self.db.execute(
                select(UsageAccount.remaining_uses).where(UsageAccount.id == account.id)
            ).scalar_one()
            self._commit_with(with_rows)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Quota update failed for {identity}: {e}",
                exc_info=True,
                extra={"identity": identity},
            )
            raise StorageError(f"Quota update failed for {identity}") from e

        return self._record(identity, QuotaDecision(True, remaining))

    def get_status(self, identity: str, unlimited: bool = False) -> QuotaDecision:
        """
        Current balance without spending anything

        An account whose last reset is in an earlier month reports a full
        balance; the refill itself is written by the next consume.
        """
        if unlimited:
            return QuotaDecision(True, UNLIMITED)

        account = self._get_account(identity)
        if account is None:
            return QuotaDecision(self.max_free > 0, self.max_free)
        if account.is_unlimited:
            return QuotaDecision(True, UNLIMITED)

        if account.last_reset < month_start(self.clock()):
            remaining = self.max_free
        else:
            remaining = account.remaining_uses
        return QuotaDecision(remaining > 0, remaining)

    def _get_account(self, identity: str) -> Optional[UsageAccount]:
        return self.db.execute(
            select(UsageAccount).where(UsageAccount.identity == identity)
        ).scalar_one_or_none()

    def _create_account(
        self,
        identity: str,
        user_id: Optional[UUID],
        now: datetime,
        with_rows: Sequence[object] = (),
    ) -> Optional[QuotaDecision]:
        """
        Insert a new account with the first use already spent

        Returns None when another request created the account first.
        """
        allowed = self.max_free > 0
        remaining = self.max_free - 1 if allowed else 0
        account = UsageAccount(
            identity=identity,
            user_id=user_id,
            remaining_uses=remaining,
            is_unlimited=False,
            last_reset=now,
            last_used_at=now if allowed else None,
            created_at=now,
        )
        self.db.add(account)
        try:
            self._commit_with(with_rows if allowed else ())
        except IntegrityError:
            self.db.rollback()
            logger.debug(f"Usage account for {identity} created concurrently")
            return None

        logger.info(
            f"Created usage account for {identity}",
            extra={"identity": identity, "remaining": remaining},
        )
        return QuotaDecision(allowed, remaining)

    def _commit_with(self, rows: Sequence[object]) -> None:
        self.db.add_all(rows)
        self.db.commit()

    def _record(self, identity: str, decision: QuotaDecision) -> QuotaDecision:
        if decision.is_unlimited:
            outcome = "unlimited"
        else:
            outcome = "allowed" if decision.allowed else "denied"
        quota_decisions_total.labels(outcome=outcome).inc()
        logger.debug(
            f"Quota {outcome} for {identity}",
            extra={"identity": identity, "remaining": decision.remaining},
        )
        return decision
