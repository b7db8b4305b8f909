"""
Tests for the free usage quota ledger
"""
import threading
from datetime import datetime

import pytest
from sqlalchemy import event, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from halal_tools.core.database import build_engine
from halal_tools.core.errors import StorageError
from halal_tools.models import Base
from halal_tools.models.usage import ContractGeneration, UsageAccount
from halal_tools.services.quota_ledger import UNLIMITED, QuotaDecision, QuotaLedger


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _account(db, identity):
    db.expire_all()
    return db.execute(select(UsageAccount).where(UsageAccount.identity == identity)).scalar_one()


def test_fresh_identity_counts_down_then_denies(db):
    ledger = QuotaLedger(db, max_free=5)

    decisions = [ledger.check_and_consume("ip:10.0.0.1") for _ in range(6)]

    assert [d.remaining for d in decisions[:5]] == [4, 3, 2, 1, 0]
    assert all(d.allowed for d in decisions[:5])
    assert decisions[5] == QuotaDecision(False, 0)
    assert _account(db, "ip:10.0.0.1").remaining_uses == 0


def test_identities_are_independent(db):
    ledger = QuotaLedger(db, max_free=2)
    ledger.check_and_consume("ip:1.1.1.1")
    ledger.check_and_consume("ip:1.1.1.1")

    assert not ledger.check_and_consume("ip:1.1.1.1").allowed
    assert ledger.check_and_consume("ip:2.2.2.2") == QuotaDecision(True, 1)


def test_monthly_reset(db):
    db.add(UsageAccount(
        identity="user:abc",
        remaining_uses=0,
        last_reset=datetime(2020, 1, 15),
    ))
    db.commit()
    ledger = QuotaLedger(db, max_free=5, clock=FixedClock(datetime(2020, 2, 1, 0, 0, 1)))

    decision = ledger.check_and_consume("user:abc")

    assert decision == QuotaDecision(True, 4)
    account = _account(db, "user:abc")
    assert account.last_reset == datetime(2020, 2, 1, 0, 0, 1)
    assert account.remaining_uses == 4


def test_no_reset_within_same_month(db):
    db.add(UsageAccount(identity="ip:3.3.3.3", remaining_uses=0, last_reset=datetime(2024, 5, 1)))
    db.commit()
    ledger = QuotaLedger(db, max_free=5, clock=FixedClock(datetime(2024, 5, 31, 23, 59)))

    assert ledger.check_and_consume("ip:3.3.3.3") == QuotaDecision(False, 0)


def test_reset_across_year_boundary(db):
    db.add(UsageAccount(identity="ip:4.4.4.4", remaining_uses=0, last_reset=datetime(2023, 12, 31, 23)))
    db.commit()
    ledger = QuotaLedger(db, max_free=3, clock=FixedClock(datetime(2024, 1, 1, 1)))

    assert ledger.check_and_consume("ip:4.4.4.4") == QuotaDecision(True, 2)


def test_premium_never_decrements(db):
    ledger = QuotaLedger(db, max_free=1)

    for _ in range(3):
        decision = ledger.check_and_consume("user:premium", unlimited=True)
        assert decision.allowed
        assert decision.remaining == UNLIMITED

    assert db.execute(select(UsageAccount)).first() is None


def test_unlimited_account_flag(db):
    db.add(UsageAccount(identity="user:vip", remaining_uses=0, is_unlimited=True))
    db.commit()
    ledger = QuotaLedger(db, max_free=5)

    assert ledger.check_and_consume("user:vip") == QuotaDecision(True, UNLIMITED)
    assert _account(db, "user:vip").remaining_uses == 0


def test_zero_allowance_denies_first_request(db):
    ledger = QuotaLedger(db, max_free=0)
    assert ledger.check_and_consume("ip:5.5.5.5") == QuotaDecision(False, 0)
    assert ledger.check_and_consume("ip:5.5.5.5") == QuotaDecision(False, 0)


def test_get_status_does_not_spend(db):
    ledger = QuotaLedger(db, max_free=5)
    assert ledger.get_status("ip:6.6.6.6") == QuotaDecision(True, 5)

    ledger.check_and_consume("ip:6.6.6.6")
    assert ledger.get_status("ip:6.6.6.6") == QuotaDecision(True, 4)
    assert ledger.get_status("ip:6.6.6.6") == QuotaDecision(True, 4)
    assert ledger.get_status("user:x", unlimited=True).remaining == UNLIMITED


def test_get_status_reports_refill_for_previous_month(db):
    db.add(UsageAccount(identity="ip:7.7.7.7", remaining_uses=0, last_reset=datetime(2020, 1, 1)))
    db.commit()
    ledger = QuotaLedger(db, max_free=5, clock=FixedClock(datetime(2020, 3, 10)))

    assert ledger.get_status("ip:7.7.7.7") == QuotaDecision(True, 5)
    assert _account(db, "ip:7.7.7.7").remaining_uses == 0


def test_links_user_on_create(db):
    from halal_tools.models.user import User

    user = User(email="linked@example.com", password_hash="x")
    db.add(user)
    db.commit()

    QuotaLedger(db, max_free=5).check_and_consume(user.quota_identity, user_id=user.id)
    assert _account(db, user.quota_identity).user_id == user.id


@pytest.mark.parametrize("remaining, attempts", [(3, 8), (0, 4)])
def test_concurrent_consumes_never_overspend(tmp_path, remaining, attempts):
    """Each thread has its own connection; exactly ``remaining`` may succeed"""
    engine = build_engine(f"sqlite:///{tmp_path / 'quota.db'}")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with Session() as setup:
        setup.add(UsageAccount(identity="ip:9.9.9.9", remaining_uses=remaining))
        setup.commit()

    barrier = threading.Barrier(attempts)
    results = []
    errors = []
    lock = threading.Lock()

    def worker():
        session = Session()
        try:
            barrier.wait()
            decision = QuotaLedger(session, max_free=5).check_and_consume("ip:9.9.9.9")
            with lock:
                results.append(decision)
        except Exception as e:
            with lock:
                errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(attempts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert sum(1 for d in results if d.allowed) == remaining
    assert sorted(d.remaining for d in results if d.allowed) == list(range(remaining))

    with Session() as check:
        account = check.execute(
            select(UsageAccount).where(UsageAccount.identity == "ip:9.9.9.9")
        ).scalar_one()
        assert account.remaining_uses == 0
    engine.dispose()


def _generation(identity):
    return ContractGeneration(identity=identity, contract_type="NDA", used_fields={})


def _generation_count(db):
    return db.execute(select(func.count(ContractGeneration.id))).scalar_one()


@pytest.fixture
def failing_generation_insert(db):
    """Make any flush that inserts a ContractGeneration fail"""
    def before_flush(session, flush_context, instances):
        if any(isinstance(obj, ContractGeneration) for obj in session.new):
            raise OperationalError("INSERT INTO contract_generations", {}, Exception("disk I/O error"))

    event.listen(db, "before_flush", before_flush)
    yield
    event.remove(db, "before_flush", before_flush)


def test_rows_committed_with_allowed_use(db):
    ledger = QuotaLedger(db, max_free=2)

    ledger.check_and_consume("ip:10.0.0.9", with_rows=[_generation("ip:10.0.0.9")])
    ledger.check_and_consume("ip:10.0.0.9", with_rows=[_generation("ip:10.0.0.9")])
    denied = ledger.check_and_consume("ip:10.0.0.9", with_rows=[_generation("ip:10.0.0.9")])

    assert not denied.allowed
    assert _generation_count(db) == 2


def test_rows_committed_for_premium(db):
    QuotaLedger(db, max_free=2).check_and_consume(
        "user:premium", unlimited=True, with_rows=[_generation("user:premium")]
    )
    assert _generation_count(db) == 1


def test_failed_row_write_on_new_account_spends_nothing(db, failing_generation_insert):
    ledger = QuotaLedger(db, max_free=5)

    with pytest.raises(StorageError):
        ledger.check_and_consume("ip:10.0.0.8", with_rows=[_generation("ip:10.0.0.8")])

    assert db.execute(select(UsageAccount)).first() is None
    assert _generation_count(db) == 0


def test_failed_row_write_on_existing_account_spends_nothing(db, failing_generation_insert):
    ledger = QuotaLedger(db, max_free=5)
    ledger.check_and_consume("ip:10.0.0.7")

    with pytest.raises(StorageError):
        ledger.check_and_consume("ip:10.0.0.7", with_rows=[_generation("ip:10.0.0.7")])

    assert _account(db, "ip:10.0.0.7").remaining_uses == 4
    assert _generation_count(db) == 0
