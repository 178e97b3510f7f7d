from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from voucher_engine.core.database import Base
from voucher_engine.models.experience import Experience
from voucher_engine.models.voucher import Voucher
from voucher_engine.services.notifications import EngineEvent
from voucher_engine.services.redemption import redeem_voucher
from voucher_engine.services.voucher_issuer import issue_voucher

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
USER_ID = "user-1"


def make_session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine, sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[EngineEvent] = []

    def publish(self, event: EngineEvent) -> None:
        self.events.append(event)


def add_experience(db, *, experience_id: str = "E1", price: Decimal = Decimal("300.00"), is_active: bool = True) -> Experience:
    experience = Experience(id=experience_id, title=f"Experience {experience_id}", price=price, is_active=is_active)
    db.add(experience)
    db.commit()
    return experience


def issue_active_voucher(db, *, experience_id: str = "E1", now: datetime = NOW, **kwargs) -> Voucher:
    if db.query(Experience).filter(Experience.id == experience_id).first() is None:
        add_experience(db, experience_id=experience_id)
    result = issue_voucher(db, experience_id=experience_id, owner_user_id=USER_ID, now=now, **kwargs)
    assert result.success, result
    return result.voucher


def confirmed_booking(db, *, booking_in: timedelta, now: datetime = NOW, publisher=None) -> str:
    voucher = issue_active_voucher(db, now=now)
    result = redeem_voucher(
        db,
        voucher_id=voucher.id,
        user_id=USER_ID,
        booking_date=now + booking_in,
        participants=2,
        now=now,
        publisher=publisher or RecordingPublisher(),
    )
    assert result.success, result
    return result.booking_id
