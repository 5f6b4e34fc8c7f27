"""
tests/conftest.py

Shared fixtures: an in-memory SQLite CRM store and row factories.

SQLite stands in for PostgreSQL here; every query the metric source and
the target repository issue is portable SQLAlchemy Core.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  registers leads/deals/targets on Base.metadata
from db.base import Base
from db.models.deal import Deal
from db.models.lead import Lead, LeadStatus
from db.models.target import Target
from db.repositories.target_repository import TargetRepository


def utc(year: int, month: int, day: int, hour: int = 12, minute: int = 0, second: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


@pytest.fixture()
def engine() -> Iterator[Engine]:
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session(engine: Engine) -> Iterator[Session]:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    db = factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def make_lead(session: Session) -> Callable[..., Lead]:
    def _make(
        *,
        created_at: datetime,
        company_id: int = 7,
        source: str | None = "web",
        status: str = LeadStatus.NEW,
        campaign: str | None = None,
        assigned_to_id: int | None = None,
        name: str = "Lead",
    ) -> Lead:
        lead = Lead(
            company_id=company_id,
            name=name,
            source=source,
            status=status,
            campaign=campaign,
            assigned_to_id=assigned_to_id,
            created_at=created_at,
            updated_at=created_at,
        )
        session.add(lead)
        session.flush()
        return lead

    return _make


@pytest.fixture()
def make_deal(session: Session) -> Callable[..., Deal]:
    def _make(
        lead: Lead,
        *,
        stage: str,
        amount: float,
        created_at: datetime,
        assigned_to: int | None = None,
        company_id: int | None = None,
    ) -> Deal:
        deal = Deal(
            company_id=lead.company_id if company_id is None else company_id,
            lead_id=lead.id,
            title=f"Deal for lead {lead.id}",
            amount=amount,
            currency="USD",
            stage=stage,
            assigned_to=assigned_to,
            created_at=created_at,
            updated_at=created_at,
        )
        session.add(deal)
        session.flush()
        return deal

    return _make


@pytest.fixture()
def make_target(session: Session) -> Callable[..., Target]:
    def _make(
        *,
        target_type: str,
        target_value: float,
        start_date: datetime,
        end_date: datetime,
        company_id: int = 7,
        name: str = "Target",
        period: str = "monthly",
        user_id: int | None = None,
        team_id: int | None = None,
        status: str = "active",
    ) -> Target:
        target = TargetRepository(session).add(
            company_id=company_id,
            name=name,
            target_type=target_type,
            target_value=target_value,
            start_date=start_date,
            end_date=end_date,
            period=period,
            user_id=user_id,
            team_id=team_id,
            status=status,
        )
        session.commit()
        return target

    return _make


@pytest.fixture()
def seeded_crm(
    session: Session,
    make_lead: Callable[..., Lead],
    make_deal: Callable[..., Deal],
) -> dict[str, Lead]:
    """
    Company 7, January 2024.

    ===== ========= ============= ========== ======== ============
    lead  source    status        campaign   assignee created
    ===== ========= ============= ========== ======== ============
    L1    web       new           spring     1        Jan 05 10:00
    L2    web       qualified     spring     1        Jan 05 15:00
    L3    referral  qualified     -          2        Jan 10
    L4    -         contacted     -          -        Jan 20
    L6    web       new           -          -        Dec 20 2023
    ===== ========= ============= ========== ======== ============

    Deals: L1 won 1000 (Jan 06, user 1), L1 won 500 (Jan 07, user 1),
    L2 lost 300 (Jan 08, user 1), L3 proposal 2000 (Jan 11, user 2),
    L3 won 700 (Jan 25, user 2), L6 won 9999 (Dec 21 2023).
    Company 8 owns one extra lead on Jan 05.
    """
    l1 = make_lead(created_at=utc(2024, 1, 5, 10), campaign="spring", assigned_to_id=1)
    l2 = make_lead(
        created_at=utc(2024, 1, 5, 15),
        status=LeadStatus.QUALIFIED,
        campaign="spring",
        assigned_to_id=1,
    )
    l3 = make_lead(
        created_at=utc(2024, 1, 10),
        source="referral",
        status=LeadStatus.QUALIFIED,
        assigned_to_id=2,
    )
    l4 = make_lead(created_at=utc(2024, 1, 20), source=None, status=LeadStatus.CONTACTED)
    make_lead(created_at=utc(2024, 1, 5), company_id=8)
    l6 = make_lead(created_at=utc(2023, 12, 20))

    make_deal(l1, stage="won", amount=1000.0, created_at=utc(2024, 1, 6), assigned_to=1)
    make_deal(l1, stage="won", amount=500.0, created_at=utc(2024, 1, 7), assigned_to=1)
    make_deal(l2, stage="lost", amount=300.0, created_at=utc(2024, 1, 8), assigned_to=1)
    make_deal(l3, stage="proposal", amount=2000.0, created_at=utc(2024, 1, 11), assigned_to=2)
    make_deal(l3, stage="won", amount=700.0, created_at=utc(2024, 1, 25), assigned_to=2)
    make_deal(l6, stage="won", amount=9999.0, created_at=utc(2023, 12, 21))
    session.commit()

    return {"L1": l1, "L2": l2, "L3": l3, "L4": l4, "L6": l6}
