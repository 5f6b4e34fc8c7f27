"""
db/models/lead.py

Read-side mapping of the CRM ``leads`` table.

Lead CRUD lives outside this engine; only the columns the analytics
queries filter or group on are mapped here.
"""

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class LeadStatus:
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    DISQUALIFIED = "disqualified"


class Lead(Base, TimestampMixin):
    __tablename__ = "leads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="Acquisition channel, e.g. website, referral",
    )
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=LeadStatus.NEW)
    campaign: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Campaign the lead was captured under",
    )
    assigned_to_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_leads_company_created", "company_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Lead id={self.id} company_id={self.company_id} status={self.status!r}>"
