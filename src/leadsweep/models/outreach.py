"""Outreach history and suppression models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from . import Base


class OutreachKind(str, Enum):
    """Stage of the outreach cadence a message belongs to."""

    INITIAL = "initial"
    FOLLOWUP1 = "followup1"
    FOLLOWUP2 = "followup2"

    @property
    def sequence(self) -> int:
        """Number of events a lead has once this kind has been sent."""
        return _SEQUENCE[self]

    @property
    def previous(self) -> Optional["OutreachKind"]:
        """Kind that must have been sent before this one."""
        return _PREVIOUS[self]


_SEQUENCE = {
    OutreachKind.INITIAL: 1,
    OutreachKind.FOLLOWUP1: 2,
    OutreachKind.FOLLOWUP2: 3,
}

_PREVIOUS = {
    OutreachKind.INITIAL: None,
    OutreachKind.FOLLOWUP1: OutreachKind.INITIAL,
    OutreachKind.FOLLOWUP2: OutreachKind.FOLLOWUP1,
}


class OutreachEvent(Base):
    """Immutable record of one message delivered to one lead.

    At most one event of each kind exists per lead.

    Attributes:
        id: Autoincrement identifier.
        lead_id: Lead the message was sent to.
        kind: Cadence stage (initial, followup1, followup2).
        subject: Rendered subject line.
        reference: Mailer message reference, when reported.
        sent_at: Delivery timestamp.
    """

    __tablename__ = "outreach_events"
    __table_args__ = (
        UniqueConstraint("lead_id", "kind", name="uq_outreach_events_lead_kind"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lead_id: Mapped[int] = mapped_column(
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    kind: Mapped[OutreachKind] = mapped_column(
        SQLEnum(OutreachKind, name="outreach_kind"),
        nullable=False
    )
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        index=True
    )

    def __repr__(self) -> str:
        return f"<OutreachEvent(lead_id={self.lead_id!r}, kind={self.kind.value!r})>"

    def to_dict(self) -> dict:
        """Convert event to dictionary representation."""
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "kind": self.kind.value,
            "subject": self.subject,
            "reference": self.reference,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
        }


class Unsubscribe(Base):
    """Permanent suppression marker for a lead."""

    __tablename__ = "unsubscribes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lead_id: Mapped[int] = mapped_column(
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    unsubscribed_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Unsubscribe(lead_id={self.lead_id!r})>"
