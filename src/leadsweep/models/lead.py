"""Lead SQLAlchemy model for storing qualified businesses without a website."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from . import Base


class LeadStatus(str, Enum):
    """Status of a lead in the outreach lifecycle."""

    NEW = "new"
    CONTACTED = "contacted"
    CONVERTED = "converted"


class Lead(Base):
    """SQLAlchemy model representing a qualified business lead.

    Leads are deduplicated on the (name, address) pair; a second sighting of
    the same business is an insert no-op.

    Attributes:
        id: Autoincrement identifier.
        name: Sanitized business name.
        category: Business category as reported by the extractor.
        address: Full street address.
        phone: Normalized phone number.
        email: Contact email, when the extractor found one.
        has_website: Whether the business already has a website.
        rating: Star rating (0.0-5.0).
        review_count: Number of reviews.
        priority_score: Outreach priority (0-100).
        status: Lifecycle status (new, contacted, converted).
        latitude, longitude: Location, when known.
        last_contacted_at: When the last outreach message succeeded.
        last_delivery_error: Mailer error from the last failed send.
        last_delivery_attempt_at: When the last failed send was attempted.
        created_at: Timestamp when the lead was first seen.
        updated_at: Timestamp when the lead was last updated.
    """

    __tablename__ = "leads"
    __table_args__ = (
        UniqueConstraint("name", "address", name="uq_leads_name_address"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    has_website: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    rating: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment="Star rating (0.0-5.0)"
    )
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    priority_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        index=True
    )

    status: Mapped[LeadStatus] = mapped_column(
        SQLEnum(LeadStatus, name="lead_status"),
        nullable=False,
        default=LeadStatus.NEW,
        index=True
    )

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_delivery_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    last_contacted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_delivery_attempt_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        """Return string representation of the lead."""
        return f"<Lead(id={self.id!r}, name={self.name!r}, status={self.status.value!r})>"

    def to_dict(self) -> dict:
        """Convert lead to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "has_website": self.has_website,
            "rating": self.rating,
            "review_count": self.review_count,
            "priority_score": self.priority_score,
            "status": self.status.value,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "last_contacted_at": (
                self.last_contacted_at.isoformat() if self.last_contacted_at else None
            ),
            "last_delivery_error": self.last_delivery_error,
            "last_delivery_attempt_at": (
                self.last_delivery_attempt_at.isoformat()
                if self.last_delivery_attempt_at
                else None
            ),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
