"""Usage tracking model."""

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, Integer, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, utcnow
from app.models.types import JSONType


class UsageRecord(Base):
    """Usage counter per user, feature and billing period."""

    __tablename__ = "usage_tracking"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    feature_name: Mapped[str] = mapped_column(String(100), nullable=False)
    usage_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Period (monthly billing)
    billing_period_start: Mapped[date] = mapped_column(Date, nullable=False)  # First day of month

    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Context sent with the most recent increment
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "feature_name",
            "usage_type",
            "billing_period_start",
            name="uq_usage_tracking_user_feature_period",
        ),
    )
