import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from divebook.infra.db import Base

PROFILE_ROLE_DIVER = "diver"
PROFILE_ROLE_ADMIN = "admin_diver"

CENTER_ROLE_OWNER = "owner"
CENTER_ROLE_STAFF = "staff"

DEFAULT_MAX_CAPACITY = 20
DEFAULT_MIN_PARTICIPANTS = 1


class Profile(Base):
    __tablename__ = "profiles"

    profile_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=PROFILE_ROLE_DIVER)
    display_name: Mapped[str | None] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class Center(Base):
    __tablename__ = "centers"

    center_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    owner_id: Mapped[str] = mapped_column(ForeignKey("profiles.profile_id"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    currency: Mapped[str | None] = mapped_column(String(3), default="EUR")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    stripe_account_id: Mapped[str | None] = mapped_column(String(255), index=True)
    stripe_onboarding_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    services: Mapped[list["Service"]] = relationship("Service", back_populates="center")

    @property
    def has_connected_account(self) -> bool:
        return bool(self.stripe_account_id) and bool(self.stripe_onboarding_complete)


class CenterMember(Base):
    __tablename__ = "center_members"

    profile_id: Mapped[str] = mapped_column(ForeignKey("profiles.profile_id"), primary_key=True)
    center_id: Mapped[str] = mapped_column(
        ForeignKey("centers.center_id", ondelete="CASCADE"), primary_key=True
    )
    role_in_center: Mapped[str] = mapped_column(String(32), nullable=False, default=CENTER_ROLE_STAFF)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (Index("ix_center_members_center", "center_id"),)


class Service(Base):
    __tablename__ = "services"

    service_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    center_id: Mapped[str] = mapped_column(ForeignKey("centers.center_id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    max_capacity: Mapped[int | None] = mapped_column(Integer)
    min_participants: Mapped[int | None] = mapped_column(Integer)
    is_active: Mapped[bool | None] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    center: Mapped[Center] = relationship("Center", back_populates="services")

    @property
    def capacity_bounds(self) -> tuple[int, int]:
        minimum = self.min_participants if self.min_participants is not None else DEFAULT_MIN_PARTICIPANTS
        maximum = self.max_capacity if self.max_capacity is not None else DEFAULT_MAX_CAPACITY
        return minimum, maximum


class BlockedDate(Base):
    __tablename__ = "blocked_dates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    center_id: Mapped[str] = mapped_column(
        ForeignKey("centers.center_id", ondelete="CASCADE"), nullable=False
    )
    blocked_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("center_id", "blocked_date", name="uq_blocked_dates_center_date"),
    )
