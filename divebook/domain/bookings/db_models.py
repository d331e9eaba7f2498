import uuid
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text, Time, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from divebook.domain.bookings.statuses import BookingStatus
from divebook.domain.centers.db_models import Center, Service
from divebook.infra.db import Base

ACTIVE_SLOT_PREDICATE = text("status <> 'cancelled' AND deleted_at IS NULL AND service_id IS NOT NULL")

booking_status_type = Enum(
    BookingStatus,
    name="booking_status",
    native_enum=False,
    length=16,
    values_callable=lambda statuses: [status.value for status in statuses],
    validate_strings=True,
)


class Booking(Base):
    __tablename__ = "bookings"

    booking_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    client_id: Mapped[str] = mapped_column(ForeignKey("profiles.profile_id"), nullable=False, index=True)
    center_id: Mapped[str] = mapped_column(ForeignKey("centers.center_id"), nullable=False, index=True)
    service_id: Mapped[str | None] = mapped_column(ForeignKey("services.service_id"), nullable=True)
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    time_slot: Mapped[time] = mapped_column(Time, nullable=False)
    participants: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    client_note: Mapped[str | None] = mapped_column(Text)
    status: Mapped[BookingStatus] = mapped_column(
        booking_status_type, nullable=False, default=BookingStatus.PENDING
    )
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
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    center: Mapped[Center] = relationship("Center")
    service: Mapped[Service | None] = relationship("Service")

    __table_args__ = (
        Index("ix_bookings_center_status", "center_id", "status"),
        Index("ix_bookings_service_date", "service_id", "booking_date"),
        Index(
            "uq_bookings_active_slot",
            "service_id",
            "booking_date",
            "time_slot",
            unique=True,
            postgresql_where=ACTIVE_SLOT_PREDICATE,
            sqlite_where=ACTIVE_SLOT_PREDICATE,
        ),
    )
