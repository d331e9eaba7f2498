from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from divebook.domain.bookings.statuses import BookingStatus

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


class CommissionEntry(BaseModel):
    booking_id: str
    booking_date: date
    total_price: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    currency: str
    status: BookingStatus

    model_config = {"from_attributes": True}


class CommissionListResponse(BaseModel):
    center_id: str
    commissions: list[CommissionEntry]


class PaymentEntry(BaseModel):
    transaction_id: str
    booking_id: str
    stripe_payment_intent_id: str
    amount: Decimal
    platform_fee: Decimal
    vendor_amount: Decimal
    currency: str
    status: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class PaymentListResponse(BaseModel):
    center_id: str
    payments: list[PaymentEntry]


class RevenueResponse(BaseModel):
    center_id: str
    currency: str
    total_revenue: Decimal
    total_commission: Decimal
    net_revenue: Decimal
    pending_revenue: Decimal
    completed_revenue: Decimal
    transaction_count: int


class PayoutRequest(BaseModel):
    center_id: str = Field(min_length=1, max_length=36)
    amount: Decimal
    currency: str | None = Field(None, min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value: str | None) -> str | None:
        return value.strip().upper() if value else None


class PayoutResponse(BaseModel):
    center_id: str
    transfer_id: str
    amount: Decimal
    currency: str
