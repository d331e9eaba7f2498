from datetime import date, datetime, time
from decimal import Decimal

from pydantic import BaseModel, Field, field_serializer, field_validator

from divebook.domain.bookings.statuses import BookingStatus

MAX_NOTE_LENGTH = 1000


class BookingCreateRequest(BaseModel):
    center_id: str = Field(min_length=1, max_length=36)
    service_id: str = Field(min_length=1, max_length=36)
    booking_date: str
    time_slot: str
    participants: int = Field(ge=1)
    client_note: str | None = Field(None, max_length=MAX_NOTE_LENGTH)

    @field_validator("client_note")
    @classmethod
    def strip_note(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None


class BookingResponse(BaseModel):
    booking_id: str
    client_id: str
    center_id: str
    service_id: str | None = None
    booking_date: date
    time_slot: time
    participants: int
    unit_price: Decimal
    total_price: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    currency: str
    client_note: str | None = None
    status: BookingStatus
    created_at: datetime | None = None
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_serializer("time_slot")
    def serialize_time_slot(self, value: time) -> str:
        return value.strftime("%H:%M")


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]


class CheckoutResponse(BaseModel):
    booking_id: str
    checkout_url: str


class BookingStatusUpdateRequest(BaseModel):
    status: BookingStatus


class SlotAvailability(BaseModel):
    time_slot: str
    available: bool


class AvailabilityResponse(BaseModel):
    service_id: str
    date: date
    available: bool
    reason: str | None = None
    slots: list[SlotAvailability]
