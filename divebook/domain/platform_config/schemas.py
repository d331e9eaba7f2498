from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class SettingResponse(BaseModel):
    key: str
    value: str
    category: str
    is_secret: bool
    description: str | None = None
    updated_at: datetime | None = None
    updated_by: str | None = None


class SettingUpdateRequest(BaseModel):
    value: str = Field(min_length=1, max_length=4000)


class CommissionConfigResponse(BaseModel):
    commission_rate: Decimal


class CommissionConfigUpdateRequest(BaseModel):
    commission_rate: Decimal = Field(ge=0, le=100)
