from pydantic import BaseModel, Field


class ConnectRequest(BaseModel):
    center_id: str = Field(min_length=1, max_length=36)


class ConnectResponse(BaseModel):
    center_id: str
    account_id: str
    onboarding_url: str


class PayoutConfig(BaseModel):
    center_id: str
    name: str
    currency: str | None = None
    stripe_account_id: str | None = None
    onboarding_complete: bool


class PayoutConfigListResponse(BaseModel):
    centers: list[PayoutConfig]
    supported_currencies: list[str]


class PayoutConfigUpdateRequest(BaseModel):
    center_id: str = Field(min_length=1, max_length=36)
    currency: str = Field(min_length=3, max_length=3)
