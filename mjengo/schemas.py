from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime


class EntitlementStatus(BaseModel):
    email: str
    subscription_active: bool = False
    subscription_expires: Optional[datetime] = None
    token_balance: int = 0
    calculations_used: int = 0
    free_limit: int
    free_remaining: int


class SendCodeRequest(BaseModel):
    email: str


class VerifyCodeRequest(BaseModel):
    email: str
    code: str


class SessionResponse(BaseModel):
    success: bool = True
    message: str
    email: str
    session_token: str
    expires_at: datetime


class PayRequest(BaseModel):
    email: str
    amount: int = Field(gt=0)  # Major units (KES)


class ChargeResponse(BaseModel):
    success: bool = True
    authorization_url: str
    reference: str


# --- Paystack webhook payload ---

class PaystackCustomField(BaseModel):
    display_name: Optional[str] = None
    variable_name: Optional[str] = None
    value: Optional[str] = None


class PaystackMetadata(BaseModel):
    payment_type: Optional[str] = None
    custom_fields: List[PaystackCustomField] = []

    class Config:
        extra = "allow"


class PaystackCustomer(BaseModel):
    email: str


class PaystackChargeData(BaseModel):
    reference: str = Field(min_length=1)
    amount: int = Field(ge=0)  # Minor units
    customer: PaystackCustomer
    metadata: Optional[PaystackMetadata] = None

    @field_validator("metadata", mode="before")
    @classmethod
    def _blank_metadata(cls, value):
        # Paystack sends "" or 0 when a charge was initialized without metadata
        return value if isinstance(value, dict) else None


class PaystackEvent(BaseModel):
    event: str
    data: PaystackChargeData


# --- Calculators ---

class LineItem(BaseModel):
    description: str
    quantity: float
    unit: str
    unit_price: float
    cost: float


class CalculationResult(BaseModel):
    calculator: str
    inputs: dict
    line_items: List[LineItem]
    materials_cost: float
    labor_cost: float
    total_cost: float
    calculations_used: Optional[int] = None
