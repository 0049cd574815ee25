from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

class UserCreate(BaseModel):
    email: str = Field(..., min_length=3, description="Login email of the account holder")
    full_name: Optional[str] = None

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: Optional[str] = None
    balance: Decimal = Field(..., ge=0, description="Spendable funds")
    is_email_verified: bool
    created_at: datetime

class ServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    external_id: str
    provider: str
    name: str
    description: Optional[str] = None
    category: str
    platform: str
    price_per_1000: Decimal
    min_quantity: int
    max_quantity: int
    is_active: bool

class QuoteResponse(BaseModel):
    service_id: UUID
    quantity: int
    charge: Decimal

class OrderCreate(BaseModel):
    service_id: UUID
    link: str = Field(..., description="Target URL the provider delivers to")
    quantity: int

class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    service_id: UUID
    link: str
    quantity: int
    charge: Decimal
    provider: str
    external_order_id: str
    start_count: int
    remains: int
    status: str
    progress: float = Field(0.0, description="Percent delivered, derived from remains")
    created_at: datetime
    updated_at: datetime

class RefreshResponse(BaseModel):
    order: OrderResponse
    updated: bool

class SweepResponse(BaseModel):
    checked: int
    updated: int

class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    ts: datetime
    user_id: UUID
    type: Literal["deposit", "order"]
    amount: Decimal
    status: Literal["pending", "completed", "failed"]
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None
    order_id: Optional[UUID] = None
    description: Optional[str] = None

class DepositRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_method: Literal["stripe", "paypal", "coinbase", "manual"]
    payment_id: Optional[str] = Field(
        default=None, description="Confirmation id issued by the payment processor"
    )

class StatementResponse(BaseModel):
    items: list[TransactionResponse]
    next_cursor: Optional[str] = None

class VerificationConfirm(BaseModel):
    token: str = Field(..., min_length=1)

class CatalogSyncResponse(BaseModel):
    fetched: int
    created: int
    updated: int
    skipped: int

class ProviderStatusResponse(BaseModel):
    name: str
    is_active: bool
    has_api_key: bool

class ProviderBalanceResponse(BaseModel):
    provider: str
    balance: Decimal
