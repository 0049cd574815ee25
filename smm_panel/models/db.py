from __future__ import annotations
from datetime import datetime, UTC
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4
from sqlmodel import Field, SQLModel

def _now() -> datetime:
    return datetime.now(UTC)

class User(SQLModel, table=True):
    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    email: str = Field(unique=True, index=True)
    full_name: Optional[str] = None
    balance: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=12, decimal_places=2)
    is_email_verified: bool = False
    created_at: datetime = Field(default_factory=_now)

class Service(SQLModel, table=True):
    __tablename__ = "services"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    external_id: str = Field(unique=True, index=True)
    provider: str
    name: str
    description: Optional[str] = None
    category: str = "other"
    platform: str = "instagram"
    price_per_1000: Decimal = Field(max_digits=14, decimal_places=4)
    min_quantity: int
    max_quantity: int
    is_active: bool = True
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    service_id: UUID = Field(foreign_key="services.id", index=True)
    link: str
    quantity: int
    charge: Decimal = Field(max_digits=12, decimal_places=2)
    provider: str
    external_order_id: str = Field(index=True)
    start_count: int = 0
    remains: int
    status: str = "pending"
    created_at: datetime = Field(default_factory=_now, index=True)
    updated_at: datetime = Field(default_factory=_now)

class Transaction(SQLModel, table=True):
    __tablename__ = "transactions"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    ts: datetime = Field(default_factory=_now, index=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    type: str
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    status: str
    payment_method: Optional[str] = None
    payment_id: Optional[str] = Field(default=None, index=True)
    order_id: Optional[UUID] = Field(default=None, foreign_key="orders.id")
    description: Optional[str] = None

class EmailVerification(SQLModel, table=True):
    __tablename__ = "email_verifications"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    token: str = Field(unique=True, index=True)
    expires_at: datetime
    verified_at: Optional[datetime] = None
