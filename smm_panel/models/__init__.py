from .db import EmailVerification as EmailVerificationModel
from .db import Order as OrderModel
from .db import Service as ServiceModel
from .db import Transaction as TransactionModel
from .db import User as UserModel
from .schemas import (
    CatalogSyncResponse,
    DepositRequest,
    OrderCreate,
    OrderResponse,
    ProviderBalanceResponse,
    ProviderStatusResponse,
    QuoteResponse,
    RefreshResponse,
    ServiceResponse,
    StatementResponse,
    SweepResponse,
    TransactionResponse,
    UserCreate,
    UserResponse,
    VerificationConfirm,
)

__all__ = [
    "CatalogSyncResponse",
    "DepositRequest",
    "OrderCreate",
    "OrderResponse",
    "ProviderBalanceResponse",
    "ProviderStatusResponse",
    "QuoteResponse",
    "RefreshResponse",
    "ServiceResponse",
    "StatementResponse",
    "SweepResponse",
    "TransactionResponse",
    "UserCreate",
    "UserResponse",
    "VerificationConfirm",
    "EmailVerificationModel",
    "OrderModel",
    "ServiceModel",
    "TransactionModel",
    "UserModel",
]
