from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ..core.dependencies import (
    get_catalog_sync,
    get_current_user,
    get_ledger_store,
    get_order_orchestrator,
    get_provider_gateway,
    get_reconciliation_sweeper,
    get_user_service,
    get_verification_service,
    require_admin,
)
from ..models import (
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
    UserModel,
    UserResponse,
    VerificationConfirm,
)
from ..services import (
    CatalogSync,
    EmailVerificationService,
    LedgerStore,
    OrderOrchestrator,
    ProviderGateway,
    ReconciliationSweeper,
    UserService,
)
from ..services.orders import order_to_response


user_router = APIRouter(tags=["users"])

@user_router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: UserCreate,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return service.register(payload)

@user_router.get("/users/me", response_model=UserResponse)
def read_current_user(
    user: UserModel = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return service.get_user(user.id)

@user_router.post("/users/me/verification", status_code=status.HTTP_202_ACCEPTED)
def request_verification(
    user: UserModel = Depends(get_current_user),
    service: EmailVerificationService = Depends(get_verification_service),
) -> dict[str, str]:
    verification = service.request(user)
    return {"status": "sent", "expires_at": verification.expires_at.isoformat()}

@user_router.post("/verification/confirm", response_model=UserResponse)
def confirm_verification(
    payload: VerificationConfirm,
    service: EmailVerificationService = Depends(get_verification_service),
) -> UserResponse:
    return UserResponse.model_validate(service.confirm(payload.token))


catalog_router = APIRouter(prefix="/services", tags=["services"])

@catalog_router.get("", response_model=list[ServiceResponse])
def list_services(
    platform: Optional[str] = None,
    category: Optional[str] = None,
    catalog: CatalogSync = Depends(get_catalog_sync),
) -> list[ServiceResponse]:
    return catalog.list_services(platform=platform, category=category)

@catalog_router.get("/{service_id}/quote", response_model=QuoteResponse)
def quote_service(
    service_id: UUID,
    quantity: int = Query(..., ge=1),
    orchestrator: OrderOrchestrator = Depends(get_order_orchestrator),
) -> QuoteResponse:
    return orchestrator.quote(service_id, quantity)


order_router = APIRouter(prefix="/orders", tags=["orders"])

@order_router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def place_order(
    payload: OrderCreate,
    user: UserModel = Depends(get_current_user),
    orchestrator: OrderOrchestrator = Depends(get_order_orchestrator),
) -> OrderResponse:
    return orchestrator.place_order(user.id, payload)

@order_router.get("", response_model=list[OrderResponse])
def list_orders(
    user: UserModel = Depends(get_current_user),
    orchestrator: OrderOrchestrator = Depends(get_order_orchestrator),
) -> list[OrderResponse]:
    return orchestrator.list_orders(user.id)

@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: UUID,
    user: UserModel = Depends(get_current_user),
    orchestrator: OrderOrchestrator = Depends(get_order_orchestrator),
) -> OrderResponse:
    return orchestrator.get_order(user.id, order_id)

@order_router.post("/{order_id}/refresh", response_model=RefreshResponse)
def refresh_order(
    order_id: UUID,
    user: UserModel = Depends(get_current_user),
    orchestrator: OrderOrchestrator = Depends(get_order_orchestrator),
    sweeper: ReconciliationSweeper = Depends(get_reconciliation_sweeper),
) -> RefreshResponse:
    order = orchestrator.get_order_model(user.id, order_id)
    updated = sweeper.refresh_order(order)
    return RefreshResponse(order=order_to_response(order), updated=updated)


wallet_router = APIRouter(prefix="/wallet", tags=["wallet"])

@wallet_router.get("/transactions", response_model=StatementResponse)
def get_statement(
    limit: int = Query(50, ge=1, le=500),
    cursor: str | None = None,
    user: UserModel = Depends(get_current_user),
    ledger: LedgerStore = Depends(get_ledger_store),
) -> StatementResponse:
    return ledger.get_statement(user.id, limit=limit, cursor=cursor)

@wallet_router.post("/deposits", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_deposit(
    payload: DepositRequest,
    user: UserModel = Depends(get_current_user),
    ledger: LedgerStore = Depends(get_ledger_store),
) -> TransactionResponse:
    return ledger.create_deposit(user.id, payload)


admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

@admin_router.post("/catalog/sync", response_model=CatalogSyncResponse)
def sync_catalog(catalog: CatalogSync = Depends(get_catalog_sync)) -> CatalogSyncResponse:
    return catalog.sync()

@admin_router.post("/services/{service_id}/deactivate", response_model=ServiceResponse)
def deactivate_service(
    service_id: UUID,
    catalog: CatalogSync = Depends(get_catalog_sync),
) -> ServiceResponse:
    return catalog.deactivate(service_id)

@admin_router.post("/orders/refresh", response_model=SweepResponse)
def sweep_open_orders(
    sweeper: ReconciliationSweeper = Depends(get_reconciliation_sweeper),
) -> SweepResponse:
    checked, updated = sweeper.refresh_open_orders()
    return SweepResponse(checked=checked, updated=updated)

@admin_router.post("/transactions/{transaction_id}/approve", response_model=TransactionResponse)
def approve_transaction(
    transaction_id: UUID,
    ledger: LedgerStore = Depends(get_ledger_store),
) -> TransactionResponse:
    return ledger.approve_deposit(transaction_id)

@admin_router.post("/transactions/{transaction_id}/reject", response_model=TransactionResponse)
def reject_transaction(
    transaction_id: UUID,
    ledger: LedgerStore = Depends(get_ledger_store),
) -> TransactionResponse:
    return ledger.reject_deposit(transaction_id)

@admin_router.get("/providers", response_model=list[ProviderStatusResponse])
def list_providers(
    gateway: ProviderGateway = Depends(get_provider_gateway),
) -> list[ProviderStatusResponse]:
    return [ProviderStatusResponse(**entry) for entry in gateway.provider_status()]

@admin_router.get("/providers/balances", response_model=list[ProviderBalanceResponse])
def provider_balances(
    provider: Optional[str] = None,
    gateway: ProviderGateway = Depends(get_provider_gateway),
) -> list[ProviderBalanceResponse]:
    return [
        ProviderBalanceResponse(provider=entry.provider, balance=entry.balance)
        for entry in gateway.get_balance(provider)
    ]

__all__ = ["user_router", "catalog_router", "order_router", "wallet_router", "admin_router"]
