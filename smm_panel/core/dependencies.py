import hmac
from functools import lru_cache
from typing import Optional
from uuid import UUID

import httpx
from fastapi import Depends, Header, HTTPException, status
from sqlmodel import Session

from ..models import UserModel
from ..services import (
    CatalogSync,
    EmailVerificationService,
    LedgerStore,
    LoggingNotifier,
    Notifier,
    OrderOrchestrator,
    PanelRepository,
    ProviderGateway,
    ReconciliationSweeper,
    UserService,
)
from .config import get_settings
from .db import get_session

@lru_cache(maxsize=1)
def get_provider_gateway() -> ProviderGateway:
    settings = get_settings()
    client = httpx.Client(timeout=settings.provider_timeout_seconds)
    return ProviderGateway.from_configs(
        settings.providers, client, timeout=settings.provider_timeout_seconds
    )

@lru_cache(maxsize=1)
def get_notifier() -> Notifier:
    return LoggingNotifier()

def get_repository(session: Session = Depends(get_session)) -> PanelRepository:
    return PanelRepository(session)

def get_user_service(
    session: Session = Depends(get_session),
    repository: PanelRepository = Depends(get_repository),
) -> UserService:
    return UserService(session, repository)

def get_ledger_store(
    session: Session = Depends(get_session),
    repository: PanelRepository = Depends(get_repository),
) -> LedgerStore:
    return LedgerStore(session, repository)

def get_order_orchestrator(
    session: Session = Depends(get_session),
    repository: PanelRepository = Depends(get_repository),
    gateway: ProviderGateway = Depends(get_provider_gateway),
) -> OrderOrchestrator:
    return OrderOrchestrator(session, gateway, repository)

def get_reconciliation_sweeper(
    session: Session = Depends(get_session),
    repository: PanelRepository = Depends(get_repository),
    gateway: ProviderGateway = Depends(get_provider_gateway),
) -> ReconciliationSweeper:
    return ReconciliationSweeper(session, gateway, repository)

def get_catalog_sync(
    session: Session = Depends(get_session),
    repository: PanelRepository = Depends(get_repository),
    gateway: ProviderGateway = Depends(get_provider_gateway),
) -> CatalogSync:
    return CatalogSync(session, gateway, repository)

def get_verification_service(
    session: Session = Depends(get_session),
    repository: PanelRepository = Depends(get_repository),
    notifier: Notifier = Depends(get_notifier),
) -> EmailVerificationService:
    return EmailVerificationService(
        session,
        notifier,
        ttl_hours=get_settings().verification_ttl_hours,
        repository=repository,
    )

def get_current_user(
    user_id: Optional[UUID] = Header(default=None, convert_underscores=False, alias="X-User-Id"),
    repository: PanelRepository = Depends(get_repository),
) -> UserModel:
    user = repository.get_user(user_id) if user_id is not None else None
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authenticated")
    return user

def require_admin(
    admin_token: Optional[str] = Header(default=None, convert_underscores=False, alias="X-Admin-Token"),
) -> None:
    expected = get_settings().admin_token
    if not expected or not admin_token or not hmac.compare_digest(admin_token, expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
