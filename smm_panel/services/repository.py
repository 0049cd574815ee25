from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlmodel import Session, select

from ..models import (
    EmailVerificationModel,
    OrderModel,
    ServiceModel,
    TransactionModel,
    UserModel,
)


class PanelRepository:
    """Thin data access layer around the SQLModel session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # Users --------------------------------------------------------------
    def add_user(self, email: str, full_name: Optional[str]) -> UserModel:
        user = UserModel(email=email, full_name=full_name)
        self.session.add(user)
        self.session.flush()
        self.session.refresh(user)
        return user

    def get_user(self, user_id: UUID) -> Optional[UserModel]:
        return self.session.get(UserModel, user_id)

    def get_user_by_email(self, email: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(func.lower(UserModel.email) == email.lower())
        return self.session.exec(stmt).first()

    def read_balance(self, user_id: UUID) -> Optional[Decimal]:
        stmt = select(UserModel.balance).where(UserModel.id == user_id)
        return self.session.exec(stmt).first()

    def decrement_balance(self, user_id: UUID, amount: Decimal) -> bool:
        """Conditional debit; False when the balance does not cover ``amount``."""
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .where(UserModel.balance >= amount)
            .values(balance=UserModel.balance - amount)
            .execution_options(synchronize_session=False)
        )
        result = self.session.exec(stmt)
        return result.rowcount == 1

    def increment_balance(self, user_id: UUID, amount: Decimal) -> bool:
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(balance=UserModel.balance + amount)
            .execution_options(synchronize_session=False)
        )
        result = self.session.exec(stmt)
        return result.rowcount == 1

    # Catalog ------------------------------------------------------------
    def get_service(self, service_id: UUID) -> Optional[ServiceModel]:
        return self.session.get(ServiceModel, service_id)

    def get_service_by_external_id(self, external_id: str) -> Optional[ServiceModel]:
        stmt = select(ServiceModel).where(ServiceModel.external_id == external_id)
        return self.session.exec(stmt).first()

    def list_services(
        self,
        *,
        platform: Optional[str] = None,
        category: Optional[str] = None,
        active_only: bool = True,
    ) -> list[ServiceModel]:
        stmt = select(ServiceModel)
        if active_only:
            stmt = stmt.where(ServiceModel.is_active == True)  # noqa: E712
        if platform:
            stmt = stmt.where(ServiceModel.platform == platform)
        if category:
            stmt = stmt.where(ServiceModel.category == category)
        stmt = stmt.order_by(ServiceModel.platform, ServiceModel.name)
        return list(self.session.exec(stmt))

    def save_service(self, service: ServiceModel) -> ServiceModel:
        self.session.add(service)
        self.session.flush()
        return service

    # Orders -------------------------------------------------------------
    def add_order(self, order: OrderModel) -> OrderModel:
        self.session.add(order)
        self.session.flush()
        return order

    def get_order(self, order_id: UUID) -> Optional[OrderModel]:
        return self.session.get(OrderModel, order_id)

    def list_orders(self, user_id: UUID) -> list[OrderModel]:
        stmt = (
            select(OrderModel)
            .where(OrderModel.user_id == user_id)
            .order_by(OrderModel.created_at.desc())
        )
        return list(self.session.exec(stmt))

    def list_orders_excluding_status(
        self, statuses: Iterable[str], user_id: Optional[UUID] = None
    ) -> list[OrderModel]:
        stmt = select(OrderModel).where(
            func.lower(OrderModel.status).not_in(list(statuses))
        )
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)
        return list(self.session.exec(stmt.order_by(OrderModel.created_at)))

    def update_order_progress(self, order: OrderModel, *, status: str, remains: int) -> None:
        order.status = status
        order.remains = remains
        order.updated_at = datetime.now(UTC)
        self.session.add(order)

    # Ledger entries -----------------------------------------------------
    def add_transaction(self, entry: TransactionModel) -> TransactionModel:
        self.session.add(entry)
        self.session.flush()
        self.session.refresh(entry)
        return entry

    def get_transaction(self, transaction_id: UUID) -> Optional[TransactionModel]:
        return self.session.get(TransactionModel, transaction_id)

    def find_payment(self, payment_method: str, payment_id: str) -> Optional[TransactionModel]:
        stmt = (
            select(TransactionModel)
            .where(TransactionModel.payment_method == payment_method)
            .where(TransactionModel.payment_id == payment_id)
        )
        return self.session.exec(stmt).first()

    def list_transactions(self, user_id: UUID) -> list[TransactionModel]:
        stmt = (
            select(TransactionModel)
            .where(TransactionModel.user_id == user_id)
            .order_by(TransactionModel.ts.desc())
        )
        return list(self.session.exec(stmt))

    # Email verification -------------------------------------------------
    def add_verification(self, verification: EmailVerificationModel) -> EmailVerificationModel:
        self.session.add(verification)
        self.session.flush()
        return verification

    def get_verification(self, token: str) -> Optional[EmailVerificationModel]:
        stmt = select(EmailVerificationModel).where(EmailVerificationModel.token == token)
        return self.session.exec(stmt).first()
