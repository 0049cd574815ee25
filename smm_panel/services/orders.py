"""Order placement workflow.

validate -> resolve service -> check balance -> place upstream -> persist + debit

The upstream order must exist before anything is written locally, so a
failed provider call never costs the user money. Persisting the order,
debiting the balance and appending the ledger entry share a single
database transaction.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..core.errors import (
    InsufficientFundsError,
    InvalidOrderRequestError,
    NoProviderAvailableError,
    OrderNotFoundError,
    PersistenceFailureError,
    ServiceNotFoundError,
    UpstreamPlacementFailedError,
)
from ..models import (
    OrderCreate,
    OrderModel,
    OrderResponse,
    QuoteResponse,
    ServiceModel,
)
from .ledger import LedgerStore
from .providers import ProviderGateway
from .repository import PanelRepository


logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
COMPLETED_STATUSES = frozenset({"completed"})


def compute_charge(quantity: int, price_per_1000: Decimal) -> Decimal:
    return (Decimal(quantity) / Decimal(1000) * Decimal(price_per_1000)).quantize(
        CENT, rounding=ROUND_HALF_UP
    )


def order_progress(order: OrderModel) -> float:
    if order.status.lower() in COMPLETED_STATUSES:
        return 100.0
    if order.quantity <= 0:
        return 0.0
    return max(0.0, (order.quantity - order.remains) / order.quantity * 100)


def order_to_response(order: OrderModel) -> OrderResponse:
    response = OrderResponse.model_validate(order)
    response.progress = order_progress(order)
    return response


class OrderOrchestrator:
    def __init__(
        self,
        session: Session,
        gateway: ProviderGateway,
        repository: Optional[PanelRepository] = None,
        ledger: Optional[LedgerStore] = None,
    ) -> None:
        self.session = session
        self.gateway = gateway
        self.repository = repository or PanelRepository(session)
        self.ledger = ledger or LedgerStore(session, self.repository)

    def _resolve_service(self, service_id: UUID) -> ServiceModel:
        service = self.repository.get_service(service_id)
        if service is None or not service.is_active:
            raise ServiceNotFoundError("Service not found")
        return service

    def _check_quantity(self, service: ServiceModel, quantity: int) -> None:
        if quantity < service.min_quantity:
            raise InvalidOrderRequestError(f"Minimum quantity is {service.min_quantity}")
        if quantity > service.max_quantity:
            raise InvalidOrderRequestError(f"Maximum quantity is {service.max_quantity}")

    def quote(self, service_id: UUID, quantity: int) -> QuoteResponse:
        service = self._resolve_service(service_id)
        self._check_quantity(service, quantity)
        return QuoteResponse(
            service_id=service.id,
            quantity=quantity,
            charge=compute_charge(quantity, service.price_per_1000),
        )

    def place_order(self, user_id: UUID, payload: OrderCreate) -> OrderResponse:
        link = payload.link.strip()
        if not link:
            raise InvalidOrderRequestError("Link is required")
        if payload.quantity <= 0:
            raise InvalidOrderRequestError("Quantity must be positive")

        service = self._resolve_service(payload.service_id)
        self._check_quantity(service, payload.quantity)

        charge = compute_charge(payload.quantity, service.price_per_1000)
        if charge <= 0:
            raise InvalidOrderRequestError("Order total rounds to zero; increase the quantity")
        if charge > self.ledger.get_balance(user_id):
            raise InsufficientFundsError("Insufficient balance")

        try:
            ack = self.gateway.place_order(service.external_id, link, payload.quantity)
        except NoProviderAvailableError as exc:
            logger.warning(
                "order.upstream_failed",
                extra={"user_id": str(user_id), "service_id": str(service.id)},
            )
            raise UpstreamPlacementFailedError(
                "Failed to create order with SMM provider"
            ) from exc

        order = OrderModel(
            user_id=user_id,
            service_id=service.id,
            link=link,
            quantity=payload.quantity,
            charge=charge,
            provider=ack.provider,
            external_order_id=ack.order_id,
            start_count=ack.start_count,
            remains=payload.quantity,
            status="pending",
        )
        try:
            self.repository.add_order(order)
            self.ledger.debit(user_id, charge)
            self.ledger.record_transaction(
                user_id=user_id,
                entry_type="order",
                amount=-charge,
                status="completed",
                order_id=order.id,
                description=f"Order {order.id}: {payload.quantity} x {service.name}",
            )
            self.session.commit()
        except (InsufficientFundsError, SQLAlchemyError) as exc:
            self.session.rollback()
            logger.error(
                "order.orphaned",
                extra={
                    "user_id": str(user_id),
                    "provider": ack.provider,
                    "external_order_id": ack.order_id,
                    "charge": str(charge),
                    "error": str(exc),
                },
            )
            raise PersistenceFailureError(
                "Order was accepted upstream but could not be saved; support has been notified"
            ) from exc

        self.session.refresh(order)
        logger.info(
            "order.placed",
            extra={
                "order_id": str(order.id),
                "user_id": str(user_id),
                "external_order_id": order.external_order_id,
                "charge": str(charge),
            },
        )
        return order_to_response(order)

    def get_order_model(self, user_id: UUID, order_id: UUID) -> OrderModel:
        order = self.repository.get_order(order_id)
        if order is None or order.user_id != user_id:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    def get_order(self, user_id: UUID, order_id: UUID) -> OrderResponse:
        return order_to_response(self.get_order_model(user_id, order_id))

    def list_orders(self, user_id: UUID) -> list[OrderResponse]:
        return [order_to_response(order) for order in self.repository.list_orders(user_id)]
