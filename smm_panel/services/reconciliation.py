from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from sqlmodel import Session

from ..models import OrderModel
from .providers import ProviderGateway, parse_int
from .repository import PanelRepository


logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"completed", "canceled", "cancelled", "partial", "refunded"})


class ReconciliationSweeper:
    """Pulls upstream status into persisted orders.

    Best effort: an unreachable provider or an order unknown upstream leaves
    the stored row exactly as it was and is reported as "no change".
    """

    def __init__(
        self,
        session: Session,
        gateway: ProviderGateway,
        repository: Optional[PanelRepository] = None,
    ) -> None:
        self.session = session
        self.gateway = gateway
        self.repository = repository or PanelRepository(session)

    def refresh_order(self, order: OrderModel) -> bool:
        upstream = self.gateway.get_order_status(order.external_order_id)
        if upstream is None:
            logger.info(
                "order.refresh.no_change",
                extra={"order_id": str(order.id), "external_order_id": order.external_order_id},
            )
            return False

        remains = min(max(parse_int(upstream.remains, default=0), 0), order.quantity)
        self.repository.update_order_progress(order, status=upstream.status, remains=remains)
        self.session.commit()
        self.session.refresh(order)
        logger.info(
            "order.refreshed",
            extra={
                "order_id": str(order.id),
                "status": order.status,
                "remains": order.remains,
            },
        )
        return True

    def refresh_open_orders(self, user_id: Optional[UUID] = None) -> tuple[int, int]:
        """Refresh every non-terminal order; returns (checked, updated)."""
        orders = self.repository.list_orders_excluding_status(TERMINAL_STATUSES, user_id)
        updated = sum(1 for order in orders if self.refresh_order(order))
        logger.info(
            "order.sweep",
            extra={"checked": len(orders), "updated": updated},
        )
        return len(orders), updated
