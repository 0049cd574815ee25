from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional
from uuid import UUID

from sqlmodel import Session

from ..core.errors import ServiceNotFoundError
from ..models import CatalogSyncResponse, ServiceModel, ServiceResponse
from .providers import ProviderGateway, ProviderService, parse_int
from .repository import PanelRepository


logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "other"
DEFAULT_PLATFORM = "instagram"
RATE_PRECISION = Decimal("0.0001")


def map_provider_service(record: ProviderService) -> dict:
    """Local catalog fields for one upstream record; ValueError if unusable."""
    # Stored with four decimal places; compare at the same precision.
    try:
        price = Decimal(str(record.rate).strip()).quantize(
            RATE_PRECISION, rounding=ROUND_HALF_UP
        )
    except InvalidOperation as exc:
        raise ValueError(f"service {record.service} has a malformed rate") from exc
    if not price.is_finite():
        raise ValueError(f"service {record.service} has a malformed rate")
    if price <= 0:
        raise ValueError(f"service {record.service} has a non-positive rate")

    min_quantity = parse_int(record.min, default=-1)
    max_quantity = parse_int(record.max, default=-1)
    if min_quantity < 1:
        raise ValueError(f"service {record.service} has an invalid minimum")
    if max_quantity < 1:
        raise ValueError(f"service {record.service} has an invalid maximum")
    if min_quantity > max_quantity:
        raise ValueError(f"service {record.service} has min above max")
    return {
        "provider": record.provider,
        "name": record.name,
        "description": record.name,
        "category": record.category or DEFAULT_CATEGORY,
        "platform": record.type or DEFAULT_PLATFORM,
        "price_per_1000": price,
        "min_quantity": min_quantity,
        "max_quantity": max_quantity,
        "is_active": True,
    }


class CatalogSync:
    def __init__(
        self,
        session: Session,
        gateway: ProviderGateway,
        repository: Optional[PanelRepository] = None,
    ) -> None:
        self.session = session
        self.gateway = gateway
        self.repository = repository or PanelRepository(session)

    def sync(self) -> CatalogSyncResponse:
        """Upsert the upstream catalogs keyed on ``external_id``.

        Services that vanished upstream are kept as they are. Running it
        again with the same upstream data changes nothing.
        """
        records = self.gateway.list_services()
        created = updated = skipped = 0
        now = datetime.now(UTC)

        for record in records:
            try:
                fields = map_provider_service(record)
            except ValueError as exc:
                skipped += 1
                logger.warning(
                    "catalog.record.skipped",
                    extra={"provider": record.provider, "error": str(exc)},
                )
                continue

            service = self.repository.get_service_by_external_id(record.service)
            if service is None:
                service = ServiceModel(external_id=record.service, **fields)
                created += 1
            else:
                changed = {
                    key: value
                    for key, value in fields.items()
                    if getattr(service, key) != value
                }
                if not changed:
                    continue
                for key, value in changed.items():
                    setattr(service, key, value)
                service.updated_at = now
                updated += 1
            self.repository.save_service(service)

        self.session.commit()
        logger.info(
            "catalog.synced",
            extra={
                "fetched": len(records),
                "services_created": created,
                "updated": updated,
                "skipped": skipped,
            },
        )
        return CatalogSyncResponse(
            fetched=len(records), created=created, updated=updated, skipped=skipped
        )

    def list_services(
        self, platform: Optional[str] = None, category: Optional[str] = None
    ) -> list[ServiceResponse]:
        return [
            ServiceResponse.model_validate(service)
            for service in self.repository.list_services(platform=platform, category=category)
        ]

    def deactivate(self, service_id: UUID) -> ServiceResponse:
        service = self.repository.get_service(service_id)
        if service is None:
            raise ServiceNotFoundError("Service not found")
        service.is_active = False
        service.updated_at = datetime.now(UTC)
        self.repository.save_service(service)
        self.session.commit()
        self.session.refresh(service)
        logger.info("catalog.service.deactivated", extra={"service_id": str(service_id)})
        return ServiceResponse.model_validate(service)
