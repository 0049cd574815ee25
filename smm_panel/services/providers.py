"""Uniform client over the upstream SMM provider panels.

Every provider speaks the same "API v2" dialect: a single endpoint that takes
a form-encoded POST with ``key`` and ``action`` (``services``, ``add``,
``status`` or ``balance``) and answers with JSON. A JSON object carrying an
``error`` field is a failure even though the HTTP call itself succeeded.

:class:`ProviderGateway` walks the configured providers in order and turns a
failing provider into "try the next one". Only :meth:`ProviderGateway.place_order`
escalates, once every available provider has been tried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Protocol, Sequence

import httpx

from ..core.config import ProviderConfig
from ..core.errors import NoProviderAvailableError, ProviderError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderService:
    provider: str
    service: str
    name: str
    type: Optional[str]
    rate: Any
    min: Any
    max: Any
    category: Optional[str]


@dataclass(frozen=True)
class OrderAck:
    provider: str
    order_id: str
    start_count: int


@dataclass(frozen=True)
class OrderStatus:
    provider: str
    status: str
    remains: Any
    start_count: Any = None


@dataclass(frozen=True)
class ProviderBalance:
    provider: str
    balance: Decimal
    currency: Optional[str] = None


def parse_int(value: Any, default: int = 0) -> int:
    """Lenient integer parse for provider payload fields."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        pass
    try:
        return int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError, OverflowError):
        return default


class SMMProvider(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def is_active(self) -> bool: ...

    @property
    def has_api_key(self) -> bool: ...

    @property
    def is_available(self) -> bool: ...

    def list_services(self) -> list[ProviderService]: ...

    def place_order(self, service_id: str, link: str, quantity: int) -> OrderAck: ...

    def get_order_status(self, order_id: str) -> Optional[OrderStatus]: ...

    def get_balance(self) -> ProviderBalance: ...


class HttpSMMProvider:
    """One upstream panel reached over HTTP."""

    def __init__(
        self,
        config: ProviderConfig,
        client: httpx.Client,
        timeout: float = 15.0,
    ) -> None:
        self.config = config
        self.client = client
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def is_active(self) -> bool:
        return self.config.is_active

    @property
    def has_api_key(self) -> bool:
        return bool(self.config.key)

    @property
    def is_available(self) -> bool:
        return self.is_active and self.has_api_key

    def _request(self, action: str, **params: Any) -> Any:
        form = {"key": self.config.key, "action": action}
        form.update({key: str(value) for key, value in params.items()})
        try:
            response = self.client.post(
                self.config.endpoint, data=form, timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                self.name, f"HTTP error {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, f"transport error: {exc}") from exc
        except httpx.InvalidURL as exc:
            raise ProviderError(self.name, f"invalid endpoint: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(self.name, "response is not valid JSON") from exc

        if isinstance(payload, dict) and payload.get("error"):
            raise ProviderError(self.name, str(payload["error"]))
        return payload

    def list_services(self) -> list[ProviderService]:
        payload = self._request("services")
        if not isinstance(payload, list):
            raise ProviderError(self.name, "services response is not a list")
        services = []
        for item in payload:
            if not isinstance(item, dict) or item.get("service") in (None, ""):
                continue
            services.append(
                ProviderService(
                    provider=self.name,
                    service=str(item["service"]),
                    name=str(item.get("name") or item["service"]),
                    type=item.get("type"),
                    rate=item.get("rate"),
                    min=item.get("min"),
                    max=item.get("max"),
                    category=item.get("category"),
                )
            )
        return services

    def place_order(self, service_id: str, link: str, quantity: int) -> OrderAck:
        payload = self._request("add", service=service_id, link=link, quantity=quantity)
        if not isinstance(payload, dict) or payload.get("order") in (None, ""):
            raise ProviderError(self.name, "order acknowledgment has no order id")
        return OrderAck(
            provider=self.name,
            order_id=str(payload["order"]),
            start_count=parse_int(payload.get("start_count"), default=0),
        )

    def get_order_status(self, order_id: str) -> Optional[OrderStatus]:
        payload = self._request("status", order=order_id)
        if not isinstance(payload, dict) or not payload.get("status"):
            return None
        return OrderStatus(
            provider=self.name,
            status=str(payload["status"]),
            remains=payload.get("remains"),
            start_count=payload.get("start_count"),
        )

    def get_balance(self) -> ProviderBalance:
        payload = self._request("balance")
        if not isinstance(payload, dict) or payload.get("balance") in (None, ""):
            raise ProviderError(self.name, "balance response has no balance")
        try:
            balance = Decimal(str(payload["balance"]))
        except InvalidOperation as exc:
            raise ProviderError(self.name, "balance is not a number") from exc
        return ProviderBalance(
            provider=self.name, balance=balance, currency=payload.get("currency")
        )


class ProviderGateway:
    """Failover across an ordered, immutable list of providers."""

    def __init__(self, providers: Sequence[SMMProvider]) -> None:
        self.providers: tuple[SMMProvider, ...] = tuple(providers)

    @classmethod
    def from_configs(
        cls,
        configs: Sequence[ProviderConfig],
        client: httpx.Client,
        timeout: float = 15.0,
    ) -> "ProviderGateway":
        return cls([HttpSMMProvider(config, client, timeout) for config in configs])

    def _available(self) -> list[SMMProvider]:
        return [provider for provider in self.providers if provider.is_available]

    def list_services(self) -> list[ProviderService]:
        """Merge every available provider's catalog.

        Best effort: a provider that fails is logged and left out.
        """
        services: list[ProviderService] = []
        for provider in self._available():
            try:
                fetched = provider.list_services()
            except ProviderError as exc:
                logger.warning(
                    "provider.services.failed",
                    extra={"provider": provider.name, "error": str(exc)},
                )
                continue
            except Exception:
                logger.exception("provider.services.error", extra={"provider": provider.name})
                continue
            services.extend(fetched)
        return services

    def place_order(self, service_id: str, link: str, quantity: int) -> OrderAck:
        for provider in self._available():
            try:
                ack = provider.place_order(service_id, link, quantity)
            except ProviderError as exc:
                logger.warning(
                    "provider.order.failed",
                    extra={"provider": provider.name, "error": str(exc)},
                )
                continue
            except Exception:
                logger.exception("provider.order.error", extra={"provider": provider.name})
                continue
            logger.info(
                "provider.order.placed",
                extra={"provider": ack.provider, "external_order_id": ack.order_id},
            )
            return ack
        raise NoProviderAvailableError("Failed to create order with any provider")

    def get_order_status(self, order_id: str) -> Optional[OrderStatus]:
        """First status payload found, or None. Never raises for provider failures."""
        for provider in self._available():
            try:
                status = provider.get_order_status(order_id)
            except ProviderError as exc:
                logger.warning(
                    "provider.status.failed",
                    extra={"provider": provider.name, "error": str(exc)},
                )
                continue
            except Exception:
                logger.exception("provider.status.error", extra={"provider": provider.name})
                continue
            if status is not None:
                return status
        return None

    def get_balance(self, provider_name: Optional[str] = None) -> list[ProviderBalance]:
        """Balances of the named provider, or of all available ones; failures are omitted."""
        balances: list[ProviderBalance] = []
        for provider in self._available():
            if provider_name is not None and provider.name != provider_name:
                continue
            try:
                balances.append(provider.get_balance())
            except ProviderError as exc:
                logger.warning(
                    "provider.balance.failed",
                    extra={"provider": provider.name, "error": str(exc)},
                )
            except Exception:
                logger.exception("provider.balance.error", extra={"provider": provider.name})
        return balances

    def provider_status(self) -> list[dict[str, Any]]:
        return [
            {
                "name": provider.name,
                "is_active": provider.is_active,
                "has_api_key": provider.has_api_key,
            }
            for provider in self.providers
        ]
