from decimal import Decimal

import httpx
import pytest

from ..core.config import ProviderConfig
from ..core.errors import NoProviderAvailableError
from ..services.providers import HttpSMMProvider, ProviderGateway, parse_int
from .fakes import FakePanel, build_gateway


def test_place_order_sends_form_encoded_add_action(panels, gateway) -> None:
    panel_a, _ = panels

    ack = gateway.place_order("101", "https://instagram.com/alice", 1000)

    assert ack.provider == "PanelA"
    assert ack.order_id == "1001"
    assert ack.start_count == 42
    assert panel_a.calls == [
        {
            "key": "secret",
            "action": "add",
            "service": "101",
            "link": "https://instagram.com/alice",
            "quantity": "1000",
        }
    ]


@pytest.mark.parametrize("failure", ["http", "timeout", "garbage", "error"])
def test_place_order_fails_over_to_next_provider(panels, gateway, failure) -> None:
    panel_a, panel_b = panels
    panel_a.failure = failure

    ack = gateway.place_order("101", "https://instagram.com/alice", 500)

    assert ack.provider == "PanelB"
    assert len(panel_a.calls_for("add")) == 1
    assert len(panel_b.calls_for("add")) == 1


def test_place_order_skips_provider_with_malformed_endpoint() -> None:
    panel_b = FakePanel("PanelB")
    client = httpx.Client(transport=httpx.MockTransport(panel_b.handle))
    broken = HttpSMMProvider(
        ProviderConfig(name="Broken", endpoint="http://example.com:notaport/api", key="k"), client
    )
    gateway = ProviderGateway([broken, HttpSMMProvider(panel_b.config, client)])

    ack = gateway.place_order("101", "https://instagram.com/alice", 500)

    assert ack.provider == "PanelB"
    assert len(panel_b.calls_for("add")) == 1


class CrashingProvider:
    name = "Crashing"
    is_active = True
    has_api_key = True
    is_available = True

    def list_services(self):
        raise RuntimeError("boom")

    def place_order(self, service_id, link, quantity):
        raise RuntimeError("boom")

    def get_order_status(self, order_id):
        raise RuntimeError("boom")

    def get_balance(self):
        raise RuntimeError("boom")


def test_unexpected_provider_errors_fail_over() -> None:
    live = FakePanel("Live")
    live.orders["555"] = {"status": "Completed", "remains": "0"}
    http_gateway = build_gateway(live)
    gateway = ProviderGateway([CrashingProvider(), *http_gateway.providers])

    assert gateway.place_order("7", "https://tiktok.com/@bob", 100).provider == "Live"
    assert gateway.get_order_status("555").provider == "Live"
    assert [b.provider for b in gateway.get_balance()] == ["Live"]
    assert gateway.list_services() == []


def test_place_order_stops_at_first_success(panels, gateway) -> None:
    _, panel_b = panels

    gateway.place_order("101", "https://instagram.com/alice", 500)

    assert panel_b.calls == []


def test_place_order_raises_when_every_provider_fails(panels, gateway) -> None:
    for panel in panels:
        panel.failure = "http"

    with pytest.raises(NoProviderAvailableError):
        gateway.place_order("101", "https://instagram.com/alice", 500)


def test_place_order_without_providers_raises() -> None:
    with pytest.raises(NoProviderAvailableError):
        build_gateway().place_order("101", "https://instagram.com/alice", 500)


def test_unavailable_providers_are_never_called() -> None:
    inactive = FakePanel("Inactive", is_active=False)
    keyless = FakePanel("Keyless", key="")
    live = FakePanel("Live")
    gateway = build_gateway(inactive, keyless, live)

    ack = gateway.place_order("7", "https://tiktok.com/@bob", 100)

    assert ack.provider == "Live"
    assert inactive.calls == []
    assert keyless.calls == []


def test_list_services_merges_all_providers_and_tags_origin(panels, gateway) -> None:
    panel_a, panel_b = panels
    panel_a.services = [
        {"service": 1, "name": "Followers", "type": "Default", "rate": "0.90",
         "min": "50", "max": "10000", "category": "Instagram"},
    ]
    panel_b.services = [
        {"service": "2", "name": "Likes", "type": "Default", "rate": "0.15",
         "min": "10", "max": "5000", "category": "TikTok"},
    ]

    services = gateway.list_services()

    assert [(s.provider, s.service, s.name) for s in services] == [
        ("PanelA", "1", "Followers"),
        ("PanelB", "2", "Likes"),
    ]


def test_list_services_skips_failing_provider(panels, gateway) -> None:
    panel_a, panel_b = panels
    panel_a.failure = "garbage"
    panel_b.services = [
        {"service": "2", "name": "Likes", "type": "Default", "rate": "0.15",
         "min": "10", "max": "5000", "category": "TikTok"},
    ]

    services = gateway.list_services()

    assert [s.provider for s in services] == ["PanelB"]


def test_get_order_status_returns_first_payload(panels, gateway) -> None:
    panel_a, panel_b = panels
    panel_b.orders["555"] = {"status": "In progress", "remains": "120", "start_count": "10"}

    status = gateway.get_order_status("555")

    assert status is not None
    assert status.provider == "PanelB"
    assert status.status == "In progress"
    assert status.remains == "120"
    assert len(panel_a.calls_for("status")) == 1


def test_get_order_status_not_found_is_none(panels, gateway) -> None:
    panels[0].failure = "timeout"

    assert gateway.get_order_status("999") is None


def test_get_balance_omits_unreachable_providers(panels, gateway) -> None:
    panel_a, panel_b = panels
    panel_a.failure = "http"
    panel_b.balance = "12.3456"

    balances = gateway.get_balance()

    assert [(b.provider, b.balance) for b in balances] == [("PanelB", Decimal("12.3456"))]


def test_get_balance_for_named_provider(panels, gateway) -> None:
    panel_a, panel_b = panels

    balances = gateway.get_balance("PanelA")

    assert [b.provider for b in balances] == ["PanelA"]
    assert panel_b.calls == []
    assert gateway.get_balance("Unknown") == []


def test_provider_status_reports_configuration() -> None:
    gateway = build_gateway(FakePanel("Live"), FakePanel("Keyless", key=""), FakePanel("Off", is_active=False))

    assert gateway.provider_status() == [
        {"name": "Live", "is_active": True, "has_api_key": True},
        {"name": "Keyless", "is_active": True, "has_api_key": False},
        {"name": "Off", "is_active": False, "has_api_key": True},
    ]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("42", 42), (" 7 ", 7), ("12.0", 12), (None, 0), ("", 0), ("n/a", 0), (15, 15)],
)
def test_parse_int_is_lenient(raw, expected) -> None:
    assert parse_int(raw) == expected
