import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from ..core.config import get_settings
from ..core.db import create_engine_for_url, get_session, init_db, set_engine
from ..core.dependencies import get_notifier, get_provider_gateway
from ..main import app
from ..services import ProviderGateway
from .fakes import ADMIN_TOKEN, FakePanel, RecordingNotifier, build_gateway


@pytest.fixture
def engine(tmp_path):
    test_db = tmp_path / "test.db"
    engine = create_engine_for_url(f"sqlite:///{test_db}")
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def panels() -> tuple[FakePanel, FakePanel]:
    return FakePanel("PanelA"), FakePanel("PanelB")


@pytest.fixture
def gateway(panels) -> ProviderGateway:
    return build_gateway(*panels)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(engine, gateway, notifier, monkeypatch) -> TestClient:
    original_engine = create_engine_for_url(get_settings().database_url)
    set_engine(engine)
    monkeypatch.setattr(get_settings(), "admin_token", ADMIN_TOKEN)

    def _get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session_override
    app.dependency_overrides[get_provider_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier
    init_db()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    set_engine(original_engine)
