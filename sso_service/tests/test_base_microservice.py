import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from sso_service.base_microservice import BaseMicroservice
from sso_service.config import INSECURE_DEFAULT_JWT_SECRET, Settings
from sso_service.main import create_app
from sso_service.users.store import SQLAlchemyUserStore

base_service = BaseMicroservice()


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.json()["services"]["discovery"] == "disabled"


@pytest.mark.asyncio
async def test_root(client, settings):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert resp.json()["name"] == settings.service_name


def test_envelope_extra_keys():
    body = base_service.envelope(data=[], message="m", total=0)
    assert body == {"status": "ok", "message": "m", "data": [], "total": 0}


def test_log_event_and_error(caplog):
    # Test logging methods
    with caplog.at_level("INFO"):
        base_service.log_event("pytest_log_event", {"foo": "bar"})
        assert any("pytest_log_event" in m for m in caplog.text.splitlines())
    with caplog.at_level("ERROR"):
        try:
            raise ValueError("test error")
        except Exception as e:
            base_service.log_error(e, context="pytest")
        assert any("test error" in m for m in caplog.text.splitlines())


def test_settings_from_env(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    monkeypatch.setenv("PORT", "9100")
    monkeypatch.setenv("EUREKA_ENABLED", "true")
    monkeypatch.setenv("EUREKA_SERVICE_PATH", "eureka/apps")

    settings = Settings.from_env()
    assert settings.port == 9100
    assert settings.eureka_enabled is True
    assert settings.eureka_url == "http://localhost:8761/eureka/apps/"
    assert settings.jwt_secret == INSECURE_DEFAULT_JWT_SECRET
    assert settings.uses_insecure_secret is True
    assert settings.bcrypt_rounds == 10
    assert settings.access_token_expire_minutes == 60

    monkeypatch.setenv("JWT_SECRET", "a-real-secret")
    assert Settings.from_env().uses_insecure_secret is False


def test_insecure_secret_warning_on_startup(settings, caplog):
    settings.jwt_secret = INSECURE_DEFAULT_JWT_SECRET
    # Built here so the engine is first used inside the TestClient loop
    store = SQLAlchemyUserStore.from_url(
        settings.database_url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    app = create_app(settings=settings, store=store)
    with caplog.at_level("WARNING"):
        with TestClient(app) as test_client:
            assert test_client.get("/health").status_code == 200
    assert "insecure default" in caplog.text


class FailingRegistration:
    registered = False

    def __init__(self):
        self.stopped = False

    async def start(self):
        raise RuntimeError("discovery unavailable")

    async def stop(self):
        self.stopped = True


def test_store_closed_when_startup_fails(settings, monkeypatch):
    store = SQLAlchemyUserStore.from_url(
        settings.database_url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    closed = []
    original_close = store.close

    async def recording_close():
        closed.append(True)
        await original_close()

    monkeypatch.setattr(store, "close", recording_close)
    registration = FailingRegistration()
    app = create_app(settings=settings, store=store, registration=registration)

    with pytest.raises(Exception):
        with TestClient(app):
            pass

    assert registration.stopped is True
    assert closed == [True]
