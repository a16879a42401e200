import pytest

from app import device as device_module
from app.device import SessionRegistry, set_registry
from app.security import limiter
from core.config import Settings
from core.session import SessionService
from core.storage import MemoryStorage
from tests.fakes import DEVICE_ID, TTL_MS, FakeApi, FakeClock, FakeScheduler


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return FakeScheduler(clock)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def session(storage, clock, scheduler):
    svc = SessionService(storage, TTL_MS, now_ms=clock, scheduler=scheduler)
    svc.restore_session()
    return svc


@pytest.fixture
def fake_api():
    return FakeApi()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        api_base_url="http://backend.test/api",
        token_ttl_ms=TTL_MS,
        storage_path=str(tmp_path / "device.db"),
        signup_requires_otp=True,
    )


@pytest.fixture
def device_storages():
    """MemoryStorage per device id, standing in for the SQLite namespaces."""
    return {}


@pytest.fixture
def registry(settings, clock, scheduler, device_storages):
    reg = SessionRegistry(
        settings,
        storage_factory=lambda device_id: device_storages.setdefault(device_id, MemoryStorage()),
        now_ms=clock,
        scheduler=scheduler,
    )
    set_registry(reg)
    limiter.reset()
    yield reg
    set_registry(None)
    limiter.reset()


@pytest.fixture
def client(registry, fake_api, monkeypatch):
    """TestClient whose device is DEVICE_ID and whose backend is `fake_api`."""
    from fastapi.testclient import TestClient

    import app.api as api_module
    from app.routes import auth, onboarding, profile, provider, public, seeker

    monkeypatch.setattr(device_module, "get_api", lambda device: fake_api)
    for module in (auth, onboarding, profile, provider, public, seeker):
        if hasattr(module, "get_api"):
            monkeypatch.setattr(module, "get_api", lambda device: fake_api)

    test_client = TestClient(api_module.app, follow_redirects=False)
    test_client.cookies.set("device_id", DEVICE_ID)
    test_client.cookies.set("csrf_token", "csrf-test-token")
    return test_client


@pytest.fixture
def device_session(registry):
    """The DEVICE_ID session; once it signs in, requests share this same object."""
    return registry.get(DEVICE_ID)
