import pathlib
import sys

import pytest

p = str(pathlib.Path(__file__).resolve().parents[1])
sys.path.insert(0, p) if p not in sys.path else None

from payslip_app.config import get_settings  # noqa: E402

ADMIN_EMAIL = "admin@payslip.test"
ADMIN_PASSWORD = "admin-password-123"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("ADMIN_EMAIL", ADMIN_EMAIL)
    monkeypatch.setenv("ADMIN_NAME", "Test Admin")
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from payslip_app.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api_key(client):
    return client.app.state.context.default_api_key


@pytest.fixture
def store():
    from payslip_app.storage import MemoryKvStore

    return MemoryKvStore()
