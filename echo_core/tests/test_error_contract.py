import pytest
from fastapi.testclient import TestClient

from echo_core.core.errors import UnavailableError
from echo_core.engine import build_echo_core
from echo_core.main import create_app


class BrokenClock:
    def now(self):
        raise OSError("time source offline")


@pytest.fixture
def broken_core(settings_obj):
    return build_echo_core(settings_obj, clock=BrokenClock())


def test_clock_failure_surfaces_as_unavailable(broken_core):
    with pytest.raises(UnavailableError) as excinfo:
        broken_core.get_echo_status("u1")
    assert isinstance(excinfo.value.__cause__, OSError)


def test_clock_failure_is_503_over_http(broken_core):
    client = TestClient(create_app(broken_core))

    resp = client.get("/healthz")

    assert resp.status_code == 503
    payload = resp.json()
    assert payload["error"]["code"] == "unavailable"
    assert payload["error"]["request_id"] == resp.headers["x-request-id"]


def test_healthz_ok(core):
    resp = TestClient(create_app(core)).get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "now": "2024-01-10T12:00:00+00:00"}
