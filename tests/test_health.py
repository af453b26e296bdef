import requests

from streamload.health import HealthClient


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


def test_fetch_health(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse({"status": "healthy", "active_subscriber_count": 12})

    monkeypatch.setattr(requests, "get", fake_get)

    health = HealthClient("http://localhost:8000/", timeout=1.5).fetch_health()

    assert health == {"status": "healthy", "active_subscriber_count": 12}
    assert calls == [("http://localhost:8000/health", 1.5)]


def test_fetch_health_connection_error(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "get", fake_get)

    assert HealthClient("http://localhost:8000").fetch_health() is None


def test_fetch_health_http_error(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse({}, status_code=503))

    assert HealthClient("http://localhost:8000").fetch_health() is None


def test_fetch_health_invalid_body(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse(ValueError("no json")))
    assert HealthClient("http://localhost:8000").fetch_health() is None

    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse(["not", "a", "dict"]))
    assert HealthClient("http://localhost:8000").fetch_health() is None
