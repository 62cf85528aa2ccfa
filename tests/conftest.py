import pytest

from config import RouteConfig


@pytest.fixture
def config():
    return RouteConfig(api_key="test-key", request_timeout=3.0)


@pytest.fixture
def fake_get(monkeypatch):
    """
    Replace requests.get in the routing engine. Queue responses (or
    exceptions) with fake_get.queue(...); calls are recorded in fake_get.calls.
    """
    class _FakeGet:
        def __init__(self):
            self.responses = []
            self.calls = []

        def queue(self, *responses):
            self.responses.extend(responses)

        def __call__(self, url, params=None, headers=None, timeout=None):
            self.calls.append({"url": url, "params": params, "timeout": timeout})
            resp = self.responses.pop(0)
            if isinstance(resp, Exception):
                raise resp
            return resp

    fake = _FakeGet()
    monkeypatch.setattr("routing_engine.requests.get", fake)
    return fake
