from __future__ import annotations

import time

import pytest
import requests

from laterals.common.http import HostThrottle, HttpClient, HttpRequestError, RetryConfig, RetryableHttpError, TimeoutConfig


class FakeResponse:
    def __init__(self, status_code: int, payload=None, raises_json: bool = False):
        self.status_code = status_code
        self._payload = payload
        self._raises_json = raises_json

    def json(self):
        if self._raises_json:
            raise ValueError("bad json")
        return self._payload


def test_http_get_json_success(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))

    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(200, {"ok": True}))
    payload = client.get_json("https://example.com")

    assert payload == {"ok": True}


def test_http_retryable_status_raises_retryable_error(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(503, {"x": 1}))

    with pytest.raises(RetryableHttpError):
        client.get_json("https://example.com")


def test_http_client_error_is_not_retried(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=3, multiplier=0.01, max_wait=0.01))
    calls = []

    def fake_request(**_kwargs):
        calls.append(1)
        return FakeResponse(401, {"message": "Not Authorized"})

    monkeypatch.setattr(client.session, "request", fake_request)
    with pytest.raises(HttpRequestError) as excinfo:
        client.get_json("https://example.com")
    assert excinfo.value.status_code == 401
    assert len(calls) == 1


def test_http_timeout_is_retried_then_raised(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=2, multiplier=0.01, max_wait=0.01))
    calls = []

    def fake_request(**_kwargs):
        calls.append(1)
        raise requests.Timeout("slow")

    monkeypatch.setattr(client.session, "request", fake_request)
    with pytest.raises(RetryableHttpError):
        client.get_json("https://example.com")
    assert len(calls) == 2


def test_http_invalid_json_raises(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(200, raises_json=True))

    with pytest.raises(HttpRequestError):
        client.get_json("https://example.com")


def test_http_passes_timeout_tuple(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    seen = {}

    def fake_request(**kwargs):
        seen.update(kwargs)
        return FakeResponse(200, {})

    monkeypatch.setattr(client.session, "request", fake_request)
    client.get_json("https://example.com", timeout=TimeoutConfig(connect=1.0, read=2.0))

    assert seen["timeout"] == (1.0, 2.0)
    assert client.session.headers["Accept"] == "application/json"


def test_host_throttle_spaces_requests_per_host():
    throttle = HostThrottle(rate_per_sec=20.0)
    started = time.monotonic()
    throttle.wait("a.example")
    throttle.wait("b.example")
    throttle.wait("a.example")
    assert time.monotonic() - started >= 0.045


def test_host_throttle_disabled_with_zero_rate():
    throttle = HostThrottle(rate_per_sec=0)
    started = time.monotonic()
    for _ in range(5):
        throttle.wait("a.example")
    assert time.monotonic() - started < 0.05
