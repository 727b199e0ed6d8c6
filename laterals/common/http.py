"""Shared requests session for geocoding calls: timeouts, retries, per-host throttling."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from types import TracebackType
from typing import Any
from urllib.parse import urlparse

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from laterals.common.constants import USER_AGENT
from laterals.common.errors import StageError

RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 5.0
    read: float = 5.0

    def as_tuple(self) -> tuple[float, float]:
        return self.connect, self.read


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 2
    multiplier: float = 0.5
    max_wait: float = 2.0


class HttpRequestError(StageError):
    error_code = "HTTP_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RetryableHttpError(HttpRequestError):
    pass


class HostThrottle:
    """Spaces requests to each host at least ``1 / rate_per_sec`` seconds apart."""

    def __init__(self, rate_per_sec: float) -> None:
        self.interval = 1.0 / rate_per_sec if rate_per_sec > 0 else 0.0
        self.next_slot: dict[str, float] = {}
        self.lock = threading.Lock()

    def wait(self, host: str) -> None:
        if not self.interval:
            return
        with self.lock:
            now = time.monotonic()
            slot = max(now, self.next_slot.get(host, now))
            self.next_slot[host] = slot + self.interval
        delay = slot - now
        if delay > 0:
            time.sleep(delay)


def _host(url: str) -> str:
    return urlparse(url).netloc


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        rate_per_sec: float = 10.0,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.throttle = HostThrottle(rate_per_sec)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(initial=self.retry.multiplier, max=self.retry.max_wait, jitter=0.25),
            retry=retry_if_exception_type(RetryableHttpError),
            reraise=True,
        )

    def _send(
        self,
        url: str,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
        timeout: TimeoutConfig,
    ) -> Any:
        host = _host(url)
        self.throttle.wait(host)
        # Messages name the host only; query strings carry access tokens.
        try:
            response = self.session.request(
                method="GET",
                url=url,
                params=params,
                headers=headers,
                timeout=timeout.as_tuple(),
            )
        except requests.Timeout as exc:
            raise RetryableHttpError(f"Timed out requesting {host}") from exc
        except requests.RequestException as exc:
            raise HttpRequestError(f"Request to {host} failed: {type(exc).__name__}") from exc

        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableHttpError(f"{host} answered {status}", status_code=status)
        if status >= 400:
            raise HttpRequestError(f"{host} answered {status}", status_code=status)
        try:
            return response.json()
        except ValueError as exc:
            raise HttpRequestError(f"Invalid JSON payload from {host}", status_code=status) from exc

    def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        for attempt in self._retrying():
            with attempt:
                return self._send(url, params, headers, timeout or self.timeout)
        raise AssertionError("unreachable")
