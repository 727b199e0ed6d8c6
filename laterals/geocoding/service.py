"""Bounded, memoised reverse geocoding for a batch of positions."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from types import TracebackType
from typing import Callable, Iterable

from laterals.common.constants import ADDRESS_NOT_FOUND, DEFAULT_GEOCODE_TIMEOUT_S, GEOCODING_FAILED
from laterals.common.models import GeocodeResult, Position

logger = logging.getLogger(__name__)

Geocoder = Callable[[float, float], GeocodeResult]

NOT_FOUND = GeocodeResult(address=ADDRESS_NOT_FOUND, details={})
FAILED = GeocodeResult(address=GEOCODING_FAILED, details={})


class GeocodingService:
    """Runs a geocoder on a worker pool with a per-call timeout.

    Results are cached per rounded coordinate for the lifetime of the service.
    Failures never raise: a timeout yields ``NOT_FOUND`` and a provider error
    yields ``FAILED``. Neither is cached, so a later call may still succeed.
    """

    def __init__(
        self,
        geocoder: Geocoder | None,
        *,
        timeout_seconds: float = DEFAULT_GEOCODE_TIMEOUT_S,
        max_workers: int = 4,
        precision: int = 6,
    ) -> None:
        self.geocoder = geocoder
        self.timeout_seconds = timeout_seconds
        self.precision = precision
        self.cache: dict[str, GeocodeResult] = {}
        self.lock = threading.Lock()
        self.counters = {"requested": 0, "cache_hits": 0, "failures": 0, "timeouts": 0}
        self.executor = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="geocode") if geocoder is not None else None
        )

    @classmethod
    def from_config(cls, geocoding_cfg: dict, geocoder: Geocoder | None) -> "GeocodingService":
        return cls(
            geocoder if geocoding_cfg.get("enabled", True) else None,
            timeout_seconds=float(geocoding_cfg["timeout_seconds"]),
            max_workers=int(geocoding_cfg["max_workers"]),
            precision=int(geocoding_cfg["cache_precision"]),
        )

    def close(self) -> None:
        if self.executor is not None:
            # Do not wait on a hung provider call.
            self.executor.shutdown(wait=False, cancel_futures=True)
            self.executor = None

    def __enter__(self) -> "GeocodingService":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def cache_key(self, lng: float, lat: float) -> str:
        return f"{lng:.{self.precision}f},{lat:.{self.precision}f}"

    def _count(self, name: str) -> None:
        with self.lock:
            self.counters[name] += 1

    def _lookup(self, lng: float, lat: float) -> GeocodeResult:
        try:
            result = self.geocoder(lng, lat)
        except Exception as exc:
            self._count("failures")
            logger.warning(
                "reverse geocoding failed for %s: %s",
                self.cache_key(lng, lat),
                exc,
                extra={"error_code": getattr(exc, "error_code", "GEOCODE_UNAVAILABLE")},
            )
            return FAILED
        with self.lock:
            return self.cache.setdefault(self.cache_key(lng, lat), result)

    def submit(self, position: Position) -> Future:
        lng, lat = position
        self._count("requested")
        future: Future = Future()
        with self.lock:
            cached = self.cache.get(self.cache_key(lng, lat))
            if cached is not None:
                self.counters["cache_hits"] += 1
        if cached is not None:
            future.set_result(cached)
            return future
        if self.executor is None:
            future.set_result(NOT_FOUND)
            return future
        return self.executor.submit(self._lookup, lng, lat)

    def result(self, future: Future) -> GeocodeResult:
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            self._count("timeouts")
            logger.warning("reverse geocoding timed out after %ss", self.timeout_seconds, extra={"reason": "geocode_timeout"})
            return NOT_FOUND

    def geocode(self, lng: float, lat: float) -> GeocodeResult:
        return self.result(self.submit((lng, lat)))

    def geocode_many(self, positions: Iterable[Position]) -> list[GeocodeResult]:
        futures = [self.submit(position) for position in positions]
        return [self.result(future) for future in futures]
