"""Mapbox reverse geocoding client."""

from __future__ import annotations

import os
from typing import Any

from laterals.common.constants import ADDRESS_NOT_FOUND
from laterals.common.errors import GeocodeUnavailableError
from laterals.common.http import HttpClient, TimeoutConfig
from laterals.common.models import GeocodeResult

MAPBOX_PLACES_ENDPOINT = "https://api.mapbox.com/geocoding/v5/mapbox.places"


def _context_text(context: list[dict], prefix: str) -> str:
    for item in context:
        if str(item.get("id", "")).startswith(prefix):
            return str(item.get("text") or "")
    return ""


def parse_mapbox_response(payload: dict[str, Any]) -> GeocodeResult:
    features = payload.get("features") or []
    if not features:
        return GeocodeResult(address=ADDRESS_NOT_FOUND, details={})

    feature = features[0]
    context = feature.get("context") or []
    street = str((feature.get("properties") or {}).get("address") or feature.get("text") or "")
    details = {
        "street": street,
        "city": _context_text(context, "place"),
        "state": _context_text(context, "region"),
        "zip": _context_text(context, "postcode"),
    }
    parts = [details["street"], details["city"], details["state"], details["zip"]]
    address = ", ".join(part for part in parts if part) or feature.get("place_name") or ADDRESS_NOT_FOUND
    details["full_address"] = address
    return GeocodeResult(address=address, details=details)


class MapboxGeocoder:
    def __init__(
        self,
        access_token: str | None,
        *,
        http_client: HttpClient | None = None,
        endpoint: str = MAPBOX_PLACES_ENDPOINT,
        timeout: TimeoutConfig | None = None,
        rate_per_sec: float = 10.0,
    ) -> None:
        self.access_token = access_token
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout or TimeoutConfig()
        self.owns_client = http_client is None
        self.client = http_client or HttpClient(timeout=self.timeout, rate_per_sec=rate_per_sec)

    @classmethod
    def from_config(cls, geocoding_cfg: dict, http_client: HttpClient | None = None) -> "MapboxGeocoder":
        seconds = float(geocoding_cfg["timeout_seconds"])
        return cls(
            os.environ.get(geocoding_cfg["access_token_env"]),
            http_client=http_client,
            endpoint=geocoding_cfg["endpoint"],
            timeout=TimeoutConfig(connect=seconds, read=seconds),
            rate_per_sec=float(geocoding_cfg.get("rate_per_sec", 10.0)),
        )

    def close(self) -> None:
        if self.owns_client:
            self.client.close()

    def __call__(self, lng: float, lat: float) -> GeocodeResult:
        if not self.access_token:
            raise GeocodeUnavailableError("Mapbox access token is not configured")
        payload = self.client.get_json(
            f"{self.endpoint}/{lng},{lat}.json",
            params={"access_token": self.access_token, "types": "address"},
            timeout=self.timeout,
        )
        return parse_mapbox_response(payload)
