"""Reverse geocoding adapter (Google Maps Geocoding API)."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from fleet_api.core.config import GeocodingConfig
from fleet_api.core.logging import AlertLogger, StdlibAlertLogger


def fallback_location(latitude: float, longitude: float) -> str:
    """Coordinate string used whenever no address can be resolved."""
    return f"Lat: {latitude}, Lng: {longitude}"


class GeocodingAdapter:
    """Turns a coordinate pair into a human-readable address.

    ``resolve_address`` never raises: a missing API key, a non-OK provider
    status, a network error, a timeout or an unreadable payload all yield
    :func:`fallback_location`. There is no retry.
    """

    def __init__(
        self,
        config: GeocodingConfig,
        http_client: httpx.AsyncClient | None = None,
        logger: AlertLogger | None = None,
    ) -> None:
        self._config = config
        self._http_client = http_client
        self._log = logger or StdlibAlertLogger()

    async def resolve_address(self, latitude: float, longitude: float) -> str:
        fallback = fallback_location(latitude, longitude)
        if not self._config.is_configured:
            self._log.log_error("Geocoding skipped: API key missing", stage="geocode", reason="config")
            return fallback

        try:
            data = await asyncio.wait_for(
                self._fetch(latitude, longitude),
                timeout=self._config.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            self._log.log_error("Geocoding timed out", stage="geocode", reason="timeout")
            return fallback
        except httpx.HTTPError as exc:
            self._log.log_error("Geocoding network error", stage="geocode", reason="network", error=str(exc))
            return fallback
        except ValueError as exc:
            self._log.log_error("Geocoding returned invalid JSON", stage="geocode", reason="provider", error=str(exc))
            return fallback
        except Exception as exc:  # noqa: BLE001 - adapter contract is to never raise
            self._log.log_error("Geocoding failed", stage="geocode", reason="unexpected", error=repr(exc))
            return fallback

        address = _first_address(data)
        if address is None:
            status = data.get("status") if isinstance(data, dict) else None
            self._log.log_error("Geocoding provider error", stage="geocode", reason="provider", status=status)
            return fallback
        return address

    async def _fetch(self, latitude: float, longitude: float) -> Any:
        params = {"latlng": f"{latitude},{longitude}", "key": self._config.api_key}
        if self._http_client is not None:
            response = await self._http_client.get(self._config.url, params=params, timeout=self._config.timeout_seconds)
        else:
            async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
                response = await client.get(self._config.url, params=params)
        response.raise_for_status()
        return response.json()


def _first_address(data: Any) -> str | None:
    if not isinstance(data, dict) or data.get("status") != "OK":
        return None
    results = data.get("results") or []
    if not results or not isinstance(results[0], dict):
        return None
    address = results[0].get("formatted_address")
    return address or None
