"""HTTP client for the SOS trigger endpoint, used by the driver app."""

from __future__ import annotations

from dataclasses import dataclass

import httpx


class SosTriggerError(Exception):
    """Raised when the trigger call fails or the server rejects it."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class TriggerResult:
    success: bool
    message: str
    status_code: int


class SosApiClient:
    """Thin async wrapper around ``POST /sos/trigger``."""

    def __init__(self, base_url: str, http_client: httpx.AsyncClient | None = None, timeout: float = 15.0) -> None:
        self._url = base_url.rstrip("/") + "/sos/trigger"
        self._http_client = http_client
        self._timeout = timeout

    async def trigger(self, driver_id: str, latitude: float, longitude: float) -> TriggerResult:
        payload = {"driverId": driver_id, "latitude": latitude, "longitude": longitude}
        try:
            if self._http_client is not None:
                response = await self._http_client.post(self._url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            raise SosTriggerError(f"SOS request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("message", "") if isinstance(body, dict) else ""

        if response.status_code != 200:
            raise SosTriggerError(message or f"HTTP {response.status_code}", status_code=response.status_code)
        return TriggerResult(
            success=bool(body.get("success", False)),
            message=message,
            status_code=response.status_code,
        )
