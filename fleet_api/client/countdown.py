"""Cancellable SOS countdown for the driver app.

Pressing SOS starts a short visible countdown. If the driver does not cancel
it, the controller asks the device for a position and sends exactly one
trigger request. Cancelling clears the pending timer before it can fire, so a
cancelled countdown never reaches the network.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from fleet_api.client.api_client import SosTriggerError, TriggerResult
from fleet_api.core.sos_policies import (
    COUNTDOWN_START,
    GEOLOCATION_TIMEOUT_SECONDS,
    NOTICE_FAILED,
    NOTICE_NO_LOCATION,
    NOTICE_SENT,
)

logger = logging.getLogger(__name__)


class CountdownState(str, enum.Enum):
    IDLE = "IDLE"
    COUNTING = "COUNTING"
    DISPATCHED = "DISPATCHED"
    CANCELLED = "CANCELLED"


class GeolocationError(Exception):
    """Position denied, unavailable or not obtained in time."""


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float
    accuracy: float | None = None


class PositionProvider(Protocol):
    async def get_position(self, timeout: float, high_accuracy: bool = True) -> Position: ...


class TriggerClient(Protocol):
    async def trigger(self, driver_id: str, latitude: float, longitude: float) -> TriggerResult: ...


# (level, message) where level is "success" or "error"
NoticeSink = Callable[[str, str], None]


def _log_notice(level: str, message: str) -> None:
    if level == "error":
        logger.error(message)
    else:
        logger.info(message)


class SosCountdownController:
    """State machine: IDLE -> COUNTING(n..0) -> DISPATCHED -> IDLE, or COUNTING -> CANCELLED -> IDLE."""

    def __init__(
        self,
        driver_id: str,
        locator: PositionProvider,
        trigger_client: TriggerClient,
        notices: NoticeSink | None = None,
        start_from: int = COUNTDOWN_START,
        tick_seconds: float = 1.0,
        geolocation_timeout: float = GEOLOCATION_TIMEOUT_SECONDS,
        on_tick: Callable[[int], None] | None = None,
    ) -> None:
        if start_from < 1:
            raise ValueError("start_from must be at least 1")
        self._driver_id = driver_id
        self._locator = locator
        self._trigger_client = trigger_client
        self._notices = notices or _log_notice
        self._start_from = start_from
        self._tick_seconds = tick_seconds
        self._geolocation_timeout = geolocation_timeout
        self._on_tick = on_tick

        self._state = CountdownState.IDLE
        self._remaining = start_from
        self._timer: asyncio.TimerHandle | None = None
        self._dispatch_task: asyncio.Task | None = None

    @property
    def state(self) -> CountdownState:
        return self._state

    @property
    def remaining(self) -> int:
        return self._remaining

    def press(self) -> bool:
        """Start a countdown. Ignored unless idle; returns whether one started."""
        if self._state is not CountdownState.IDLE:
            return False
        self._state = CountdownState.COUNTING
        self._remaining = self._start_from
        self._emit_tick()
        self._schedule_tick()
        return True

    def cancel(self) -> bool:
        """Abort a running countdown. Nothing is sent. Returns whether a countdown was cancelled."""
        if self._state is not CountdownState.COUNTING:
            return False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._state = CountdownState.CANCELLED
        self._reset()
        return True

    async def wait_settled(self) -> None:
        """Wait for the in-flight dispatch, if any, to finish."""
        if self._dispatch_task is not None:
            await self._dispatch_task

    def _schedule_tick(self) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._tick_seconds, self._tick)

    def _tick(self) -> None:
        self._timer = None
        if self._state is not CountdownState.COUNTING:
            return
        self._remaining -= 1
        self._emit_tick()
        if self._remaining > 0:
            self._schedule_tick()
            return
        self._state = CountdownState.DISPATCHED
        self._dispatch_task = asyncio.get_running_loop().create_task(self._dispatch())

    def _emit_tick(self) -> None:
        if self._on_tick is not None:
            self._on_tick(self._remaining)

    async def _dispatch(self) -> None:
        try:
            try:
                position = await asyncio.wait_for(
                    self._locator.get_position(timeout=self._geolocation_timeout, high_accuracy=True),
                    timeout=self._geolocation_timeout,
                )
            except (GeolocationError, asyncio.TimeoutError) as exc:
                logger.warning("SOS not sent, no position: %s", exc)
                self._notices("error", NOTICE_NO_LOCATION)
                return

            try:
                result = await self._trigger_client.trigger(self._driver_id, position.latitude, position.longitude)
            except SosTriggerError as exc:
                logger.error("SOS trigger failed: %s", exc)
                self._notices("error", NOTICE_FAILED)
                return

            if result.success:
                self._notices("success", NOTICE_SENT)
            else:
                self._notices("error", NOTICE_FAILED)
        except Exception:
            # the driver must always learn the SOS did not go out
            logger.exception("SOS dispatch failed")
            self._notices("error", NOTICE_FAILED)
        finally:
            self._reset()

    def _reset(self) -> None:
        self._state = CountdownState.IDLE
        self._remaining = self._start_from
