"""SOS alert service.

The trigger endpoint answers as soon as the driver is identified. Everything
slower (reverse geocoding, the alert row, the admin mail) runs afterwards in a
detached task owned by :class:`SosAlertPipeline`. Nothing in that task can
change the response already sent, and every failure in it is logged and
dropped.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from fleet_api.core.config import GeocodingConfig, MailConfig, Settings
from fleet_api.core.logging import AlertLogger, StdlibAlertLogger
from fleet_api.models.driver import Driver
from fleet_api.models.sos_alert import SosAlert
from fleet_api.services.driver_service import ReportingDriver
from fleet_api.services.geocoding_service import GeocodingAdapter
from fleet_api.services.notification_service import (
    EmailNotifier,
    build_sos_envelope,
    format_alert_time,
)


def record_alert(
    db: Session,
    driver_id: int,
    latitude: float,
    longitude: float,
    location_name: str,
) -> SosAlert:
    """Insert one SOS alert row."""
    alert = SosAlert(
        driver_id=driver_id,
        latitude=latitude,
        longitude=longitude,
        location_name=location_name,
    )
    db.add(alert)
    db.commit()
    db.refresh(alert)
    return alert


def list_alerts(db: Session, limit: int = 20) -> list[tuple[SosAlert, Driver]]:
    """Recent alerts with their drivers, newest first."""
    stmt = (
        select(SosAlert, Driver)
        .join(Driver, Driver.id == SosAlert.driver_id)
        .order_by(SosAlert.created_at.desc(), SosAlert.id.desc())
        .limit(limit)
    )
    return [(alert, driver) for alert, driver in db.execute(stmt).all()]


def get_alert(db: Session, alert_id: int) -> tuple[SosAlert, Driver] | None:
    row = db.execute(
        select(SosAlert, Driver).join(Driver, Driver.id == SosAlert.driver_id).where(SosAlert.id == alert_id)
    ).first()
    if row is None:
        return None
    return row[0], row[1]


class SosAlertPipeline:
    """Owns the background half of an SOS trigger."""

    def __init__(
        self,
        geocoder: GeocodingAdapter,
        notifier: EmailNotifier,
        session_factory: Callable[[], Session],
        logger: AlertLogger | None = None,
        alert_timezone: str = "Asia/Kolkata",
        persist_timeout: float = 5.0,
        notify_timeout: float = 10.0,
        shutdown_timeout: float = 20.0,
    ) -> None:
        self._geocoder = geocoder
        self._notifier = notifier
        self._session_factory = session_factory
        self._log = logger or StdlibAlertLogger()
        self._alert_timezone = alert_timezone
        self._persist_timeout = persist_timeout
        self._notify_timeout = notify_timeout
        self._shutdown_timeout = shutdown_timeout
        # Strong references so the loop does not garbage-collect running alerts
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        s: Settings,
        session_factory: Callable[[], Session],
        logger: AlertLogger | None = None,
    ) -> SosAlertPipeline:
        log = logger or StdlibAlertLogger()
        return cls(
            geocoder=GeocodingAdapter(GeocodingConfig.from_settings(s), logger=log),
            notifier=EmailNotifier(MailConfig.from_settings(s), logger=log),
            session_factory=session_factory,
            logger=log,
            alert_timezone=s.alert_timezone,
            persist_timeout=s.persist_timeout_seconds,
            notify_timeout=s.notify_timeout_seconds,
            shutdown_timeout=s.shutdown_grace_seconds,
        )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, driver: ReportingDriver, latitude: float, longitude: float) -> asyncio.Task:
        """Start the background run and return immediately. Must be called on the event loop."""
        task = asyncio.get_running_loop().create_task(
            self.run(driver, latitude, longitude),
            name=f"sos-alert-{driver.registration_code}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, driver: ReportingDriver, latitude: float, longitude: float) -> None:
        try:
            location_name = await self._geocoder.resolve_address(latitude, longitude)
            await asyncio.gather(
                self._persist(driver, latitude, longitude, location_name),
                self._notify(driver, latitude, longitude, location_name),
            )
        except Exception as exc:  # noqa: BLE001 - background run must never escape
            self._log.log_error(
                "SOS background task error",
                stage="pipeline",
                driver=driver.registration_code,
                error=repr(exc),
            )

    async def _persist(self, driver: ReportingDriver, latitude: float, longitude: float, location_name: str) -> None:
        try:
            alert_id = await asyncio.wait_for(
                asyncio.to_thread(self._insert, driver.driver_id, latitude, longitude, location_name),
                timeout=self._persist_timeout,
            )
        except asyncio.TimeoutError:
            # the worker thread is not killed and may still commit the row
            self._log.log_error(
                "SOS alert save timed out",
                stage="persist",
                reason="timeout",
                driver=driver.registration_code,
                timeout_seconds=self._persist_timeout,
            )
            return
        except Exception as exc:  # noqa: BLE001 - must not block the notification
            self._log.log_error(
                "SOS alert could not be saved",
                stage="persist",
                reason="error",
                driver=driver.registration_code,
                error=repr(exc),
            )
            return
        self._log.log_info("SOS alert saved", stage="persist", driver=driver.registration_code, alert_id=alert_id)

    def _insert(self, driver_id: int, latitude: float, longitude: float, location_name: str) -> int:
        db = self._session_factory()
        try:
            return record_alert(db, driver_id, latitude, longitude, location_name).id
        finally:
            db.close()

    async def _notify(
        self,
        driver: ReportingDriver,
        latitude: float,
        longitude: float,
        location_name: str,
    ) -> None:
        try:
            envelope = build_sos_envelope(
                recipient=self._notifier.admin_email or "",
                driver=driver,
                location_name=location_name,
                latitude=latitude,
                longitude=longitude,
                alerted_at=format_alert_time(tz_name=self._alert_timezone),
            )
            sent = await asyncio.wait_for(self._notifier.send(envelope), timeout=self._notify_timeout)
        except Exception as exc:  # noqa: BLE001 - must not block the alert row
            self._log.log_error(
                "SOS notification failed",
                stage="notify",
                driver=driver.registration_code,
                error=repr(exc),
            )
            return
        if not sent:
            self._log.log_error("SOS notification not delivered", stage="notify", driver=driver.registration_code)

    async def aclose(self) -> None:
        """Let running alerts finish on shutdown; cancel only those past the grace period.

        The driver was already told the SOS went through, so every cancelled
        alert is logged.
        """
        tasks = list(self._tasks)
        if not tasks:
            return
        _, stragglers = await asyncio.wait(tasks, timeout=self._shutdown_timeout)
        for task in stragglers:
            task.cancel()
            self._log.log_error(
                "SOS alert cancelled at shutdown",
                stage="shutdown",
                task=task.get_name(),
                grace_seconds=self._shutdown_timeout,
            )
        if stragglers:
            await asyncio.gather(*stragglers, return_exceptions=True)
