"""SOS e-mail notification: envelope composition and SMTP delivery."""

from __future__ import annotations

import asyncio
import smtplib
import socket
from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import EmailMessage
from html import escape
from zoneinfo import ZoneInfo

from fleet_api.core.config import MailConfig
from fleet_api.core.logging import AlertLogger, StdlibAlertLogger
from fleet_api.core.sos_policies import MAPS_LINK_TEMPLATE
from fleet_api.services.driver_service import ReportingDriver


@dataclass(frozen=True)
class NotificationEnvelope:
    """One outgoing notice. Built per alert, never persisted."""

    recipient: str
    subject: str
    body_html: str


def maps_link(latitude: float, longitude: float) -> str:
    return MAPS_LINK_TEMPLATE.format(lat=latitude, lon=longitude)


def format_alert_time(moment: datetime | None = None, tz_name: str = "Asia/Kolkata") -> str:
    """Render a moment as local wall time, e.g. ``19/10/2026, 07:30:05 pm``."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(ZoneInfo(tz_name))
    return local.strftime("%d/%m/%Y, %I:%M:%S ") + local.strftime("%p").lower()


def build_sos_envelope(
    recipient: str,
    driver: ReportingDriver,
    location_name: str,
    latitude: float,
    longitude: float,
    alerted_at: str,
) -> NotificationEnvelope:
    """Compose the admin SOS mail for one alert."""
    name = escape(driver.display_name)
    phone = escape(driver.contact_number)
    link = escape(maps_link(latitude, longitude), quote=True)
    body = f"""\
<div style="font-family: Arial, sans-serif; background:#f4f6f8; padding:16px;">
  <div style="max-width:520px; margin:auto; background:#ffffff; border-radius:12px; overflow:hidden;">
    <div style="background:#dc2626; color:#ffffff; padding:16px; text-align:center;">
      <h2 style="margin:0; font-size:20px;">SOS ALERT</h2>
      <p style="margin:4px 0 0; font-size:13px;">Immediate attention required</p>
    </div>
    <div style="padding:16px; color:#111827; font-size:14px; line-height:1.5;">
      <p style="margin:0 0 6px;"><strong>Driver</strong><br />
        {name} <span style="color:#6b7280;">({escape(driver.registration_code)})</span></p>
      <p style="margin:0;"><strong>Phone</strong><br />
        <a href="tel:{phone}" style="color:#2563eb; text-decoration:none;">{phone}</a></p>
      <hr style="border:none; border-top:1px solid #e5e7eb; margin:14px 0;" />
      <p style="margin:0 0 6px;"><strong>Location</strong><br />{escape(location_name)}</p>
      <p style="margin:0; color:#6b7280; font-size:13px;">Coordinates: {latitude}, {longitude}</p>
      <div style="text-align:center; margin:16px 0;">
        <a href="{link}" target="_blank" style="background:#dc2626; color:#ffffff; padding:10px 18px;
           border-radius:999px; text-decoration:none; font-weight:bold;">View on Google Maps</a>
      </div>
      <div style="background:#f9fafb; padding:10px; border-radius:8px; text-align:center; font-size:13px;">
        <strong>Alert Time</strong><br />{escape(alerted_at)}
      </div>
    </div>
    <div style="background:#f3f4f6; padding:10px; text-align:center; font-size:12px; color:#6b7280;">
      This is an automated emergency alert. Please respond immediately.
    </div>
  </div>
</div>
"""
    return NotificationEnvelope(
        recipient=recipient,
        subject=f"SOS ALERT: {driver.display_name}",
        body_html=body,
    )


class EmailNotifier:
    """Single-attempt SMTP sender. ``send`` reports failure as ``False``."""

    def __init__(self, config: MailConfig, logger: AlertLogger | None = None) -> None:
        self._config = config
        self._log = logger or StdlibAlertLogger()

    @property
    def admin_email(self) -> str | None:
        return self._config.admin_email

    async def send(self, envelope: NotificationEnvelope) -> bool:
        if not self._config.is_configured or not envelope.recipient:
            self._log.log_error(
                "Mail skipped: SMTP or recipient not configured",
                stage="notify",
                reason="config",
                subject=envelope.subject,
            )
            return False
        try:
            msg = self._compose(envelope)
        except Exception as exc:  # noqa: BLE001 - CR/LF in a header, an unparseable address
            self._log.log_error("Mail not composed", stage="notify", reason="compose", error=str(exc))
            return False
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, socket.timeout, OSError) as exc:
            self._log.log_error(
                "Mail delivery failed", stage="notify", reason="smtp", recipient=envelope.recipient, error=str(exc)
            )
            return False
        except Exception as exc:  # noqa: BLE001 - adapter contract is to never raise
            self._log.log_error(
                "Mail delivery failed", stage="notify", reason="unexpected", recipient=envelope.recipient, error=repr(exc)
            )
            return False
        self._log.log_info("Mail sent", stage="notify", recipient=envelope.recipient)
        return True

    def _compose(self, envelope: NotificationEnvelope) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = envelope.subject
        msg["From"] = self._config.from_address
        msg["To"] = envelope.recipient
        msg.set_content("An SOS alert was raised. Open this message in an HTML-capable client.")
        msg.add_alternative(envelope.body_html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self._config.host, self._config.port, timeout=self._config.timeout_seconds) as s:
            s.ehlo()
            if self._config.use_tls:
                s.starttls()
                s.ehlo()
            if self._config.user and self._config.password:
                s.login(self._config.user, self._config.password)
            s.send_message(msg)
