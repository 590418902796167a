"""SQLAlchemy models."""

from __future__ import annotations

from fleet_api.models.driver import Driver
from fleet_api.models.sos_alert import SosAlert

__all__ = [
    "Driver",
    "SosAlert",
]
