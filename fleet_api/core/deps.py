"""FastAPI dependencies."""

from __future__ import annotations

from fleet_api.core.config import settings
from fleet_api.db.session import SessionLocal
from fleet_api.services.sos_service import SosAlertPipeline

_pipeline: SosAlertPipeline | None = None


def get_sos_pipeline() -> SosAlertPipeline:
    """Return the process-wide SOS pipeline, built from settings on first use."""
    global _pipeline
    if _pipeline is None:
        _pipeline = SosAlertPipeline.from_settings(settings, session_factory=SessionLocal)
    return _pipeline


async def close_sos_pipeline() -> None:
    if _pipeline is not None:
        await _pipeline.aclose()
