"""SOS alerts API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from fleet_api.core.deps import get_sos_pipeline
from fleet_api.core.sos_policies import (
    DRIVER_NOT_FOUND_MESSAGE,
    SERVER_BUSY_MESSAGE,
    TRIGGER_OK_MESSAGE,
)
from fleet_api.db.session import get_db
from fleet_api.schemas.sos import SosAlertResponse, SosTriggerRequest, SosTriggerResponse
from fleet_api.services.driver_service import ReportingDriver, get_driver_by_registration_code, snapshot_driver
from fleet_api.services.sos_service import SosAlertPipeline, get_alert, list_alerts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sos", tags=["sos"])


async def _start_alert(pipeline: SosAlertPipeline, driver: ReportingDriver, latitude: float, longitude: float) -> None:
    """Runs after the response is sent; hands the alert to a detached task."""
    pipeline.dispatch(driver, latitude, longitude)


@router.post(
    "/trigger",
    response_model=SosTriggerResponse,
    responses={404: {"description": "Driver not found"}, 500: {"description": "Server busy"}},
)
def trigger_sos(
    data: SosTriggerRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    pipeline: SosAlertPipeline = Depends(get_sos_pipeline),
):
    """Acknowledge an SOS as soon as the driver is known; geocode, save and mail afterwards."""
    try:
        driver = get_driver_by_registration_code(db, data.driver_id)
        if driver is None:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"message": DRIVER_NOT_FOUND_MESSAGE},
            )
        reporting = snapshot_driver(driver)
        background_tasks.add_task(_start_alert, pipeline, reporting, data.latitude, data.longitude)
        logger.info("SOS triggered by driver=%s", reporting.registration_code)
        return SosTriggerResponse(success=True, message=TRIGGER_OK_MESSAGE)
    except Exception:
        logger.exception("SOS route error")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": SERVER_BUSY_MESSAGE},
        )


def _to_response(alert, driver) -> SosAlertResponse:
    return SosAlertResponse(
        id=alert.id,
        driver_id=alert.driver_id,
        registration_code=driver.registration_code,
        driver_name=driver.display_name,
        latitude=alert.latitude,
        longitude=alert.longitude,
        location_name=alert.location_name,
        created_at=alert.created_at,
    )


@router.get("/alerts", response_model=list[SosAlertResponse])
def list_recent_alerts(
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """List SOS alerts, newest first."""
    return [_to_response(alert, driver) for alert, driver in list_alerts(db, limit)]


@router.get("/alerts/{alert_id}", response_model=SosAlertResponse)
def get_one_alert(alert_id: int, db: Session = Depends(get_db)):
    """Get a single SOS alert."""
    row = get_alert(db, alert_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="SOS alert not found")
    return _to_response(*row)
