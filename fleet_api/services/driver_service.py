"""Driver registry lookups."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from fleet_api.models.driver import Driver


@dataclass(frozen=True)
class ReportingDriver:
    """Session-free copy of the driver who raised an alert."""

    driver_id: int
    display_name: str
    contact_number: str
    registration_code: str


def get_driver_by_registration_code(db: Session, registration_code: str) -> Driver | None:
    """Get driver by registration code."""
    return db.execute(
        select(Driver).where(Driver.registration_code == registration_code)
    ).scalar_one_or_none()


def snapshot_driver(driver: Driver) -> ReportingDriver:
    return ReportingDriver(
        driver_id=driver.id,
        display_name=driver.display_name,
        contact_number=driver.phone_number,
        registration_code=driver.registration_code,
    )
