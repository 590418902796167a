"""SOS alert schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SosTriggerRequest(BaseModel):
    """Body of POST /sos/trigger as sent by the driver app."""

    model_config = ConfigDict(populate_by_name=True)

    driver_id: str = Field(..., alias="driverId", min_length=1, description="Driver registration code")
    # int first: 20 stays 20, so the stored fallback reads "Lat: 20, ..." as sent
    latitude: int | float
    longitude: int | float


class SosTriggerResponse(BaseModel):
    success: bool
    message: str


class SosAlertResponse(BaseModel):
    id: int
    driver_id: int
    registration_code: str
    driver_name: str
    latitude: float
    longitude: float
    location_name: str
    created_at: datetime
