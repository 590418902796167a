"""Pytest fixtures."""

import asyncio
import os
import time

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["GOOGLE_MAPS_KEY"] = ""
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from fleet_api.core.deps import get_sos_pipeline
from fleet_api.db.base import Base
from fleet_api.db.session import get_db
from fleet_api.main import app
from fleet_api.models import Driver, SosAlert  # noqa: F401 - register for create_all
from fleet_api.services.sos_service import SosAlertPipeline

TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class RecordingLogger:
    """AlertLogger that keeps every entry for assertions."""

    def __init__(self):
        self.entries = []

    def log_info(self, message, **context):
        self.entries.append(("info", message, context))

    def log_error(self, message, **context):
        self.entries.append(("error", message, context))

    def errors(self, stage=None):
        return [e for e in self.entries if e[0] == "error" and (stage is None or e[2].get("stage") == stage)]


class FakeGeocoder:
    def __init__(self, address="MG Road, Bhubaneswar", delay=0.0):
        self.address = address
        self.delay = delay
        self.calls = []

    async def resolve_address(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.address


class FakeNotifier:
    def __init__(self, result=True, error=None, admin_email="admin@fleet.test"):
        self.result = result
        self.error = error
        self.admin_email = admin_email
        self.sent = []

    async def send(self, envelope):
        self.sent.append(envelope)
        if self.error is not None:
            raise self.error
        return self.result


def wait_for(predicate, timeout=3.0, interval=0.02):
    """Poll until predicate() is truthy; background alerts run on the app's loop thread."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


def alerts_for(registration_code):
    db = TestingSessionLocal()
    try:
        stmt = (
            select(SosAlert)
            .join(Driver, Driver.id == SosAlert.driver_id)
            .where(Driver.registration_code == registration_code)
            .order_by(SosAlert.id)
        )
        return list(db.execute(stmt).scalars().all())
    finally:
        db.close()


def ensure_driver(registration_code, first_name="Ravi", last_name="Kumar", phone_number="+919999999999"):
    db = TestingSessionLocal()
    try:
        driver = db.execute(
            select(Driver).where(Driver.registration_code == registration_code)
        ).scalar_one_or_none()
        if driver is None:
            driver = Driver(
                registration_code=registration_code,
                first_name=first_name,
                last_name=last_name,
                phone_number=phone_number,
            )
            db.add(driver)
            db.commit()
            db.refresh(driver)
        return driver.id
    finally:
        db.close()


@pytest.fixture(scope="session")
def setup_db():
    """Create tables once for test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def pipeline(setup_db, geocoder, notifier, recording_logger):
    return SosAlertPipeline(
        geocoder=geocoder,
        notifier=notifier,
        session_factory=TestingSessionLocal,
        logger=recording_logger,
    )


@pytest.fixture
def client(setup_db, pipeline):
    """Test client with overridden DB and SOS pipeline."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sos_pipeline] = lambda: pipeline
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
