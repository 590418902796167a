"""SOS background pipeline tests: each side effect is guarded on its own."""

import asyncio

from conftest import FakeGeocoder, FakeNotifier, RecordingLogger, TestingSessionLocal, alerts_for, ensure_driver

from fleet_api.services.driver_service import ReportingDriver
from fleet_api.services.sos_service import SosAlertPipeline


def _driver(code):
    driver_id = ensure_driver(code, first_name="Sunil", last_name="Das", phone_number="+918888888888")
    return ReportingDriver(
        driver_id=driver_id,
        display_name="Sunil Das",
        contact_number="+918888888888",
        registration_code=code,
    )


def _broken_session_factory():
    raise RuntimeError("pool exhausted")


def test_persist_failure_still_sends_mail(setup_db):
    driver = _driver("PL200")
    notifier = FakeNotifier()
    log = RecordingLogger()
    p = SosAlertPipeline(FakeGeocoder(), notifier, _broken_session_factory, logger=log)

    asyncio.run(p.run(driver, 20.29, 85.82))

    assert len(notifier.sent) == 1
    assert notifier.sent[0].subject == "SOS ALERT: Sunil Das"
    assert log.errors(stage="persist")[0][2]["reason"] == "error"
    assert alerts_for("PL200") == []


def test_mail_failure_still_saves_row(setup_db):
    driver = _driver("PL201")
    log = RecordingLogger()
    p = SosAlertPipeline(
        FakeGeocoder(address="Janpath, Bhubaneswar"),
        FakeNotifier(error=ConnectionError("smtp refused")),
        TestingSessionLocal,
        logger=log,
    )

    asyncio.run(p.run(driver, 20.27, 85.84))

    rows = alerts_for("PL201")
    assert len(rows) == 1
    assert rows[0].location_name == "Janpath, Bhubaneswar"
    assert log.errors(stage="notify")


def test_undelivered_mail_is_logged(setup_db):
    driver = _driver("PL202")
    log = RecordingLogger()
    p = SosAlertPipeline(FakeGeocoder(), FakeNotifier(result=False), TestingSessionLocal, logger=log)

    asyncio.run(p.run(driver, 1.0, 2.0))

    assert len(alerts_for("PL202")) == 1
    assert log.errors(stage="notify")


def test_slow_persistence_is_bounded(setup_db):
    driver = _driver("PL203")
    notifier = FakeNotifier()
    log = RecordingLogger()

    def slow_factory():
        import time

        time.sleep(0.5)
        return TestingSessionLocal()

    p = SosAlertPipeline(FakeGeocoder(), notifier, slow_factory, logger=log, persist_timeout=0.05)

    asyncio.run(p.run(driver, 1.0, 2.0))

    assert notifier.sent
    entry = log.errors(stage="persist")[0]
    assert entry[1] == "SOS alert save timed out"
    assert entry[2]["reason"] == "timeout"


def test_unexpected_geocoder_error_is_contained(setup_db):
    class ExplodingGeocoder:
        async def resolve_address(self, latitude, longitude):
            raise KeyError("boom")

    driver = _driver("PL204")
    notifier = FakeNotifier()
    log = RecordingLogger()
    p = SosAlertPipeline(ExplodingGeocoder(), notifier, TestingSessionLocal, logger=log)

    asyncio.run(p.run(driver, 1.0, 2.0))

    assert log.errors(stage="pipeline")
    assert notifier.sent == []


def test_dispatch_is_detached_and_tracked(setup_db):
    driver = _driver("PL205")
    notifier = FakeNotifier()
    p = SosAlertPipeline(FakeGeocoder(delay=0.05), notifier, TestingSessionLocal)

    async def scenario():
        task = p.dispatch(driver, 3.0, 4.0)
        assert p.pending == 1
        assert not task.done()
        await task
        return p.pending

    assert asyncio.run(scenario()) == 0
    assert len(notifier.sent) == 1


def test_aclose_lets_running_alerts_finish(setup_db):
    driver = _driver("PL206")
    notifier = FakeNotifier()
    log = RecordingLogger()
    p = SosAlertPipeline(FakeGeocoder(delay=0.1), notifier, TestingSessionLocal, logger=log, shutdown_timeout=5.0)

    async def scenario():
        task = p.dispatch(driver, 3.0, 4.0)
        await asyncio.sleep(0)
        await p.aclose()
        return task

    task = asyncio.run(scenario())
    assert not task.cancelled()
    assert len(notifier.sent) == 1
    assert len(alerts_for("PL206")) == 1
    assert log.errors(stage="shutdown") == []
    assert p.pending == 0


def test_aclose_cancels_alerts_past_grace_period(setup_db):
    driver = _driver("PL207")
    notifier = FakeNotifier()
    log = RecordingLogger()
    p = SosAlertPipeline(FakeGeocoder(delay=10.0), notifier, TestingSessionLocal, logger=log, shutdown_timeout=0.05)

    async def scenario():
        task = p.dispatch(driver, 3.0, 4.0)
        await asyncio.sleep(0)
        await p.aclose()
        return task

    task = asyncio.run(scenario())
    assert task.cancelled()
    assert notifier.sent == []
    assert p.pending == 0
    cancelled = log.errors(stage="shutdown")
    assert len(cancelled) == 1
    assert cancelled[0][2]["task"] == "sos-alert-PL207"
