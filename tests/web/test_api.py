import json
import logging

import pytest

from spooler.config import PrinterConfig, ServiceSettings, TransportKind
from spooler.service import PrintService
from spooler.simulated_printer import SimulatedPrinter
from tests.fakes.fake_printer import FakePrinter
from tests.helpers import SleepRecorder
from web.app import create_app

PRINT_KEY = "test-key"


def _settings():
    return ServiceSettings(
        printer=PrinterConfig(interface=TransportKind.MOCK, max_retries=2, retry_delay_ms=0),
        print_key=PRINT_KEY,
    )


@pytest.fixture
def printer():
    return SimulatedPrinter(delay_ms=0)


@pytest.fixture
def service(printer):
    settings = _settings()
    svc = PrintService(settings.printer, adapter=printer, sleep=SleepRecorder())
    svc.start()
    yield svc
    svc.stop()


@pytest.fixture
def client(service):
    app = create_app(service=service, settings=_settings())
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def test_print_with_header_key(client, printer):
    response = client.post(
        "/print",
        data=json.dumps({"data": "Espresso  2.80"}),
        content_type="application/json",
        headers={"X-Print-Key": PRINT_KEY},
    )

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "message": "Print job completed successfully"}
    assert printer.printed == ["Espresso  2.80"]


def test_print_with_key_in_body(client, printer):
    response = client.post("/print", json={"data": "Tea  1.90", "key": PRINT_KEY})

    assert response.status_code == 200
    assert printer.printed == ["Tea  1.90"]


def test_print_plain_text_body(client, printer):
    response = client.post(
        "/print",
        data="Line 1\nLine 2",
        content_type="text/plain",
        headers={"X-Print-Key": PRINT_KEY},
    )

    assert response.status_code == 200
    assert printer.printed == ["Line 1\nLine 2"]


def test_print_rejects_missing_key(client, printer):
    response = client.post("/print", json={"data": "x"})

    assert response.status_code == 401
    assert response.get_json()["message"] == "Unauthorized"
    assert printer.printed == []


def test_print_rejects_wrong_key(client):
    response = client.post("/print", json={"data": "x"}, headers={"X-Print-Key": "nope"})
    assert response.status_code == 401


def test_print_rejects_non_ascii_body_key(client, printer):
    response = client.post("/print", json={"data": "x", "key": "cl\u00e9"})

    assert response.status_code == 401
    assert response.get_json()["message"] == "Unauthorized"
    assert printer.printed == []


def test_print_rejects_non_ascii_header_key(client, printer):
    response = client.post("/print", json={"data": "x"}, headers={"X-Print-Key": "cl\xe9"})

    assert response.status_code == 401
    assert printer.printed == []


def test_print_accepts_non_ascii_configured_key(service, printer):
    settings = ServiceSettings(printer=service.config, print_key="cl\u00e9")
    app = create_app(service=service, settings=settings)

    with app.test_client() as client:
        response = client.post("/print", json={"data": "x", "key": "cl\u00e9"})

    assert response.status_code == 200
    assert printer.printed == ["x"]


def test_print_requires_data_field(client):
    response = client.post("/print", json={"text": "x"}, headers={"X-Print-Key": PRINT_KEY})

    assert response.status_code == 400
    assert 'Print data is required in "data" field' in response.get_json()["error"]


def test_print_rejects_blank_data(client):
    response = client.post("/print", json={"data": "  \n "}, headers={"X-Print-Key": PRINT_KEY})

    assert response.status_code == 400
    assert response.get_json()["error"] == "Print data cannot be empty"


def test_print_failure_surfaces_last_error():
    printer = FakePrinter(print_failures=5)
    settings = _settings()
    service = PrintService(settings.printer, adapter=printer, sleep=SleepRecorder())
    app = create_app(service=service, settings=settings)

    try:
        response = app.test_client().post(
            "/print", json={"data": "x"}, headers={"X-Print-Key": PRINT_KEY}
        )
    finally:
        service.stop()

    assert response.status_code == 500
    body = response.get_json()
    assert body["success"] is False
    assert body["message"] == "Print job failed"
    assert body["error"] == "Print failed after 2 attempts. Last error: paper jam"


def test_health_endpoint_ok(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.get_json()
    assert data["level"] == "OK"
    assert data["printer_connected"] is True
    assert data["queue"] == {"length": 0, "processing": False}


def test_health_endpoint_when_printer_down(client, service):
    service.disconnect()

    data = client.get("/health").get_json()
    assert data["level"] == "WARNING"
    assert data["code"] == "PRINTER_DISCONNECTED"


def test_unknown_route_returns_json_404(client):
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.get_json()["error"] == "Route /nope not found"


def test_cors_headers_on_cross_origin_request(client):
    response = client.get("/health", headers={"Origin": "http://pos.local"})

    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_cors_preflight_for_print(client):
    response = client.options(
        "/print",
        headers={
            "Origin": "http://pos.local",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "X-Print-Key, Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert "POST" in response.headers["Access-Control-Allow-Methods"]


def test_each_request_is_logged(client, caplog):
    with caplog.at_level(logging.INFO, logger="web.app"):
        client.get("/health")
        client.post("/print", json={"data": "x"})

    assert '"GET /health" 200' in caplog.text
    assert '"POST /print" 401' in caplog.text
