"""End-to-end tests for the HTTP API with a fake extraction service."""

import asyncio
import base64

import httpx
import pytest
from fastapi.testclient import TestClient

from app.config import get_settings
from app.deps import get_coordinator, get_extractor
from app.errors import MissingCredential, TransportFailure
from app.main import app
from app.ratelimit import limiter
from app.scan import ScanCoordinator

IMAGE = b"\xff\xd8\xff\xe0fake-jpeg"


@pytest.fixture
def coordinator() -> ScanCoordinator:
    return ScanCoordinator()


@pytest.fixture
def overrides(settings, fake_extractor, coordinator):
    limiter.enabled = False
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_extractor] = lambda: fake_extractor
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    yield app.dependency_overrides
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def client(overrides):
    with TestClient(app) as test_client:
        yield test_client


def _upload(client, content=IMAGE, content_type="image/jpeg"):
    return client.post("/api/scan", files={"file": ("receipt.jpg", content, content_type)})


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_scan_upload_returns_quote_and_fees(client, fake_extractor) -> None:
    resp = _upload(client)

    assert resp.status_code == 200
    body = resp.json()
    assert body["quote"] == {
        "merchantName": "Marina Bay Cafe",
        "country": "Singapore",
        "originalCurrencyCode": "SGD",
        "currencySymbol": "S$",
        "fxRate": 61.85,
        "originalAmount": 21.8,
        "subtotal": 20.0,
        "tax": 1.8,
        "inrAmount": 1348.33,
        "isDomesticRoute": True,
        "route": "domestic",
    }
    assert body["fees"]["feeRate"] == 0.015
    assert body["fees"]["bridgeFee"] == pytest.approx(20.22, abs=0.01)
    assert body["fees"]["taxOnFee"] == pytest.approx(3.64)
    assert body["fees"]["finalDebit"] == pytest.approx(1372.2)
    assert fake_extractor.calls == [(base64.b64encode(IMAGE).decode(), "image/jpeg")]


def test_scan_sets_client_cookie(client) -> None:
    resp = _upload(client)

    assert "ctk=" in resp.headers["set-cookie"]


def test_scan_base64_accepts_data_url(client, fake_extractor) -> None:
    encoded = base64.b64encode(IMAGE).decode()

    resp = client.post(
        "/api/scan/base64",
        json={"image": f"data:image/png;base64,{encoded}", "contentType": "image/png"},
    )

    assert resp.status_code == 200
    assert resp.json()["quote"]["originalCurrencyCode"] == "SGD"
    assert fake_extractor.calls == [(encoded, "image/png")]


def test_scan_base64_rejects_invalid_payload(client) -> None:
    resp = client.post("/api/scan/base64", json={"image": "not base64!!"})

    assert resp.status_code == 400


@pytest.mark.parametrize(
    "content, content_type",
    [(IMAGE, "application/pdf"), (b"", "image/jpeg")],
)
def test_scan_upload_validates_image(client, content, content_type) -> None:
    assert _upload(client, content, content_type).status_code == 400


def test_invalid_amount_maps_to_422(client, fake_extractor) -> None:
    fake_extractor.text = '{"subtotal": 0, "tax": 0, "total": 0}'

    resp = _upload(client)

    assert resp.status_code == 422
    assert resp.json()["code"] == "INVALID_AMOUNT"
    assert resp.json()["retry"] is True


def test_malformed_response_maps_to_502(client, fake_extractor) -> None:
    fake_extractor.text = "I can't help with that."

    resp = _upload(client)

    assert resp.status_code == 502
    assert resp.json()["code"] == "PARSING_FAILED"


@pytest.mark.parametrize(
    "error, status, code",
    [
        (MissingCredential(), 503, "API_KEY_MISSING"),
        (TransportFailure("timeout"), 502, "TRANSPORT_FAILURE"),
    ],
)
def test_extractor_failures_map_to_distinct_errors(client, fake_extractor, error, status, code) -> None:
    fake_extractor.error = error

    resp = _upload(client)

    assert resp.status_code == status
    assert resp.json()["code"] == code


def test_unknown_provider_is_unavailable(client, monkeypatch) -> None:
    del app.dependency_overrides[get_extractor]
    monkeypatch.setenv("RECEIPT_PROVIDER", "tesseract")

    resp = _upload(client)

    assert resp.status_code == 503


def test_cancel_without_outstanding_scan(client) -> None:
    resp = client.delete("/api/scan")

    assert resp.json() == {"cancelled": False}


def test_quote_fees_recomputes_breakdown(client) -> None:
    quote = {
        "merchantName": "Le Petit Zinc",
        "country": "France",
        "originalCurrencyCode": "EUR",
        "originalAmount": 10,
        "subtotal": 10,
        "tax": 0,
        "inrAmount": 904.5,
        "isDomesticRoute": True,
    }

    first = client.post("/api/quotes/fees", json=quote).json()
    second = client.post("/api/quotes/fees", json=quote).json()

    assert first == second
    assert first["bridgeFee"] == pytest.approx(13.57)
    assert first["finalDebit"] == pytest.approx(920.51)


def test_quote_fees_rejects_non_positive_amount(client) -> None:
    quote = {
        "merchantName": "X",
        "country": "Y",
        "originalCurrencyCode": "USD",
        "originalAmount": 0,
        "inrAmount": 0,
        "isDomesticRoute": False,
    }

    assert client.post("/api/quotes/fees", json=quote).status_code == 422


def test_rates_lists_table(client, settings) -> None:
    body = client.get("/api/rates").json()

    assert body["defaultCurrency"] == "USD"
    assert body["taxOnFeeRate"] == 0.18
    assert len(body["rates"]) == len(settings.rates)
    assert {"code": "EUR", "symbol": "€", "rate": 90.45} in body["rates"]


DEVICE = "device-1"


def _async_client(cookies: dict | None = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
        cookies=cookies,
    )


async def _upload_async(client: httpx.AsyncClient) -> httpx.Response:
    return await client.post("/api/scan", files={"file": ("receipt.jpg", IMAGE, "image/jpeg")})


async def _wait_until_in_flight(coordinator: ScanCoordinator, key: str) -> None:
    for _ in range(500):
        if coordinator.in_flight(key):
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"no scan in flight for {key}")


def test_new_scan_supersedes_running_scan(overrides, coordinator, fake_extractor) -> None:
    async def scenario():
        fake_extractor.gate = asyncio.Event()
        async with _async_client({"ctk": DEVICE}) as client:
            first = asyncio.ensure_future(_upload_async(client))
            await _wait_until_in_flight(coordinator, DEVICE)
            fake_extractor.gate = None
            second = await _upload_async(client)
            return await first, second

    first, second = asyncio.run(scenario())

    assert first.status_code == 409
    assert first.json()["code"] == "SCAN_SUPERSEDED"
    assert first.json()["retry"] is True
    assert second.status_code == 200
    assert second.json()["quote"]["originalCurrencyCode"] == "SGD"


def test_reject_policy_refuses_concurrent_scan(overrides, fake_extractor) -> None:
    coordinator = ScanCoordinator(policy="reject")
    overrides[get_coordinator] = lambda: coordinator

    async def scenario():
        gate = asyncio.Event()
        fake_extractor.gate = gate
        async with _async_client({"ctk": DEVICE}) as client:
            first = asyncio.ensure_future(_upload_async(client))
            await _wait_until_in_flight(coordinator, DEVICE)
            second = await _upload_async(client)
            gate.set()
            return await first, second

    first, second = asyncio.run(scenario())

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["code"] == "SCAN_IN_PROGRESS"
    assert len(fake_extractor.calls) == 1


def test_cancel_stops_running_scan(overrides, coordinator, fake_extractor) -> None:
    async def scenario():
        fake_extractor.gate = asyncio.Event()
        async with _async_client({"ctk": DEVICE}) as client:
            scan = asyncio.ensure_future(_upload_async(client))
            await _wait_until_in_flight(coordinator, DEVICE)
            cancel = await client.delete("/api/scan")
            return await scan, cancel

    # Debug mode makes asyncio reject task cancellation from outside the loop thread.
    scan, cancel = asyncio.run(scenario(), debug=True)

    assert cancel.json() == {"cancelled": True}
    assert scan.status_code == 409
    assert scan.json()["code"] == "SCAN_SUPERSEDED"
    assert coordinator.in_flight(DEVICE) is False


def test_first_contact_scans_share_a_slot(overrides, fake_extractor) -> None:
    coordinator = ScanCoordinator(policy="reject")
    overrides[get_coordinator] = lambda: coordinator

    async def scenario():
        gate = asyncio.Event()
        fake_extractor.gate = gate
        async with _async_client() as client:
            first = asyncio.ensure_future(_upload_async(client))
            await _wait_until_in_flight(coordinator, "addr:127.0.0.1")
            second = await _upload_async(client)
            gate.set()
            return await first, second

    first, second = asyncio.run(scenario())

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["code"] == "SCAN_IN_PROGRESS"
