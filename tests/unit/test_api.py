"""Tests for the HTTP surface."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from scrollfetch import __version__
from scrollfetch.api.main import app
from scrollfetch.browser.connector import SessionConnector
from scrollfetch.extract import PAGE_CLOSED_HTML
from scrollfetch.jobs.runner import JobRunner, get_job_runner
from tests.fakes import LONG_HTML, FakeBrowser, FakeClock, FakeConnect, FakePage


@pytest.fixture
def connect() -> FakeConnect:
    return FakeConnect(FakeBrowser(FakePage(metrics=[100])))


@pytest.fixture
def client(connect: FakeConnect) -> Iterator[TestClient]:
    clock = FakeClock()
    runner = JobRunner(
        connector=SessionConnector(connect=connect, sleep=clock.sleep),
        clock=clock,
        sleep=clock.sleep,
    )
    app.dependency_overrides[get_job_runner] = lambda: runner
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    """The liveness probe reports status and version."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "version": __version__}


def test_scrape_returns_html_and_meta(client: TestClient) -> None:
    """A converged job returns the document with its metadata."""
    response = client.post(
        "/scrape",
        json={"url": "https://example.com/feed", "maxScrolls": 2, "checkIntervalMs": 250},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["html"] == LONG_HTML
    assert body["meta"]["stable"] is True
    assert body["meta"]["outcome"] == "stable"
    assert body["meta"]["settings"]["maxScrolls"] == 2
    assert body["meta"]["settings"]["checkIntervalMs"] == 250
    assert isinstance(body["meta"]["took"], int)
    assert "items" not in body


def test_missing_url_is_client_error(client: TestClient, connect: FakeConnect) -> None:
    """A body without a URL is a 400 and never reaches the browser."""
    response = client.post("/scrape", json={"maxScrolls": 2})

    assert response.status_code == 400
    assert response.json()["detail"] == 'Missing "url" in request body'
    assert connect.calls == 0


def test_invalid_body_is_rejected(client: TestClient) -> None:
    """Out-of-range fields fail request validation."""
    response = client.post("/scrape", json={"url": "https://example.com", "maxScrolls": 0})

    assert response.status_code == 422


def test_page_closed_is_still_success() -> None:
    """A page lost mid-job still answers 200 with the placeholder document."""
    clock = FakeClock()
    browser = FakeBrowser(FakePage(metrics=[1, 2], close_after_reads=2))
    runner = JobRunner(
        connector=SessionConnector(connect=FakeConnect(browser), sleep=clock.sleep),
        clock=clock,
        sleep=clock.sleep,
    )
    app.dependency_overrides[get_job_runner] = lambda: runner
    try:
        with TestClient(app) as test_client:
            response = test_client.post("/scrape", json={"url": "https://example.com/feed"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()["html"] == PAGE_CLOSED_HTML
    assert response.json()["meta"]["outcome"] == "detached"
    assert browser.disconnect_calls == 1


def test_connection_failure_is_server_error() -> None:
    """Exhausted connection retries surface as a 500."""
    clock = FakeClock()
    connect = FakeConnect(OSError("refused"), OSError("refused"), OSError("refused"))
    runner = JobRunner(
        connector=SessionConnector(connect=connect, sleep=clock.sleep),
        clock=clock,
        sleep=clock.sleep,
    )
    app.dependency_overrides[get_job_runner] = lambda: runner
    try:
        with TestClient(app) as test_client:
            response = test_client.post("/scrape", json={"url": "https://example.com/feed"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert "Failed to connect after 3 attempts" in response.json()["detail"]
