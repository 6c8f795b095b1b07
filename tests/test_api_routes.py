"""Tests for the probe HTTP endpoints."""

from __future__ import annotations

import pytest
from fakes import FakeDriver, FakePool
from fastapi.testclient import TestClient

from polymer.app import create_app
from polymer.config.settings import Settings
from polymer.core.ir.model import Element, RunPlan, Step, StepInput

SITE = "https://example.com"

PLAN = RunPlan(
    name="example",
    default_type="browser",
    steps=(
        Step(name="go", action="visit", options={"url": SITE}),
        Step(
            name="click-btn",
            action="input",
            inputs=(StepInput(element=Element("#submit"), action="click"),),
        ),
    ),
)


class TestProbeRoutes:
    @pytest.fixture
    def drivers(self):
        return []

    @pytest.fixture
    def pool(self):
        return FakePool()

    @pytest.fixture
    def client(self, drivers, pool):
        def factory(_browser):
            driver = FakeDriver(sites={SITE: {"#submit"}})
            drivers.append(driver)
            return driver

        app = create_app(Settings(), plan=PLAN, pool=pool, driver_factory=factory)
        with TestClient(app) as client:
            yield client

    def test_probe_returns_run_metrics(self, client, drivers, pool):
        response = client.get("/probe")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        body = response.text
        assert 'polymer_step_duration_seconds{step="go"}' in body
        assert 'polymer_step_duration_seconds{step="click-btn"}' in body
        assert 'polymer_step_success{step="go"} 1.0' in body
        assert 'polymer_step_success{step="click-btn"} 1.0' in body
        assert "polymer_probe_duration_seconds" in body
        assert len(drivers) == 1
        assert drivers[0].closed
        assert pool.acquired == pool.released == 1

    def test_each_probe_gets_fresh_metrics(self, client, drivers):
        client.get("/probe")
        response = client.get("/probe")

        assert response.text.count('polymer_step_success{step="go"}') == 1
        assert len(drivers) == 2

    def test_probe_debug_returns_report(self, client):
        response = client.get("/probe", params={"debug": "true"})

        assert response.status_code == 200
        data = response.json()
        assert data["plan"] == "example"
        assert data["status"] == "completed"
        assert [s["name"] for s in data["steps"]] == ["go", "click-btn"]
        assert all(s["succeeded"] for s in data["steps"])
        assert data["steps"][0]["type"] == "browser"
        assert data["error"] is None

    def test_probe_reports_failed_steps(self, pool):
        plan = RunPlan(
            name="broken",
            steps=(
                Step(name="go", action="visit", options={"url": SITE}),
                Step(
                    name="missing",
                    action="input",
                    inputs=(StepInput(element=Element("#nope"), action="click"),),
                ),
            ),
        )
        app = create_app(Settings(), plan=plan, pool=pool, driver_factory=lambda _b: FakeDriver())
        with TestClient(app) as client:
            response = client.get("/probe", params={"debug": "true"})

        data = response.json()
        assert [s["succeeded"] for s in data["steps"]] == [True, False]
        assert data["steps"][1]["error_kind"] == "ElementNotFound"

    def test_driver_closed_when_run_aborts(self, pool):
        driver = FakeDriver(fail_connect=True)
        app = create_app(Settings(), plan=PLAN, pool=pool, driver_factory=lambda _b: driver)
        with TestClient(app) as client:
            response = client.get("/probe")

        assert response.status_code == 200
        assert 'polymer_step_success{step="go"} 0.0' in response.text
        assert 'step="click-btn"' not in response.text
        assert driver.closed
        assert pool.released == 1

    def test_probe_returns_503_when_pool_exhausted(self):
        app = create_app(
            Settings(), plan=PLAN, pool=FakePool(exhausted=True), driver_factory=lambda _b: FakeDriver()
        )
        with TestClient(app) as client:
            response = client.get("/probe")

        assert response.status_code == 503
        assert "No browser available" in response.json()["detail"]

    def test_disconnected_pooled_browser_returns_503(self):
        app = create_app(
            Settings(), plan=PLAN, pool=FakePool(disconnected=True), driver_factory=lambda _b: FakeDriver()
        )
        with TestClient(app) as client:
            response = client.get("/probe")

        assert response.status_code == 503
        assert "disconnected" in response.json()["detail"]

    def test_metrics_endpoint_exposes_build_info(self, client):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "polymer_build_info" in response.text

    def test_healthz(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["plan"] == "example"
        assert data["pool"]["available"] == 1
