"""Integration tests for the Playwright driver against inline HTML pages."""

from __future__ import annotations

from contextlib import asynccontextmanager
from urllib.parse import quote

import pytest
from fakes import RecordingSink
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from polymer.adapters.playwright_driver import PlaywrightDriver
from polymer.core.errors import DriverConnectionError, ElementNotFound
from polymer.core.executor.runner import Executor, RunStatus
from polymer.core.ir.model import Element, RunPlan, Step, StepInput

FORM_HTML = """
<html>
    <body>
        <input id="q" type="text" />
        <button id="go" onclick="document.getElementById('out').textContent = document.getElementById('q').value">Go</button>
        <div id="out"></div>
    </body>
</html>
"""


def data_url(html: str) -> str:
    return "data:text/html," + quote(html)


@asynccontextmanager
async def chromium():
    async with async_playwright() as p:
        try:
            browser = await p.chromium.launch(headless=True)
        except PlaywrightError as e:
            pytest.skip(f"chromium not available: {e.message}")
        try:
            yield browser
        finally:
            await browser.close()


@pytest.mark.asyncio
async def test_plan_runs_against_real_browser():
    plan = RunPlan(
        name="form",
        steps=(
            Step(name="open", action="visit", options={"url": data_url(FORM_HTML)}),
            Step(
                name="submit",
                action="input",
                inputs=(
                    StepInput(element=Element("#q"), action="input", value="polymer"),
                    StepInput(element=Element("#go"), action="click"),
                ),
            ),
            Step(
                name="missing",
                action="input",
                inputs=(StepInput(element=Element("#absent"), action="click"),),
            ),
        ),
    )
    sink = RecordingSink()

    async with chromium() as browser:
        driver = PlaywrightDriver(browser, element_timeout_ms=300)
        try:
            report = await Executor(call_timeout=10).run(plan, driver, sink)
        finally:
            await driver.close()

    assert [s.succeeded for s in report.steps] == [True, True, False]
    assert isinstance(report.steps[2].error.cause, ElementNotFound)
    assert report.status is RunStatus.COMPLETED
    assert sink.successes == {"open": True, "submit": True, "missing": False}


@pytest.mark.asyncio
async def test_typed_value_reaches_page():
    async with chromium() as browser:
        driver = PlaywrightDriver(browser, element_timeout_ms=1000)
        try:
            await driver.connect()
            page = await driver.open_page(data_url(FORM_HTML))
            await page.wait_load()
            await (await page.find_element("#q")).type("hello")
            await (await page.find_element("#go")).click()
            out = await page._page.text_content("#out")
        finally:
            await driver.close()

    assert out == "hello"


@pytest.mark.asyncio
async def test_unreachable_site_is_connection_error():
    async with chromium() as browser:
        driver = PlaywrightDriver(browser, navigation_timeout_ms=5000)
        try:
            await driver.connect()
            with pytest.raises(DriverConnectionError):
                await driver.open_page("http://127.0.0.1:9/")
        finally:
            await driver.close()
