"""Playwright implementation of the browser driver capability.

A driver wraps one pooled browser and opens a private BrowserContext on
``connect()``. Playwright failures are translated into probe errors so the
executor can classify them.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from typing import TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..core.driver.base import BrowserDriver, Element, Page
from ..core.errors import (
    DriverConnectionError,
    ElementNotFound,
    InteractionError,
    ProbeTimeout,
)

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, ElementHandle
    from playwright.async_api import Page as PlaywrightPage

logger = logging.getLogger(__name__)


class PlaywrightElement(Element):
    def __init__(self, handle: ElementHandle, identifier: str, timeout_ms: int) -> None:
        self._handle = handle
        self.identifier = identifier
        self.timeout_ms = timeout_ms

    async def click(self) -> None:
        try:
            await self._handle.click(timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise InteractionError(f"click on {self.identifier} failed: {e.message}") from e

    async def type(self, value: str) -> None:
        try:
            await self._handle.fill(value, timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise InteractionError(f"typing into {self.identifier} failed: {e.message}") from e


class PlaywrightPageHandle(Page):
    def __init__(self, page: PlaywrightPage, element_timeout_ms: int, navigation_timeout_ms: int) -> None:
        self._page = page
        self.element_timeout_ms = element_timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms

    @property
    def url(self) -> str:
        return self._page.url

    async def wait_load(self) -> None:
        try:
            await self._page.wait_for_load_state("load", timeout=self.navigation_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ProbeTimeout(f"page {self._page.url} did not finish loading") from e
        except PlaywrightError as e:
            raise DriverConnectionError(f"page {self._page.url} failed to load: {e.message}") from e

    async def find_element(self, identifier: str) -> PlaywrightElement:
        if self._page.is_closed():
            raise DriverConnectionError("page was closed")
        try:
            handle = await self._page.wait_for_selector(
                identifier, state="attached", timeout=self.element_timeout_ms
            )
        except PlaywrightTimeoutError as e:
            raise ElementNotFound(identifier, f"not attached after {self.element_timeout_ms}ms") from e
        except PlaywrightError as e:
            if self._page.is_closed():
                raise DriverConnectionError(f"page closed while looking up {identifier}") from e
            raise ElementNotFound(identifier, e.message) from e
        if handle is None:
            raise ElementNotFound(identifier)
        return PlaywrightElement(handle, identifier, self.element_timeout_ms)


class PlaywrightDriver(BrowserDriver):
    """Driver bound to one browser; each instance serves a single run."""

    def __init__(
        self,
        browser: Browser,
        navigation_timeout_ms: int = 20000,
        element_timeout_ms: int = 5000,
    ) -> None:
        self._browser = browser
        self.navigation_timeout_ms = navigation_timeout_ms
        self.element_timeout_ms = element_timeout_ms
        self._context: BrowserContext | None = None

    async def connect(self) -> None:
        if not self._browser.is_connected():
            raise DriverConnectionError("browser is not connected")
        try:
            self._context = await self._browser.new_context()
        except PlaywrightError as e:
            raise DriverConnectionError(f"cannot open browser context: {e.message}") from e
        self._context.set_default_timeout(self.element_timeout_ms)
        self._context.set_default_navigation_timeout(self.navigation_timeout_ms)

    async def open_page(self, url: str) -> PlaywrightPageHandle:
        if self._context is None:
            raise DriverConnectionError("driver is not connected")
        try:
            page = await self._context.new_page()
            response = await page.goto(
                url, wait_until="commit", timeout=self.navigation_timeout_ms
            )
        except PlaywrightTimeoutError as e:
            raise ProbeTimeout(f"navigation to {url} timed out") from e
        except PlaywrightError as e:
            raise DriverConnectionError(f"navigation to {url} failed: {e.message}") from e

        if response is not None:
            logger.debug("Navigated to %s (status %s)", url, response.status)
        return PlaywrightPageHandle(page, self.element_timeout_ms, self.navigation_timeout_ms)

    async def close(self) -> None:
        if self._context is not None:
            with suppress(PlaywrightError):
                await self._context.close()
            self._context = None
