"""Chromium browsers shared by probe runs.

A run borrows one browser, opens its own BrowserContext on it and hands the
browser back when it finishes, whatever the outcome. Browsers are retired
after a number of probes, after a maximum age, or when they disconnect. The
pool is topped back up to its configured size after every retirement and on
each maintenance tick, so a failed launch only shrinks it temporarily.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from playwright.async_api import Browser, Playwright, async_playwright

from ..core.errors import DriverConnectionError

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from ..config.settings import Settings

logger = logging.getLogger(__name__)

LAUNCH_ARGS = ["--no-sandbox", "--disable-dev-shm-usage", "--disable-gpu"]


@dataclass
class PooledBrowser:
    browser: Browser
    playwright: Playwright
    launched_at: float = field(default_factory=time.monotonic)
    probes: int = 0
    in_use: bool = False


@dataclass
class BrowserPoolConfig:
    size: int = 2
    max_probes_per_browser: int = 100
    max_age_seconds: float = 3600
    headless: bool = True
    maintenance_interval: float = 60

    @classmethod
    def from_settings(cls, settings: Settings) -> BrowserPoolConfig:
        return cls(
            size=settings.browser_pool_size,
            max_probes_per_browser=settings.browser_max_requests,
            max_age_seconds=settings.browser_max_age_seconds,
            headless=settings.headless,
        )


class PoolExhausted(TimeoutError):
    """No browser became available within the acquisition timeout."""


class AsyncBrowserPool:
    def __init__(self, config: BrowserPoolConfig | None = None) -> None:
        self.config = config or BrowserPoolConfig()
        self._idle: asyncio.Queue[PooledBrowser] = asyncio.Queue()
        self._browsers: list[PooledBrowser] = []
        self._refill_lock = asyncio.Lock()
        self._started = False
        self._closing = False
        self._maintenance: asyncio.Task | None = None

    async def initialize(self) -> None:
        if self._started:
            return
        self._started = True
        self._closing = False
        start = time.perf_counter()
        await self.refill()
        logger.info(
            "Browser pool started in %.2fs with %d/%d browsers",
            time.perf_counter() - start,
            len(self._browsers),
            self.config.size,
        )
        self._maintenance = asyncio.create_task(self._maintain())

    async def _launch(self) -> PooledBrowser:
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=self.config.headless, args=LAUNCH_ARGS
            )
        except Exception:
            await playwright.stop()
            raise
        return PooledBrowser(browser=browser, playwright=playwright)

    async def refill(self) -> int:
        """Launch browsers until the pool is back at its configured size.

        Returns the number of browsers launched. Launch failures are logged
        and retried on the next call.
        """
        async with self._refill_lock:
            missing = self.config.size - len(self._browsers)
            if missing <= 0 or self._closing:
                return 0
            results = await asyncio.gather(
                *(self._launch() for _ in range(missing)), return_exceptions=True
            )
            launched = 0
            for result in results:
                if isinstance(result, BaseException):
                    logger.error("Browser launch failed: %s", result)
                    continue
                self._browsers.append(result)
                await self._idle.put(result)
                launched += 1
            if launched < missing:
                logger.warning(
                    "Browser pool below size: %d/%d", len(self._browsers), self.config.size
                )
            return launched

    def _retirement_reason(self, pooled: PooledBrowser) -> str | None:
        if not pooled.browser.is_connected():
            return "disconnected"
        if pooled.probes >= self.config.max_probes_per_browser:
            return f"served {pooled.probes} probes"
        age = time.monotonic() - pooled.launched_at
        if age > self.config.max_age_seconds:
            return f"reached age {age:.0f}s"
        return None

    async def _retire(self, pooled: PooledBrowser, reason: str) -> None:
        logger.info("Retiring browser: %s", reason)
        if pooled in self._browsers:
            self._browsers.remove(pooled)
        with suppress(Exception):
            await pooled.browser.close()
        with suppress(Exception):
            await pooled.playwright.stop()

    async def _maintain(self) -> None:
        while not self._closing:
            await asyncio.sleep(self.config.maintenance_interval)
            for _ in range(self._idle.qsize()):
                try:
                    pooled = self._idle.get_nowait()
                except asyncio.QueueEmpty:
                    break
                reason = self._retirement_reason(pooled)
                if reason:
                    await self._retire(pooled, reason)
                else:
                    self._idle.put_nowait(pooled)
            await self.refill()

    @asynccontextmanager
    async def acquire(
        self, timeout: float = 30.0
    ) -> AsyncGenerator[tuple[Browser, Playwright], None]:
        """Borrow a browser for one run.

        Raises:
            PoolExhausted: If no browser is available within ``timeout`` seconds
            DriverConnectionError: If the browser handed out disconnected while idle
        """
        if not self._started:
            await self.initialize()

        try:
            pooled = await asyncio.wait_for(self._idle.get(), timeout=timeout)
        except TimeoutError:
            raise PoolExhausted(
                f"No browser available within {timeout}s "
                f"({len(self._browsers)}/{self.config.size} browsers running)"
            ) from None

        if not pooled.browser.is_connected():
            await self._retire(pooled, "disconnected while idle")
            await self.refill()
            raise DriverConnectionError("pooled browser disconnected")

        pooled.in_use = True
        pooled.probes += 1
        try:
            yield pooled.browser, pooled.playwright
        finally:
            pooled.in_use = False
            reason = self._retirement_reason(pooled)
            if reason:
                await self._retire(pooled, reason)
                await self.refill()
            else:
                await self._idle.put(pooled)

    async def shutdown(self) -> None:
        logger.info("Shutting down browser pool")
        self._closing = True
        if self._maintenance:
            self._maintenance.cancel()
            with suppress(asyncio.CancelledError):
                await self._maintenance
            self._maintenance = None

        while not self._idle.empty():
            self._idle.get_nowait()
        for pooled in list(self._browsers):
            await self._retire(pooled, "shutdown")
        self._started = False

    def stats(self) -> dict:
        return {
            "pool_size": self.config.size,
            "available": self._idle.qsize(),
            "total_browsers": len(self._browsers),
            "in_use": sum(1 for b in self._browsers if b.in_use),
            "initialized": self._started,
        }
