from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI
from prometheus_client import Info

from . import __version__
from .adapters.browser_pool import AsyncBrowserPool, BrowserPoolConfig
from .adapters.playwright_driver import PlaywrightDriver
from .api.routes import router as api_router
from .config.loader import load_plan
from .config.settings import Settings
from .config.settings import settings as default_settings
from .core.executor.runner import Executor
from .telemetry import init_telemetry, shutdown_telemetry

if TYPE_CHECKING:
    from collections.abc import Callable

    from .core.driver.base import BrowserDriver
    from .core.ir.model import RunPlan

BUILD_INFO = Info("polymer_build", "Build information of the polymer probe")
BUILD_INFO.info({"version": __version__})


def create_app(
    settings: Settings | None = None,
    plan: RunPlan | None = None,
    pool: Any | None = None,
    driver_factory: Callable[[Any], BrowserDriver] | None = None,
) -> FastAPI:
    """Build the probe server.

    The plan, browser pool and driver factory default to the ones described
    by ``settings``; tests inject their own.
    """
    settings = settings or default_settings

    def _playwright_driver(browser: Any) -> BrowserDriver:
        return PlaywrightDriver(
            browser,
            navigation_timeout_ms=settings.navigation_timeout_ms,
            element_timeout_ms=settings.element_timeout_ms,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.plan is None:
            app.state.plan = load_plan(settings.config_file)
        owns_pool = app.state.pool is None
        if owns_pool:
            app.state.pool = AsyncBrowserPool(BrowserPoolConfig.from_settings(settings))
            await app.state.pool.initialize()
        try:
            yield
        finally:
            if owns_pool:
                await app.state.pool.shutdown()
                app.state.pool = None
            shutdown_telemetry()

    app = FastAPI(title="Polymer Probe", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.plan = plan
    app.state.pool = pool
    app.state.driver_factory = driver_factory or _playwright_driver
    app.state.executor = Executor(
        call_timeout=settings.call_timeout, run_timeout=settings.run_timeout
    )
    app.include_router(api_router)
    init_telemetry(app)
    return app


app = create_app()
