from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from ..adapters.browser_pool import PoolExhausted
from ..core.errors import DriverConnectionError
from ..core.metrics.sink import PrometheusSink
from .dto import ProbeReport

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/probe", response_model=None)
async def probe(request: Request, debug: bool = False) -> Response | ProbeReport:
    """Run the configured plan once and return this run's metrics."""
    state = request.app.state
    sink = PrometheusSink()

    try:
        async with state.pool.acquire(timeout=state.settings.browser_acquire_timeout) as (
            browser,
            _,
        ):
            driver = state.driver_factory(browser)
            try:
                report = await state.executor.run(state.plan, driver, sink)
            finally:
                await driver.close()
    except (PoolExhausted, DriverConnectionError) as e:
        logger.warning("Probe rejected: %s", e)
        raise HTTPException(status_code=503, detail=str(e)) from e

    if debug:
        return ProbeReport.from_report(report)
    return Response(content=sink.render(), media_type=CONTENT_TYPE_LATEST)


@router.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


@router.get("/healthz")
def healthz(request: Request):
    state = request.app.state
    return {
        "status": "ok",
        "plan": state.plan.name if state.plan is not None else None,
        "pool": state.pool.stats() if state.pool is not None else None,
    }
