"""Step executor: interprets a RunPlan against a browser driver.

Steps run strictly in plan order. Each step is timed and reported to the
metric sink before the next one starts. Failures are classified per
``polymer.core.errors``: fatal-to-step failures are recorded and the run goes
on, fatal-to-run failures stop the loop and the partial report is returned.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING, Any

from opentelemetry import trace

from ..errors import (
    ConfigError,
    InteractionError,
    NoCurrentPage,
    ProbeError,
    ProbeTimeout,
    StepError,
)
from ..ir.model import InputAction, StepAction

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..driver.base import BrowserDriver, Page
    from ..ir.model import RunPlan, Step
    from ..metrics.sink import MetricSink

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class RunStatus(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class StepResult:
    name: str
    duration: float
    succeeded: bool
    step_type: str = ""
    error: StepError | None = None


@dataclass(frozen=True)
class RunReport:
    plan_name: str
    steps: tuple[StepResult, ...]
    total_duration: float
    status: RunStatus = RunStatus.COMPLETED
    error: StepError | None = None  # the failure that aborted the run

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.COMPLETED and all(s.succeeded for s in self.steps)


@dataclass
class SessionState:
    """Mutable state owned by a single ``Executor.run`` call."""

    current_page: Page | None = None
    connected: bool = False


class Executor:
    """Runs plans against a driver, one independent session per call.

    The executor holds configuration only, so one instance can serve
    concurrent runs.

    Args:
        call_timeout: Deadline in seconds for every individual driver call
        run_timeout: Optional deadline in seconds for the whole run
    """

    def __init__(self, call_timeout: float = 30.0, run_timeout: float | None = None) -> None:
        self.call_timeout = call_timeout
        self.run_timeout = run_timeout

    async def run(self, plan: RunPlan, driver: BrowserDriver, sink: MetricSink) -> RunReport:
        session = SessionState()
        results: list[StepResult] = []
        abort: StepError | None = None

        run_start = time.perf_counter()
        deadline = run_start + self.run_timeout if self.run_timeout else None

        with tracer.start_as_current_span("polymer.probe") as span:
            span.set_attribute("polymer.plan", plan.name)
            for index, step in enumerate(plan.steps):
                result = await self._run_step(plan, step, index, driver, session, deadline)
                sink.record_duration(step.name, result.duration)
                sink.record_success(step.name, result.succeeded)
                results.append(result)

                if result.error is not None and result.error.fatal_to_run:
                    abort = result.error
                    logger.error(
                        "Aborting plan %s at step %s: %s", plan.name, step.name, result.error
                    )
                    break

            total_duration = time.perf_counter() - run_start
            sink.record_total_duration(total_duration)
            span.set_attribute("polymer.aborted", abort is not None)

        logger.info(
            "Plan %s finished in %.3fs (%d/%d steps run)",
            plan.name,
            total_duration,
            len(results),
            len(plan.steps),
        )
        return RunReport(
            plan_name=plan.name,
            steps=tuple(results),
            total_duration=total_duration,
            status=RunStatus.ABORTED if abort is not None else RunStatus.COMPLETED,
            error=abort,
        )

    async def _run_step(
        self,
        plan: RunPlan,
        step: Step,
        index: int,
        driver: BrowserDriver,
        session: SessionState,
        deadline: float | None,
    ) -> StepResult:
        step_type = step.effective_type(plan.default_type)
        logger.info("Step %d: %s (action=%s, type=%s)", index + 1, step.name, step.action, step_type)

        error: StepError | None = None
        with tracer.start_as_current_span("polymer.step") as span:
            span.set_attribute("polymer.step", step.name)
            span.set_attribute("polymer.step_type", step_type)
            step_start = time.perf_counter()
            try:
                await self._dispatch(step, driver, session, deadline)
            except ProbeError as e:
                error = StepError(step.name, e)
                logger.warning("Step %s failed: %s", step.name, e)
            except Exception as e:
                error = StepError(step.name, e)
                logger.exception("Step %s failed with unclassified driver error", step.name)
            duration = time.perf_counter() - step_start

            span.set_attribute("polymer.succeeded", error is None)
            if error is not None:
                span.record_exception(error.cause)

        logger.info("Step %s took %.3fs", step.name, duration)
        return StepResult(
            name=step.name,
            duration=duration,
            succeeded=error is None,
            step_type=step_type,
            error=error,
        )

    async def _dispatch(
        self,
        step: Step,
        driver: BrowserDriver,
        session: SessionState,
        deadline: float | None,
    ) -> None:
        handlers = {
            StepAction.VISIT: partial(self._handle_visit, driver),
            StepAction.INPUT: self._handle_input,
        }
        try:
            action = StepAction(step.action)
        except ValueError:
            raise ConfigError(f"unknown step action: {step.action!r}") from None
        await handlers[action](step, session, deadline)

    async def _handle_visit(
        self,
        driver: BrowserDriver,
        step: Step,
        session: SessionState,
        deadline: float | None,
    ) -> None:
        url = step.options.get("url", "")
        if not url:
            raise ConfigError(f"visit step {step.name!r} requires a non-empty 'url' option")

        if not session.connected:
            logger.info("Connecting to browser")
            await self._call(driver.connect, what="connect", deadline=deadline)
            session.connected = True

        logger.info("Opening %s", url)
        page = await self._call(driver.open_page, url, what=f"open {url}", deadline=deadline)
        await self._call(page.wait_load, what=f"load {url}", deadline=deadline)
        session.current_page = page

    async def _handle_input(
        self,
        step: Step,
        session: SessionState,
        deadline: float | None,
    ) -> None:
        page = session.current_page
        if page is None:
            raise NoCurrentPage()

        for item in step.inputs:
            try:
                action = InputAction(item.action)
            except ValueError:
                raise ConfigError(f"unknown input action: {item.action!r}") from None

            identifier = item.element.identifier
            element = await self._interact(
                page.find_element, identifier, what=f"find {identifier}", deadline=deadline
            )
            if action is InputAction.INPUT:
                await self._interact(
                    element.type, item.value, what=f"type into {identifier}", deadline=deadline
                )
            else:
                await self._interact(element.click, what=f"click {identifier}", deadline=deadline)

    async def _interact(
        self,
        fn: Callable[..., Awaitable[Any]],
        *args: Any,
        what: str,
        deadline: float | None,
    ) -> Any:
        """Driver call made on an open page.

        The page survives a failed interaction, so unclassified driver errors
        are scoped to the step.
        """
        try:
            return await self._call(fn, *args, what=what, deadline=deadline)
        except ProbeError:
            raise
        except Exception as e:
            raise InteractionError(f"{what} failed: {e}") from e

    async def _call(
        self,
        fn: Callable[..., Awaitable[Any]],
        *args: Any,
        what: str,
        deadline: float | None,
    ) -> Any:
        """Await a driver call bounded by the per-call and per-run deadlines."""
        timeout = self.call_timeout
        if deadline is not None:
            remaining = deadline - time.perf_counter()
            if remaining <= 0:
                raise ProbeTimeout(f"run deadline exceeded before {what}")
            timeout = min(timeout, remaining)

        try:
            return await asyncio.wait_for(fn(*args), timeout=timeout)
        except TimeoutError:
            raise ProbeTimeout(f"{what} exceeded {timeout:.1f}s") from None
