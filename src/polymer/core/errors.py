"""Probe error taxonomy.

Every error carries a ``fatal_to_run`` flag. Fatal-to-step errors are recorded
as a failed step and execution continues; fatal-to-run errors abort the
remaining steps of the plan.
"""

from __future__ import annotations


class ProbeError(Exception):
    fatal_to_run = False


class ConfigError(ProbeError):
    """Missing or invalid option, or an unknown action."""


class ElementNotFound(ProbeError):
    def __init__(self, identifier: str, detail: str | None = None) -> None:
        self.identifier = identifier
        msg = f"element not found: {identifier}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class NoCurrentPage(ProbeError):
    def __init__(self) -> None:
        super().__init__("no page: an input step ran before any successful visit")


class InteractionError(ProbeError):
    """The element was found but clicking or typing into it failed."""


class DriverConnectionError(ProbeError):
    """Browser unreachable or navigation failed."""

    fatal_to_run = True


class ProbeTimeout(ProbeError):
    """A bounded driver call exceeded its deadline."""

    fatal_to_run = True


class StepError(Exception):
    """Failure of one step, wrapping the underlying cause."""

    def __init__(self, step_name: str, cause: BaseException) -> None:
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"step {step_name!r} failed: {cause}")

    @property
    def fatal_to_run(self) -> bool:
        # Unclassified failures leave the browser in an unknown state.
        if isinstance(self.cause, ProbeError):
            return self.cause.fatal_to_run
        return True

    @property
    def kind(self) -> str:
        return type(self.cause).__name__
