"""Run plan definitions.

A plan is an ordered list of steps interpreted by the executor. Steps keep
their raw action tag so that unknown actions can be reported at dispatch
time instead of being dropped at load time.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType


class StepAction(str, Enum):
    VISIT = "visit"
    INPUT = "input"


class InputAction(str, Enum):
    CLICK = "click"
    INPUT = "input"  # type text into the element
    SUBMIT = "submit"  # clicks a submit control


@dataclass(frozen=True)
class Element:
    identifier: str  # CSS selector or any locator the driver understands


@dataclass(frozen=True)
class StepInput:
    element: Element
    action: str
    value: str = ""


@dataclass(frozen=True)
class Step:
    name: str
    action: str
    type: str | None = None
    options: Mapping[str, str] = field(default_factory=dict, hash=False)
    inputs: tuple[StepInput, ...] = ()

    def __post_init__(self) -> None:
        # read-only view; plans are shared by concurrent runs
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    def effective_type(self, default_type: str) -> str:
        """Return the step's own type, falling back to the plan default."""
        return self.type if self.type else default_type


@dataclass(frozen=True)
class RunPlan:
    name: str
    default_type: str = ""
    steps: tuple[Step, ...] = ()

    def duplicate_step_names(self) -> list[str]:
        """Step names used more than once; their metrics would collide."""
        counts = Counter(step.name for step in self.steps)
        return [name for name, count in counts.items() if count > 1]
