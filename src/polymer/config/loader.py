"""Load a run plan from a YAML document.

The document keys follow the probe config format::

    name: homepage
    defaultType: browser
    steps:
      - name: go
        action: visit
        options:
          url: https://example.com
      - name: search
        action: input
        inputs:
          - element: {identifier: "#q"}
            action: input
            value: polymer
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.ir.model import Element, RunPlan, Step, StepInput

logger = logging.getLogger(__name__)


class PlanLoadError(Exception):
    pass


class ElementDoc(BaseModel):
    identifier: str


class StepInputDoc(BaseModel):
    element: ElementDoc
    action: str
    value: str = ""


class StepDoc(BaseModel):
    name: str
    action: str
    type: str | None = None
    options: dict[str, str] = Field(default_factory=dict)
    inputs: list[StepInputDoc] = Field(default_factory=list)


class PlanDoc(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    default_type: str = Field("", alias="defaultType")
    steps: list[StepDoc] = Field(default_factory=list)

    def to_plan(self) -> RunPlan:
        return RunPlan(
            name=self.name,
            default_type=self.default_type,
            steps=tuple(
                Step(
                    name=s.name,
                    action=s.action,
                    type=s.type,
                    options=s.options,
                    inputs=tuple(
                        StepInput(
                            element=Element(identifier=i.element.identifier),
                            action=i.action,
                            value=i.value,
                        )
                        for i in s.inputs
                    ),
                )
                for s in self.steps
            ),
        )


def parse_plan(data: Any) -> RunPlan:
    """Validate an already-decoded document and build the plan."""
    if data is None:
        data = {}
    try:
        doc = PlanDoc.model_validate(data)
    except ValidationError as e:
        raise PlanLoadError(f"invalid plan document: {e}") from e

    plan = doc.to_plan()
    duplicates = plan.duplicate_step_names()
    if duplicates:
        logger.warning(
            "Plan %s reuses step names %s; their metrics will overwrite each other",
            plan.name,
            ", ".join(duplicates),
        )
    return plan


def load_plan(path: str | Path) -> RunPlan:
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise PlanLoadError(f"cannot read {p}: {e}") from e
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise PlanLoadError(f"cannot parse {p}: {e}") from e

    plan = parse_plan(data)
    logger.info("Loaded plan %s with %d steps from %s", plan.name, len(plan.steps), p)
    return plan
