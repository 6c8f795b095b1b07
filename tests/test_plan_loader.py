"""Tests for the run plan model and YAML loading."""

from __future__ import annotations

import logging

import pytest

from polymer.config.loader import PlanLoadError, load_plan, parse_plan
from polymer.core.ir.model import RunPlan, Step

PLAN_YAML = """
name: checkout
defaultType: browser
steps:
  - name: go
    action: visit
    options:
      url: https://shop.example
  - name: search
    action: input
    type: http
    inputs:
      - element:
          identifier: "#q"
        action: input
        value: shoes
      - element:
          identifier: "#go"
        action: click
"""


def test_effective_type_falls_back_to_default():
    assert Step(name="a", action="visit").effective_type("browser") == "browser"
    assert Step(name="a", action="visit", type="").effective_type("browser") == "browser"
    assert Step(name="a", action="visit", type="http").effective_type("browser") == "http"


def test_duplicate_step_names():
    plan = RunPlan(
        name="p",
        steps=(Step(name="a", action="visit"), Step(name="b", action="visit"), Step(name="a", action="input")),
    )
    assert plan.duplicate_step_names() == ["a"]


def test_load_plan_from_yaml(tmp_path):
    path = tmp_path / ".polymer.yaml"
    path.write_text(PLAN_YAML, encoding="utf-8")

    plan = load_plan(path)

    assert plan.name == "checkout"
    assert plan.default_type == "browser"
    assert [s.name for s in plan.steps] == ["go", "search"]
    go, search = plan.steps
    assert go.options == {"url": "https://shop.example"}
    assert go.effective_type(plan.default_type) == "browser"
    assert search.effective_type(plan.default_type) == "http"
    assert [i.element.identifier for i in search.inputs] == ["#q", "#go"]
    assert search.inputs[0].value == "shoes"
    assert search.inputs[1].value == ""


def test_unknown_actions_are_kept_for_dispatch():
    plan = parse_plan({"name": "p", "steps": [{"name": "x", "action": "scroll"}]})
    assert plan.steps[0].action == "scroll"


def test_empty_document_gives_empty_plan():
    plan = parse_plan(None)
    assert plan.steps == ()


def test_duplicate_names_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="polymer.config.loader"):
        parse_plan(
            {
                "name": "p",
                "steps": [
                    {"name": "same", "action": "visit", "options": {"url": "https://a"}},
                    {"name": "same", "action": "visit", "options": {"url": "https://b"}},
                ],
            }
        )
    assert "same" in caplog.text


def test_invalid_document_raises(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("steps:\n  - action: visit\n", encoding="utf-8")  # missing name

    with pytest.raises(PlanLoadError):
        load_plan(path)


def test_malformed_yaml_raises(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("steps: [unclosed\n", encoding="utf-8")

    with pytest.raises(PlanLoadError, match="cannot parse"):
        load_plan(path)


def test_missing_file_raises(tmp_path):
    with pytest.raises(PlanLoadError, match="cannot read"):
        load_plan(tmp_path / "nope.yaml")


def test_step_options_are_read_only():
    options = {"url": "https://a.example"}
    step = Step(name="go", action="visit", options=options)
    options["url"] = "https://changed.example"

    assert step.options == {"url": "https://a.example"}
    with pytest.raises(TypeError):
        step.options["url"] = "https://b.example"


def test_steps_are_hashable():
    first = Step(name="go", action="visit", options={"url": "https://a.example"})
    second = Step(name="go", action="visit", options={"url": "https://a.example"})

    assert first == second
    assert len({first, second}) == 1
    assert hash(RunPlan(name="p", steps=(first,))) == hash(RunPlan(name="p", steps=(second,)))
