"""Metric sinks receiving per-step and per-run values from the executor."""

from __future__ import annotations

from abc import ABC, abstractmethod

from prometheus_client import CollectorRegistry, Gauge, generate_latest

NAMESPACE = "polymer"


class MetricSink(ABC):
    @abstractmethod
    def record_duration(self, step_name: str, seconds: float) -> None: ...

    @abstractmethod
    def record_success(self, step_name: str, succeeded: bool) -> None: ...

    @abstractmethod
    def record_total_duration(self, seconds: float) -> None: ...


class PrometheusSink(MetricSink):
    """Gauges held in a registry private to one probe run.

    A fresh sink per request keeps concurrent probes from overwriting each
    other's values.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry(auto_describe=True)
        self.step_duration = Gauge(
            "step_duration_seconds",
            "Returns how long each step took to complete in seconds",
            ["step"],
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.step_success = Gauge(
            "step_success",
            "Whether the step execution was successful",
            ["step"],
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.probe_duration = Gauge(
            "probe_duration_seconds",
            "Returns how long the probe took to complete in seconds",
            namespace=NAMESPACE,
            registry=self.registry,
        )

    def record_duration(self, step_name: str, seconds: float) -> None:
        self.step_duration.labels(step=step_name).set(seconds)

    def record_success(self, step_name: str, succeeded: bool) -> None:
        self.step_success.labels(step=step_name).set(1 if succeeded else 0)

    def record_total_duration(self, seconds: float) -> None:
        self.probe_duration.set(seconds)

    def render(self) -> bytes:
        """Registry contents in the Prometheus text exposition format."""
        return generate_latest(self.registry)
