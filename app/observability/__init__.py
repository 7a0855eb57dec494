"""Observability layer: in-process audit metrics. No external SaaS."""

from app.observability.metrics import MetricsCollector

__all__ = [
    "MetricsCollector",
]
