"""
MedRep Observability Module

Monitoring components:
- Prometheus metrics
"""

from src.observability.metrics import (
    get_metrics_snapshot,
    get_metrics_text,
    record_chat,
    reset_metrics,
)

__all__ = ["get_metrics_snapshot", "get_metrics_text", "record_chat", "reset_metrics"]
