"""
Prometheus Metrics for MedRep

Tracks:
- chats_total / chats_successful / chats_failed: Counters of chat requests
- answers_with_evidence / answers_degraded: Grounded vs knowledge-only answers
- collections_searched / collections_failed: Per-collection fan-out outcomes
- unmatched_citations: Citations naming no source given to the LLM
- chat_latency_seconds: Histogram of end-to-end chat latency
"""

import logging
import threading

logger = logging.getLogger(__name__)

# Thread-safe metrics storage
_lock = threading.Lock()

_COUNTERS = (
    "chats_total",
    "chats_successful",
    "chats_failed",
    "answers_with_evidence",
    "answers_degraded",
    "collections_searched",
    "collections_failed",
    "unmatched_citations",
)

_metrics: dict[str, float] = {name: 0 for name in _COUNTERS}

_latencies: list[float] = []

_HELP = {
    "chats_total": "Total number of chat requests processed",
    "chats_successful": "Chat requests answered",
    "chats_failed": "Chat requests that raised an error",
    "answers_with_evidence": "Answers grounded in retrieved document chunks",
    "answers_degraded": "Answers synthesized from general knowledge only",
    "collections_searched": "Collection searches that succeeded",
    "collections_failed": "Collection searches that failed and were skipped",
    "unmatched_citations": "Citations that matched no prompt source",
}


def record_chat(
    latency_ms: float,
    success: bool = True,
    found_in_sources: bool = False,
    collections_searched: int = 0,
    collections_failed: int = 0,
    unmatched_citations: int = 0,
) -> None:
    """Record metrics for a processed chat request."""
    with _lock:
        _metrics["chats_total"] += 1
        if success:
            _metrics["chats_successful"] += 1
            if found_in_sources:
                _metrics["answers_with_evidence"] += 1
            else:
                _metrics["answers_degraded"] += 1
        else:
            _metrics["chats_failed"] += 1
        _metrics["collections_searched"] += collections_searched
        _metrics["collections_failed"] += collections_failed
        _metrics["unmatched_citations"] += unmatched_citations
        _latencies.append(latency_ms)


def get_metrics_snapshot() -> dict[str, float]:
    with _lock:
        return dict(_metrics)


def get_metrics_text() -> str:
    """Generate Prometheus-compatible metrics text."""
    with _lock:
        lines: list[str] = []
        for name in _COUNTERS:
            lines.extend(
                [
                    f"# HELP {name} {_HELP[name]}",
                    f"# TYPE {name} counter",
                    f"{name} {int(_metrics[name])}",
                    "",
                ]
            )

        # Compute percentile buckets
        sorted_latencies = sorted(_latencies) if _latencies else [0]
        p50 = _percentile(sorted_latencies, 50)
        p95 = _percentile(sorted_latencies, 95)
        p99 = _percentile(sorted_latencies, 99)

        lines.extend(
            [
                "# HELP chat_latency_seconds Chat response time histogram",
                "# TYPE chat_latency_seconds histogram",
                f'chat_latency_seconds{{le="1.0"}} {_count_below(sorted_latencies, 1000)}',
                f'chat_latency_seconds{{le="5.0"}} {_count_below(sorted_latencies, 5000)}',
                f'chat_latency_seconds{{le="15.0"}} {_count_below(sorted_latencies, 15000)}',
                f'chat_latency_seconds{{le="60.0"}} {_count_below(sorted_latencies, 60000)}',
                f"chat_latency_seconds_p50 {p50 / 1000:.4f}",
                f"chat_latency_seconds_p95 {p95 / 1000:.4f}",
                f"chat_latency_seconds_p99 {p99 / 1000:.4f}",
            ]
        )

        return "\n".join(lines) + "\n"


def reset_metrics() -> None:
    """Reset all metrics to zero."""
    with _lock:
        for key in _metrics:
            _metrics[key] = 0
        _latencies.clear()


def _percentile(sorted_data: list[float], percentile: int) -> float:
    """Compute the given percentile from sorted data."""
    if not sorted_data:
        return 0.0
    idx = int(len(sorted_data) * percentile / 100)
    idx = min(idx, len(sorted_data) - 1)
    return sorted_data[idx]


def _count_below(sorted_data: list[float], threshold_ms: float) -> int:
    """Count values below threshold in sorted data."""
    count = 0
    for v in sorted_data:
        if v <= threshold_ms:
            count += 1
        else:
            break
    return count
