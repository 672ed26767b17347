"""
Prometheus metrics for warehouse batch loads

Step row counts and durations, batch outcomes, verification results,
reference set sizes and dropped staging rows, all registered on a module-level registry.
"""
import os
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()


# =======================
# STEP METRICS
# =======================

rows_loaded_total = Counter(
    name="dwh_rows_loaded_total",
    documentation="Rows inserted into warehouse targets by committed batches",
    labelnames=["target"],
    registry=REGISTRY,
)

step_duration_seconds = Histogram(
    name="dwh_step_duration_seconds",
    documentation="Wall-clock duration of a load step in seconds",
    labelnames=["target", "status"],  # status: loaded, failed
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0],
    registry=REGISTRY,
)

step_failures_total = Counter(
    name="dwh_step_failures_total",
    documentation="Load steps that aborted a batch",
    labelnames=["target", "error_type"],
    registry=REGISTRY,
)

# =======================
# BATCH METRICS
# =======================

batches_total = Counter(
    name="dwh_batches_total",
    documentation="Batches run, by outcome",
    labelnames=["status"],  # status: committed, rolled_back
    registry=REGISTRY,
)

batch_duration_seconds = Histogram(
    name="dwh_batch_duration_seconds",
    documentation="Wall-clock duration of a batch in seconds",
    labelnames=["status"],
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0],
    registry=REGISTRY,
)

last_committed_batch_timestamp = Gauge(
    name="dwh_last_committed_batch_timestamp_seconds",
    documentation="Unix time of the last committed batch",
    registry=REGISTRY,
)

# =======================
# VERIFICATION, REFERENCE & TRANSFORM METRICS
# =======================

verification_failures_total = Counter(
    name="dwh_verification_failures_total",
    documentation="Expected targets found missing or empty after commit",
    labelnames=["target", "reason"],  # reason: missing, empty
    registry=REGISTRY,
)

reference_set_size = Gauge(
    name="dwh_reference_set_size",
    documentation="Number of keys in a loaded reference set",
    labelnames=["reference_set"],
    registry=REGISTRY,
)

rows_dropped_total = Counter(
    name="dwh_rows_dropped_total",
    documentation="Staged rows a transform dropped because they could not be loaded",
    labelnames=["entity", "reason"],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """Generate Prometheus metrics in text format"""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Get content type for Prometheus metrics"""
    return CONTENT_TYPE_LATEST


def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    # Lazy import: only needed when the endpoint is enabled
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    if labels:
        counter.labels(**labels).inc(value)
    else:
        counter.inc(value)


def observe_histogram(histogram: Histogram, value: float, **labels) -> None:
    histogram.labels(**labels).observe(value)


def set_gauge(gauge: Gauge, value: float, **labels) -> None:
    if labels:
        gauge.labels(**labels).set(value)
    else:
        gauge.set(value)


# =======================
# LOAD-SPECIFIC HELPERS
# =======================

def record_step(target: str, row_count: int, duration_seconds: float, success: bool = True) -> None:
    """
    Record one load step.

    Rows are only counted as loaded once the batch commits (see record_batch).
    """
    status = "loaded" if success else "failed"
    observe_histogram(step_duration_seconds, duration_seconds, target=target, status=status)


def record_step_failure(target: str, error_type: str) -> None:
    increment_counter(step_failures_total, 1, target=target, error_type=error_type)


def record_batch(
    committed: bool,
    duration_seconds: float,
    rows_by_target: dict[str, int] | None = None,
    finished_at: float | None = None,
) -> None:
    """
    Record a finished batch.

    Args:
        committed: Whether the batch committed
        duration_seconds: Batch duration in seconds
        rows_by_target: Rows inserted per target (committed batches only)
        finished_at: Unix time the batch finished
    """
    status = "committed" if committed else "rolled_back"
    increment_counter(batches_total, 1, status=status)
    observe_histogram(batch_duration_seconds, duration_seconds, status=status)

    if committed:
        for target, rows in (rows_by_target or {}).items():
            increment_counter(rows_loaded_total, rows, target=target)
        if finished_at is not None:
            set_gauge(last_committed_batch_timestamp, finished_at)


def record_verification_failure(target: str, reason: str) -> None:
    increment_counter(verification_failures_total, 1, target=target, reason=reason)


def record_reference_set(name: str, size: int) -> None:
    set_gauge(reference_set_size, size, reference_set=name)


def record_dropped_rows(entity: str, reason: str, count: int) -> None:
    increment_counter(rows_dropped_total, count, entity=entity, reason=reason)
