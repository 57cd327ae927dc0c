"""Prometheus metrics for csvconv"""

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, write_to_textfile

# Dedicated registry so repeated runs in one interpreter don't clash with the default one
registry = CollectorRegistry()

# ============================================================================
# Run Metrics
# ============================================================================

runs_total = Counter(
    'csvconv_runs_total',
    'Total number of conversion runs',
    ['status'],  # clean, partial
    registry=registry,
)

run_duration_seconds = Histogram(
    'csvconv_run_duration_seconds',
    'Wall-clock duration of conversion runs',
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 900.0],
    # 100ms to 15 minutes - from a handful of small files to large exports
    registry=registry,
)

# ============================================================================
# File Processing Metrics
# ============================================================================

files_found_total = Counter('csvconv_files_found_total', 'CSV files found in input directories', registry=registry)

files_converted_total = Counter('csvconv_files_converted_total', 'CSV files converted to JSON', registry=registry)

files_failed_total = Counter('csvconv_files_failed_total', 'CSV files that failed to parse', registry=registry)

files_unconverted_total = Counter(
    'csvconv_files_unconverted_total',
    'CSV files left unconverted because their worker crashed',
    registry=registry,
)

records_converted_total = Counter('csvconv_records_converted_total', 'Row records converted', registry=registry)

records_per_file = Histogram(
    'csvconv_records_per_file',
    'Row records per converted file',
    buckets=[0, 10, 100, 1_000, 10_000, 100_000, 1_000_000],
    registry=registry,
)

# ============================================================================
# Worker Metrics
# ============================================================================

workers_spawned_total = Counter('csvconv_workers_spawned_total', 'Worker processes spawned', registry=registry)

worker_crashes_total = Counter(
    'csvconv_worker_crashes_total',
    'Worker processes that exited without finishing their chunk',
    ['reason'],  # exit, stalled
    registry=registry,
)

active_workers = Gauge('csvconv_active_workers', 'Worker processes currently running', registry=registry)


def write_metrics(path: str) -> None:
    """Write all metrics in Prometheus text format to `path`."""
    write_to_textfile(path, registry)
