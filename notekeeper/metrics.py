"""Prometheus metrics for the note store.

All metric objects are defined here so they can be imported from any module.
"""

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# Store operation metrics
# ---------------------------------------------------------------------------

STORE_OPERATIONS = Counter(
    "notekeeper_store_operations_total",
    "Total number of note store operations",
    ["operation", "status"],  # success, not_found, persistence, invalid
)

NOTES_TOTAL = Gauge(
    "notekeeper_notes_total",
    "Number of notes in the collection, including soft-deleted ones",
)

# ---------------------------------------------------------------------------
# Persistence metrics
# ---------------------------------------------------------------------------

SAVE_DURATION = Histogram(
    "notekeeper_save_duration_seconds",
    "Duration of full-collection saves in seconds",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)
