"""Prometheus metric definitions for Draftbox.

Single source of truth for all custom metrics. Import from here in service and API code.
"""

from prometheus_client import Counter, Histogram

# --- Write gate metrics ---

write_gate_wait_seconds = Histogram(
    "draftbox_write_gate_wait_seconds",
    "Time spent waiting for the draft store write gate",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

write_gate_busy_total = Counter(
    "draftbox_write_gate_busy_total",
    "Total write operations rejected because the gate was busy",
    ["operation"],
)

# --- Business metrics ---

drafts_saved_total = Counter(
    "draftbox_drafts_saved_total",
    "Total drafts saved by operation",
    ["operation"],
)

drafts_archived_total = Counter(
    "draftbox_drafts_archived_total",
    "Total drafts soft-deleted",
)

drafts_purged_total = Counter(
    "draftbox_drafts_purged_total",
    "Total archived drafts physically removed by an administrator",
)
