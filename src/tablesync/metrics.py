"""
Prometheus metrics for synchronization clients.
"""

from prometheus_client import Counter

from utils.metrics import get_or_create_metric

ROWS_INSERTED = get_or_create_metric(
    lambda: Counter(
        "tablesync_rows_inserted_total",
        "Rows inserted into destination tables",
        ["table"],
    ),
    "tablesync_rows_inserted_total",
)

ROWS_DELETED = get_or_create_metric(
    lambda: Counter(
        "tablesync_rows_deleted_total",
        "Rows deleted from destination tables",
        ["table", "strategy"],
    ),
    "tablesync_rows_deleted_total",
)

COMMITS = get_or_create_metric(
    lambda: Counter(
        "tablesync_commits_total",
        "Commits issued against destination tables",
        ["table"],
    ),
    "tablesync_commits_total",
)

CEILING_TRIPS = get_or_create_metric(
    lambda: Counter(
        "tablesync_ceiling_trips_total",
        "Destructive-operation ceilings reached",
        ["table", "ceiling"],
    ),
    "tablesync_ceiling_trips_total",
)
