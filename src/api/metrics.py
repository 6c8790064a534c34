import time

from prometheus_client import Counter, Histogram, Gauge, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # Counters register under "<name>" and "<name>_total"; either key finds it
        return REGISTRY._names_to_collectors.get(name) or REGISTRY._names_to_collectors[
            f"{name}_total"
        ]


REQUESTS_TOTAL = get_or_create_metric(
    "student_sync_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "student_sync_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

EVENTS_DETECTED_TOTAL = get_or_create_metric(
    "student_sync_events_detected_total", "Events kept after normalization", Counter
)

CACHE_LOOKUPS_TOTAL = get_or_create_metric(
    "student_sync_extraction_cache_lookups_total",
    "Extraction cache lookups",
    Counter,
    labelnames=["result"],
)

CACHE_ENTRIES = get_or_create_metric(
    "student_sync_extraction_cache_entries", "Entries in the extraction cache", Gauge
)

AGGREGATION_ITEMS_TOTAL = get_or_create_metric(
    "student_sync_aggregated_items_total", "Timeline items produced by aggregation", Counter
)

COURSE_FETCH_FAILURES_TOTAL = get_or_create_metric(
    "student_sync_course_fetch_failures_total",
    "Per-course Classroom fetches that failed",
    Counter,
    labelnames=["resource"],
)

CALENDAR_EVENTS_CREATED_TOTAL = get_or_create_metric(
    "student_sync_calendar_events_created_total", "Events written to the calendar", Counter
)


def observe_request(endpoint: str, status: str, start: float) -> None:
    REQUESTS_TOTAL.labels(endpoint=endpoint, status=status).inc()
    REQUEST_LATENCY_SECONDS.labels(endpoint=endpoint).observe(time.time() - start)
