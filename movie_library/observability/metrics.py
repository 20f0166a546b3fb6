"""
movie_library/observability/metrics.py

This module contains Prometheus metrics definitions.
Keeping metrics in a dedicated module prevents circular imports
between FastAPI app startup (main.py) and the services/routers.
"""

from prometheus_client import Counter


"""
Global Prometheus counter for review mutations.
Labels:
    operation: upsert or delete
    result: success or failure
"""
REVIEW_WRITES = Counter(
    name="review_writes_total",
    documentation="Total number of review create/update/delete operations.",
    labelnames=["operation", "result"],
)

"""
Global Prometheus counter for calls to the OMDb API.
Labels:
    endpoint: details or search
    result: success, not_found or failure
"""
OMDB_REQUESTS = Counter(
    name="omdb_requests_total",
    documentation="Total number of requests sent to the OMDb API.",
    labelnames=["endpoint", "result"],
)
