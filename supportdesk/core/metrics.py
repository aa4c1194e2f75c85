from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter

# Upstream call counters live for the whole process; the per-request HTTP
# metrics are registered per app in create_app().
UPSTREAM_REGISTRY = CollectorRegistry()

JIRA_REQUESTS = Counter(
    "jira_requests_total",
    "Outbound Jira REST calls by outcome",
    ["method", "outcome"],
    registry=UPSTREAM_REGISTRY,
)
