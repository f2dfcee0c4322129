"""
Prometheus metrics
"""

from prometheus_client import Counter

PLUGIN_REQUESTS = Counter(
    "tunnelgate_plugin_requests_total",
    "Plugin lifecycle events handled, by operation and outcome",
    ["op", "outcome"]
)

ADMIN_OPERATIONS = Counter(
    "tunnelgate_admin_operations_total",
    "Administrative store mutations, by operation and result code",
    ["operation", "code"]
)
