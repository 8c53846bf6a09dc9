from prometheus_client import Counter, Histogram, make_asgi_app

# Route labels use the route template to keep cardinality low.
REQUESTS = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "route", "status"],
)

LATENCY = Histogram(
    "http_request_duration_seconds",
    "Request latency in seconds",
    ["method", "route"],
)

PLUGIN_ACTIONS = Counter(
    "s3_plugin_actions_total",
    "S3 plugin executions by action and outcome",
    ["action", "outcome"],
)

metrics_app = make_asgi_app()
