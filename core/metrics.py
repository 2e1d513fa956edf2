"""
Prometheus metrics for the fleet renewal service.

Custom metrics for business logic and performance monitoring.
"""

from prometheus_client import Counter, Gauge, Histogram

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0],
)

# Renewal metrics
renewal_requests_total = Counter(
    "renewal_requests_total",
    "Renewal request transitions",
    ["request_type", "transition"],
)

devices_renewed_total = Counter(
    "devices_renewed_total",
    "Devices whose expiry was extended by a bulk renewal",
)

bulk_renewal_amount_total = Counter(
    "bulk_renewal_amount_total",
    "Sum charged for bulk renewals",
    ["currency"],
)

grace_tokens_issued_total = Counter(
    "grace_tokens_issued_total",
    "Grace tokens issued to expired devices",
)

quotes_generated_total = Counter(
    "quotes_generated_total",
    "Quote artifacts generated",
)

devices_registered_total = Counter(
    "devices_registered_total",
    "Devices registered",
)

devices_removed_total = Counter(
    "devices_removed_total",
    "Devices removed from the registry",
)

bulk_renewals_in_progress = Gauge(
    "bulk_renewals_in_progress",
    "Bulk renewals currently being applied",
)

# External collaborator metrics
external_call_retries_total = Counter(
    "external_call_retries_total",
    "Retries of transient external service failures",
    ["operation"],
)

external_call_duration_seconds = Histogram(
    "external_call_duration_seconds",
    "External collaborator call duration in seconds",
    ["operation"],
    buckets=[0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

# Error metrics
errors_total = Counter(
    "errors_total",
    "Total errors",
    ["error_type", "endpoint"],
)

# Event metrics
domain_events_total = Counter(
    "domain_events_total",
    "Domain events handled",
    ["event_type"],
)
