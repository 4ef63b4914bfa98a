"""
Prometheus metrics definitions.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Usage quota metrics
transformations_recorded_total = Counter(
    'transformations_recorded_total',
    'Total transformations charged against user quotas',
    ['style']
)

quota_rejections_total = Counter(
    'quota_rejections_total',
    'Requests rejected because the user quota was exhausted',
    ['stage']  # "gate" (before the provider call) or "record" (race lost)
)

usage_resets_total = Counter(
    'usage_resets_total',
    'Total usage counter resets'
)

# Image provider metrics
image_provider_requests_total = Counter(
    'image_provider_requests_total',
    'Total image provider requests',
    ['provider', 'operation']
)

image_provider_failures_total = Counter(
    'image_provider_failures_total',
    'Total image provider failures',
    ['provider', 'operation', 'reason']
)

image_provider_latency_seconds = Histogram(
    'image_provider_latency_seconds',
    'Image provider request latency in seconds',
    ['provider', 'operation'],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 45.0, 60.0]
)
