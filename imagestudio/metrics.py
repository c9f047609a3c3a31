"""
Prometheus metric definitions and recording helpers.
"""
from prometheus_client import Counter, Histogram

# ============================================
# HTTP Request Metrics
# ============================================

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)

# ============================================
# Business Metrics - Credits
# ============================================

credits_granted = Counter(
    'credits_granted_total',
    'Total credits granted',
    ['reason']
)

credits_consumed = Counter(
    'credits_consumed_total',
    'Total credits consumed'
)

# ============================================
# Business Metrics - Generation
# ============================================

generations_total = Counter(
    'image_generations_total',
    'Image generation requests by outcome',
    ['outcome']
)

# ============================================
# Payment Webhook Metrics
# ============================================

payment_webhooks_total = Counter(
    'payment_webhooks_total',
    'Payment webhook events by type and outcome',
    ['event_type', 'outcome']
)


def track_request(method: str, endpoint: str, status: int, duration_seconds: float):
    """Record HTTP request metrics."""
    http_requests_total.labels(
        method=method,
        endpoint=endpoint,
        status=status
    ).inc()

    http_request_duration.labels(
        method=method,
        endpoint=endpoint
    ).observe(duration_seconds)


def track_credits_granted(reason: str, amount: int):
    """Record credits granted (welcome_bonus, purchase, manual)."""
    credits_granted.labels(reason=reason).inc(amount)


def track_credit_consumed():
    """Record a single credit deduction."""
    credits_consumed.inc()


def track_generation(outcome: str):
    """Record a generation attempt outcome (success, upstream_error, timeout, ...)."""
    generations_total.labels(outcome=outcome).inc()


def track_payment_webhook(event_type: str, outcome: str):
    """Record a processed payment webhook."""
    payment_webhooks_total.labels(event_type=event_type, outcome=outcome).inc()
