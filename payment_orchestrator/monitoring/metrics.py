"""
Prometheus metrics for payment orchestration monitoring.

Tracks:
- Orchestrated operations by operation and outcome
- Operation duration
- Gateway requests, errors and latency
- Circuit breaker state
- HTTP requests served by the API
"""
from prometheus_client import Counter, Gauge, Histogram

# Payment operation metrics
payment_operations_total = Counter(
    "payment_operations_total",
    "Total orchestrated payment operations",
    ["operation", "outcome"],  # outcome: success, failed, error
)

payment_operation_duration_seconds = Histogram(
    "payment_operation_duration_seconds",
    "Payment operation duration in seconds",
    ["operation"],
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0, 30.0),
)

# Gateway metrics
gateway_requests_total = Counter(
    "gateway_requests_total",
    "Total Authorize.Net API requests",
    ["operation", "status"],  # status: approved, declined, error
)

gateway_errors_total = Counter(
    "gateway_errors_total",
    "Total Authorize.Net transport errors",
    ["error_type"],  # transient, permanent
)

gateway_duration_seconds = Histogram(
    "gateway_duration_seconds",
    "Authorize.Net API call duration in seconds",
    ["operation"],
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0, 30.0),
)

# Circuit breaker metrics
gateway_circuit_breaker_state = Gauge(
    "gateway_circuit_breaker_state",
    "Gateway circuit breaker state (0=closed, 1=open, 2=half_open)",
)

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests served",
    ["method", "route", "status_code"],
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_payment_operation(operation: str, outcome: str, duration_seconds: float) -> None:
        """Record one orchestrated operation."""
        payment_operations_total.labels(operation=operation, outcome=outcome).inc()
        payment_operation_duration_seconds.labels(operation=operation).observe(duration_seconds)

    @staticmethod
    def record_gateway_call(operation: str, status: str, duration_seconds: float) -> None:
        """Record gateway API call."""
        gateway_requests_total.labels(operation=operation, status=status).inc()
        gateway_duration_seconds.labels(operation=operation).observe(duration_seconds)

    @staticmethod
    def record_gateway_error(error_type: str) -> None:
        """Record gateway transport error."""
        gateway_errors_total.labels(error_type=error_type).inc()

    @staticmethod
    def set_circuit_breaker_state(state: str) -> None:
        """Set circuit breaker state."""
        state_map = {"closed": 0, "open": 1, "half_open": 2}
        gateway_circuit_breaker_state.set(state_map.get(state, 0))

    @staticmethod
    def record_http_request(method: str, route: str, status_code: int) -> None:
        http_requests_total.labels(method=method, route=route, status_code=str(status_code)).inc()


# Export singleton instance
metrics = MetricsCollector()
