from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

billing_webhook_events_total = Counter(
    "billing_webhook_events_total",
    "Billing provider webhook deliveries by event and outcome",
    ["event", "outcome"],
)

order_transitions_total = Counter(
    "order_transitions_total",
    "Order status transitions by target status and kind",
    ["status", "kind"],
)

revenue_entries_created_total = Counter(
    "revenue_entries_created_total",
    "Revenue ledger entries created for completed orders",
    ["trigger"],
)

revenue_reconcile_conflicts_total = Counter(
    "revenue_reconcile_conflicts_total",
    "Concurrent revenue inserts resolved by the order uniqueness constraint",
)

quote_conversions_total = Counter(
    "quote_conversions_total",
    "Quote to order conversion attempts by outcome",
    ["outcome"],
)

provisioning_requests_total = Counter(
    "provisioning_requests_total",
    "Subscription provisioning attempts by outcome",
    ["outcome"],
)

provisioning_orphaned_intents_total = Counter(
    "provisioning_orphaned_intents_total",
    "Provisioning intents flagged as orphaned by the sweep",
)

billing_provider_request_duration_seconds = Histogram(
    "billing_provider_request_duration_seconds",
    "Billing provider API call duration in seconds",
    ["operation"],
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_INT_RE = re.compile(r"/\d+\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _normalize_route_template(path: str) -> str:
    return _PATH_PARAM_RE.sub("{id}", path)


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _INT_RE.sub("/{id}", without_uuids)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        path_format = getattr(route, "path_format", None)
        if isinstance(path_format, str) and path_format:
            return _normalize_route_template(path_format)
        route_path = getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return _normalize_route_template(route_path)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    status_str = str(status)
    http_requests_total.labels(method=method, path=path, status=status_str).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_webhook_event(event: str, outcome: str) -> None:
    billing_webhook_events_total.labels(event=event or "unknown", outcome=outcome).inc()


def observe_order_transition(status: str, kind: str) -> None:
    order_transitions_total.labels(status=status, kind=kind).inc()


def observe_revenue_entry_created(trigger: str) -> None:
    revenue_entries_created_total.labels(trigger=trigger).inc()


def observe_revenue_reconcile_conflict() -> None:
    revenue_reconcile_conflicts_total.inc()


def observe_quote_conversion(outcome: str) -> None:
    quote_conversions_total.labels(outcome=outcome).inc()


def observe_provisioning(outcome: str) -> None:
    provisioning_requests_total.labels(outcome=outcome).inc()


def observe_orphaned_intents(count: int = 1) -> None:
    if count > 0:
        provisioning_orphaned_intents_total.inc(count)


def observe_billing_provider_call(operation: str, duration: float) -> None:
    billing_provider_request_duration_seconds.labels(operation=operation).observe(duration)


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
