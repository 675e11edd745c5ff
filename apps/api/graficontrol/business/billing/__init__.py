from graficontrol.business.billing.api import router
from graficontrol.business.billing.webhook import (
    BillingWebhookReconciler,
    WebhookOutcome,
    WebhookResult,
    compute_signature,
    constant_time_equals,
    verify_signature,
    webhook_reconciler,
)

__all__ = [
    "router",
    "BillingWebhookReconciler",
    "WebhookOutcome",
    "WebhookResult",
    "compute_signature",
    "constant_time_equals",
    "verify_signature",
    "webhook_reconciler",
]
