"""Billing provider webhook: signature verification and subscription status sync.

Deliveries are acknowledged whenever the signature is valid, including
deliveries that change nothing, so the provider does not retry them.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import uuid
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from sqlalchemy.orm import Session

from graficontrol import audit, events
from graficontrol.business.subscription.models import Subscription, SubscriptionStatus
from graficontrol.business.subscription.status import access_status_cache
from graficontrol.metrics import observe_webhook_event
from graficontrol.otel import annotate_current_span
from graficontrol.platform.errors import AuthError, ValidationError


logger = logging.getLogger("graficontrol.billing.webhook")

WEBHOOK_ACTOR = "billing-provider"


class WebhookOutcome(StrEnum):
    APPLIED = "applied"
    UNCHANGED = "unchanged"
    LOGGED = "logged"
    IGNORED = "ignored"
    UNKNOWN_SUBSCRIPTION = "unknown_subscription"


STATUS_BY_EVENT: dict[str, SubscriptionStatus] = {
    "PAYMENT_CONFIRMED": SubscriptionStatus.ACTIVE,
    "PAYMENT_RECEIVED": SubscriptionStatus.ACTIVE,
    "PAYMENT_OVERDUE": SubscriptionStatus.OVERDUE,
}

LOG_ONLY_EVENTS = frozenset({"PAYMENT_DELETED", "PAYMENT_REFUNDED"})


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def constant_time_equals(expected: str, provided: str) -> bool:
    if len(expected) != len(provided):
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def verify_signature(raw_body: bytes, signature: str | None, secret: str | None) -> None:
    if not secret:
        raise AuthError("webhook secret is not configured")
    if not signature:
        raise AuthError("missing webhook signature")
    if not constant_time_equals(compute_signature(raw_body, secret), signature):
        raise AuthError("invalid webhook signature")


def parse_payload(raw_body: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(raw_body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError("webhook body is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise ValidationError("webhook body must be a JSON object")
    return payload


@dataclass(slots=True)
class WebhookResult:
    event: str
    outcome: WebhookOutcome
    subscription_id: uuid.UUID | None = None
    status: SubscriptionStatus | None = None


@dataclass(slots=True)
class BillingWebhookReconciler:
    """Applies verified payment events to local subscriptions (last write wins)."""

    def handle(self, session: Session, raw_body: bytes, signature: str | None, secret: str | None) -> WebhookResult:
        try:
            verify_signature(raw_body, signature, secret)
        except AuthError as exc:
            observe_webhook_event("unverified", "rejected")
            logger.warning("billing.webhook.rejected", extra={"reason": exc.message})
            raise

        payload = parse_payload(raw_body)
        result = self.apply(session, payload)
        observe_webhook_event(result.event, result.outcome.value)
        annotate_current_span(
            **{
                "billing.event": result.event,
                "billing.outcome": result.outcome.value,
                "subscription_id": str(result.subscription_id) if result.subscription_id else None,
            }
        )
        return result

    def apply(self, session: Session, payload: dict[str, Any]) -> WebhookResult:
        event = payload.get("event")
        event = event if isinstance(event, str) else ""
        payment = payload.get("payment")
        payment = payment if isinstance(payment, dict) else {}
        payment_id = payment.get("id")
        reference = payment.get("externalReference")
        log_extra = {"event": event, "payment_id": str(payment_id) if payment_id else None}

        if event in LOG_ONLY_EVENTS:
            logger.info("billing.webhook.logged_only", extra={**log_extra, "subscription_id": reference})
            return WebhookResult(event, WebhookOutcome.LOGGED)

        target = STATUS_BY_EVENT.get(event)
        if target is None or not reference:
            logger.info("billing.webhook.ignored", extra=log_extra)
            return WebhookResult(event, WebhookOutcome.IGNORED)

        subscription = self._find_subscription(session, str(reference))
        if subscription is None:
            logger.info("billing.webhook.unknown_subscription", extra={**log_extra, "subscription_id": str(reference)})
            return WebhookResult(event, WebhookOutcome.UNKNOWN_SUBSCRIPTION)

        previous = subscription.status
        log_extra.update(
            {
                "subscription_id": str(subscription.id),
                "company_id": str(subscription.company_id),
                "previous_status": previous.value,
                "status": target.value,
            }
        )
        if previous == target:
            logger.info("billing.webhook.unchanged", extra=log_extra)
            return WebhookResult(event, WebhookOutcome.UNCHANGED, subscription.id, target)

        if previous == SubscriptionStatus.ACTIVE and target == SubscriptionStatus.OVERDUE:
            logger.warning("billing.webhook.status_regressed", extra=log_extra)

        subscription.status = target
        session.commit()

        access_status_cache.invalidate_company(subscription.company_id)
        audit.record(
            WEBHOOK_ACTOR,
            "subscription",
            str(subscription.id),
            "billing.subscription.status_changed",
            {"status": previous.value},
            {"status": target.value},
            reason=event,
        )
        events.publish(
            {
                "event_type": "billing.subscription.status_changed",
                "company_id": str(subscription.company_id),
                "subscription_id": str(subscription.id),
                "previous_status": previous.value,
                "status": target.value,
                "payment_id": str(payment_id) if payment_id else None,
            }
        )
        logger.info("billing.webhook.applied", extra=log_extra)
        return WebhookResult(event, WebhookOutcome.APPLIED, subscription.id, target)

    @staticmethod
    def _find_subscription(session: Session, reference: str) -> Subscription | None:
        try:
            subscription_id = uuid.UUID(reference)
        except ValueError:
            return None
        return session.get(Subscription, subscription_id)


webhook_reconciler = BillingWebhookReconciler()
