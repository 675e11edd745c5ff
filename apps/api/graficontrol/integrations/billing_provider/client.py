"""HTTP client for the external billing provider (Asaas v3 REST API)."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Any

import httpx

from graficontrol.core.config import get_settings
from graficontrol.metrics import observe_billing_provider_call
from graficontrol.otel import annotate_current_span, get_tracer
from graficontrol.platform.errors import ExternalProviderError


logger = logging.getLogger("graficontrol.billing_provider")
tracer = get_tracer("graficontrol.billing_provider")


@dataclass(slots=True)
class CreditCard:
    holder_name: str
    number: str
    expiry_month: str
    expiry_year: str
    ccv: str


@dataclass(slots=True)
class CreditCardHolderInfo:
    name: str
    email: str
    cpf_cnpj: str
    postal_code: str
    address_number: str
    phone: str


@dataclass(slots=True)
class RemoteSubscriptionRequest:
    customer_id: str
    billing_type: str
    value: float
    next_due_date: date
    cycle: str
    description: str
    external_reference: str
    credit_card: CreditCard | None = None
    credit_card_holder_info: CreditCardHolderInfo | None = None


class BillingProviderClient:
    """Synchronous client; every call is bounded by ``timeout`` seconds."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> BillingProviderClient:
        settings = get_settings()
        return cls(
            settings.billing_provider_api_url,
            settings.billing_provider_api_key,
            timeout=settings.billing_provider_timeout_seconds,
        )

    def create_customer(
        self,
        *,
        name: str,
        email: str | None,
        cpf_cnpj: str | None,
        external_reference: str,
    ) -> dict[str, Any]:
        body = {
            "name": name,
            "email": email,
            "cpfCnpj": cpf_cnpj,
            "externalReference": external_reference,
        }
        return self._request("create_customer", "POST", "/customers", json=body, failure_message="failed to create customer")

    def create_subscription(self, request: RemoteSubscriptionRequest) -> dict[str, Any]:
        body: dict[str, Any] = {
            "customer": request.customer_id,
            "billingType": request.billing_type,
            "value": request.value,
            "nextDueDate": request.next_due_date.isoformat(),
            "cycle": request.cycle,
            "description": request.description,
            "externalReference": request.external_reference,
        }
        if request.billing_type == "CREDIT_CARD" and request.credit_card is not None:
            card = request.credit_card
            body["creditCard"] = {
                "holderName": card.holder_name,
                "number": card.number,
                "expiryMonth": card.expiry_month,
                "expiryYear": card.expiry_year,
                "ccv": card.ccv,
            }
            if request.credit_card_holder_info is not None:
                holder = request.credit_card_holder_info
                body["creditCardHolderInfo"] = {
                    "name": holder.name,
                    "email": holder.email,
                    "cpfCnpj": holder.cpf_cnpj,
                    "postalCode": holder.postal_code,
                    "addressNumber": holder.address_number,
                    "phone": holder.phone,
                }
        return self._request(
            "create_subscription",
            "POST",
            "/subscriptions",
            json=body,
            failure_message="failed to create subscription",
        )

    def list_subscription_payments(self, subscription_id: str) -> list[dict[str, Any]]:
        payload = self._request(
            "list_subscription_payments",
            "GET",
            f"/subscriptions/{subscription_id}/payments",
            failure_message="failed to list subscription payments",
        )
        data = payload.get("data")
        return data if isinstance(data, list) else []

    def get_pix_qr_code(self, payment_id: str) -> dict[str, Any]:
        return self._request(
            "get_pix_qr_code",
            "GET",
            f"/payments/{payment_id}/pixQrCode",
            failure_message="failed to fetch PIX QR code",
        )

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        failure_message: str,
    ) -> dict[str, Any]:
        headers = {"access_token": self.api_key, "Content-Type": "application/json"}
        started = time.perf_counter()
        with tracer.start_as_current_span(f"billing_provider.{operation}"):
            try:
                with httpx.Client(
                    base_url=self.base_url,
                    headers=headers,
                    timeout=httpx.Timeout(self.timeout),
                    transport=self._transport,
                ) as client:
                    response = client.request(method, path, json=json)
                annotate_current_span(**{"http.status_code": response.status_code})
            except httpx.TimeoutException as exc:
                logger.error("billing_provider.timeout", extra={"path": path, "error": str(exc)})
                raise ExternalProviderError(f"{failure_message}: billing provider timed out") from exc
            except httpx.HTTPError as exc:
                logger.error("billing_provider.request_failed", extra={"path": path, "error": str(exc)})
                raise ExternalProviderError(f"{failure_message}: {exc}") from exc
            finally:
                observe_billing_provider_call(operation, time.perf_counter() - started)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ExternalProviderError(
                f"{failure_message}: unreadable response (HTTP {response.status_code})"
            ) from exc

        if not isinstance(payload, dict):
            raise ExternalProviderError(f"{failure_message}: unexpected response shape")

        errors = payload.get("errors")
        if errors:
            description = "unknown error"
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                description = str(errors[0].get("description") or description)
            logger.warning(
                "billing_provider.error_response",
                extra={"path": path, "status_code": response.status_code, "error": description},
            )
            raise ExternalProviderError(f"{failure_message}: {description}")

        if response.status_code >= 400:
            raise ExternalProviderError(f"{failure_message}: HTTP {response.status_code}")

        return payload
