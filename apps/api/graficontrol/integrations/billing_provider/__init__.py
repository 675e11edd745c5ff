from graficontrol.integrations.billing_provider.client import (
    BillingProviderClient,
    CreditCard,
    CreditCardHolderInfo,
    RemoteSubscriptionRequest,
)

__all__ = [
    "BillingProviderClient",
    "CreditCard",
    "CreditCardHolderInfo",
    "RemoteSubscriptionRequest",
]
