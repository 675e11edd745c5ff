from graficontrol.business.subscription.api import router
from graficontrol.business.subscription.models import (
    PaymentMethod,
    Plan,
    ProvisioningIntent,
    ProvisioningIntentStatus,
    Subscription,
    SubscriptionStatus,
)
from graficontrol.business.subscription.provisioning import SubscriptionProvisioningService, provisioning_service
from graficontrol.business.subscription.service import SubscriptionService, subscription_service
from graficontrol.business.subscription.status import AccessStatus, access_status_cache, resolve_access_status

__all__ = [
    "router",
    "AccessStatus",
    "PaymentMethod",
    "Plan",
    "ProvisioningIntent",
    "ProvisioningIntentStatus",
    "Subscription",
    "SubscriptionStatus",
    "SubscriptionProvisioningService",
    "SubscriptionService",
    "access_status_cache",
    "provisioning_service",
    "resolve_access_status",
    "subscription_service",
]
