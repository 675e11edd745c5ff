from __future__ import annotations

from graficontrol.platform.security.repository import BaseRepository


class PlanRepository(BaseRepository):
    resource = "subscription.plan"


class SubscriptionRepository(BaseRepository):
    resource = "subscription.subscription"


class ProvisioningIntentRepository(BaseRepository):
    resource = "subscription.provisioning_intent"
