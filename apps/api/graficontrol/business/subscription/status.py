"""Access status derivation for the paywall.

``resolve_access_status`` is a pure function of the stored facts. Callers that
serve it over HTTP cache the result per user for a short TTL
(``access_status_cache_ttl_seconds``); a subscription activated by a webhook
may therefore take up to one TTL to be reflected for a user whose status was
already cached, unless the writer invalidates the company's entries.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from threading import Lock
from typing import Any, Protocol

from graficontrol.platform.security.context import Role


class AccessStatus(StrEnum):
    UNLIMITED = "unlimited"
    ACTIVE = "active"
    TRIAL = "trial"
    EXPIRED = "expired"


class CompanyFacts(Protocol):
    trial_end_date: datetime | None
    unlimited_access: bool


class SubscriptionFacts(Protocol):
    end_date: datetime


@dataclass(frozen=True, slots=True)
class AccessDecision:
    status: AccessStatus
    is_active: bool
    trial_end_date: datetime | None
    subscription: Any | None = None


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def resolve_access_status(
    role: Role | str,
    company: CompanyFacts | None,
    active_subscription: SubscriptionFacts | None,
    now: datetime,
) -> AccessDecision:
    now = as_utc(now)
    if role == Role.SUPERADMIN:
        return AccessDecision(status=AccessStatus.UNLIMITED, is_active=True, trial_end_date=None)

    if company is not None and company.unlimited_access:
        return AccessDecision(status=AccessStatus.UNLIMITED, is_active=True, trial_end_date=None)

    trial_end_date = as_utc(company.trial_end_date) if company is not None and company.trial_end_date else None

    if active_subscription is not None and as_utc(active_subscription.end_date) > now:
        return AccessDecision(
            status=AccessStatus.ACTIVE,
            is_active=True,
            trial_end_date=trial_end_date,
            subscription=active_subscription,
        )

    if trial_end_date is not None and trial_end_date > now:
        return AccessDecision(status=AccessStatus.TRIAL, is_active=True, trial_end_date=trial_end_date)

    return AccessDecision(status=AccessStatus.EXPIRED, is_active=False, trial_end_date=trial_end_date)


@dataclass
class _CacheEntry:
    value: Any
    expires_at: float
    company_id: uuid.UUID | None


class AccessStatusCache:
    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: dict[tuple[str, uuid.UUID | None], _CacheEntry] = {}

    def get(self, user_id: str, company_id: uuid.UUID | None) -> Any | None:
        key = (user_id, company_id)
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= now:
                del self._entries[key]
                return None
            return entry.value

    def set(self, user_id: str, company_id: uuid.UUID | None, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            return
        with self._lock:
            self._entries[(user_id, company_id)] = _CacheEntry(
                value=value,
                expires_at=time.monotonic() + ttl_seconds,
                company_id=company_id,
            )

    def invalidate_company(self, company_id: uuid.UUID) -> None:
        with self._lock:
            stale = [key for key, entry in self._entries.items() if entry.company_id == company_id]
            for key in stale:
                del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


access_status_cache = AccessStatusCache()
