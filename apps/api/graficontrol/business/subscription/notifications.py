from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from graficontrol import events
from graficontrol.business.company.models import Company
from graficontrol.business.subscription.models import Subscription, SubscriptionStatus
from graficontrol.business.subscription.status import as_utc


logger = logging.getLogger("graficontrol.subscription.notifications")

_SECONDS_PER_DAY = 86400


class TrialNoticeKind(StrEnum):
    TEN_DAYS = "ten_days"
    FIVE_DAYS = "five_days"
    DAILY = "daily"


@dataclass(frozen=True, slots=True)
class TrialNotice:
    company_id: uuid.UUID
    company_name: str
    days_remaining: int
    kind: TrialNoticeKind
    trial_end_date: datetime


def notice_kind_for(days_remaining: int) -> TrialNoticeKind | None:
    if days_remaining == 10:
        return TrialNoticeKind.TEN_DAYS
    if days_remaining == 5:
        return TrialNoticeKind.FIVE_DAYS
    if 0 <= days_remaining <= 4:
        return TrialNoticeKind.DAILY
    return None


def plan_trial_notices(session: Session, *, now: datetime | None = None) -> list[TrialNotice]:
    """Companies whose trial is about to end (or ended today) and that have not subscribed."""

    now = as_utc(now or datetime.now(timezone.utc))
    companies = session.scalars(
        select(Company).where(and_(Company.unlimited_access.is_(False), Company.trial_end_date.is_not(None)))
    ).all()

    notices: list[TrialNotice] = []
    for company in companies:
        subscription = session.scalar(
            select(Subscription)
            .where(and_(Subscription.company_id == company.id, Subscription.status == SubscriptionStatus.ACTIVE))
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        if subscription is not None and as_utc(subscription.end_date) > now:
            continue

        trial_end_date = as_utc(company.trial_end_date)  # type: ignore[arg-type]
        days_remaining = math.ceil((trial_end_date - now).total_seconds() / _SECONDS_PER_DAY)
        kind = notice_kind_for(days_remaining)
        if kind is None:
            continue
        notices.append(
            TrialNotice(
                company_id=company.id,
                company_name=company.name,
                days_remaining=days_remaining,
                kind=kind,
                trial_end_date=trial_end_date,
            )
        )
    return notices


def publish_trial_notices(session: Session, *, now: datetime | None = None) -> list[TrialNotice]:
    notices = plan_trial_notices(session, now=now)
    for notice in notices:
        logger.info(
            "subscription.trial_notice",
            extra={"company_id": str(notice.company_id), "status": notice.kind.value},
        )
        events.publish(
            {
                "event_type": "subscription.trial_notice",
                "company_id": str(notice.company_id),
                "company_name": notice.company_name,
                "days_remaining": notice.days_remaining,
                "kind": notice.kind.value,
                "trial_end_date": notice.trial_end_date.isoformat(),
            }
        )
    return notices
