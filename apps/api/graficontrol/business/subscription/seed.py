from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from graficontrol.business.subscription.models import Plan


DEFAULT_PLANS: tuple[tuple[str, int, Decimal], ...] = (
    ("Monthly", 1, Decimal("99.90")),
    ("Yearly", 12, Decimal("999.00")),
)


def ensure_default_plans(session: Session) -> list[Plan]:
    existing = {plan.duration_months: plan for plan in session.scalars(select(Plan)).all()}
    created: list[Plan] = []
    for name, duration_months, price in DEFAULT_PLANS:
        if duration_months in existing:
            continue
        plan = Plan(name=name, duration_months=duration_months, price=price, is_active=True)
        session.add(plan)
        created.append(plan)
    if created:
        session.commit()
    return created
