from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AbstractContextManager

from sqlalchemy.orm import Session

from graficontrol.business.subscription.notifications import publish_trial_notices
from graficontrol.business.subscription.provisioning import provisioning_service
from graficontrol.core.celery_app import celery_app
from graficontrol.core.database import SessionLocal


logger = logging.getLogger("graficontrol.tasks")

SessionFactory = Callable[[], AbstractContextManager[Session]]


def run_provisioning_sweep(session_factory: SessionFactory = SessionLocal) -> int:
    with session_factory() as session:
        orphaned = provisioning_service.sweep_provisioning_intents(session)
    logger.info("tasks.provisioning_sweep_finished", extra={"count": len(orphaned)})
    return len(orphaned)


def run_trial_notices(session_factory: SessionFactory = SessionLocal) -> int:
    with session_factory() as session:
        notices = publish_trial_notices(session)
    logger.info("tasks.trial_notices_published", extra={"count": len(notices)})
    return len(notices)


@celery_app.task(name="graficontrol.tasks.sweep_provisioning_intents")
def sweep_provisioning_intents_task() -> int:
    return run_provisioning_sweep()


@celery_app.task(name="graficontrol.tasks.publish_trial_notices")
def publish_trial_notices_task() -> int:
    return run_trial_notices()
