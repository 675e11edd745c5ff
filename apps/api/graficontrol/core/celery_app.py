from celery import Celery
from celery.signals import setup_logging

from graficontrol.core.config import get_settings
from graficontrol.logging import configure_logging

settings = get_settings()

celery_app = Celery(
    "graficontrol_api",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["graficontrol.tasks"],
)
celery_app.conf.beat_schedule = {
    "sweep-provisioning-intents": {
        "task": "graficontrol.tasks.sweep_provisioning_intents",
        "schedule": float(settings.provisioning_sweep_interval_seconds),
    },
    "publish-trial-notices": {
        "task": "graficontrol.tasks.publish_trial_notices",
        "schedule": float(settings.trial_notice_interval_seconds),
    },
}


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:  # type: ignore[no-untyped-def]
    configure_logging("graficontrol-worker")
