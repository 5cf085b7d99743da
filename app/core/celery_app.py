from celery import Celery
from celery.signals import worker_process_init, worker_shutdown
import structlog

from app.core.config import settings
from app.core.database import engine

logger = structlog.get_logger()

celery_app = Celery(
    "jewelry_erp",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.tasks.tenants"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # A full migration batch walks every tenant database
    task_time_limit=60 * 60,
    task_soft_time_limit=55 * 60,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_routes={"app.tasks.tenants.*": {"queue": "tenants"}},
)


@worker_process_init.connect
def reset_engine_after_fork(**kwargs):
    """Forked workers must not share the parent's pooled connections"""
    engine.sync_engine.dispose(close=False)
    logger.info("Celery worker process ready", queue="tenants")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    logger.info("Celery worker shutting down")
