from celery import Celery
from celery.signals import worker_init
from kombu import Queue
from prometheus_client import start_http_server
from .config import settings


celery_app = Celery(
    "reminders",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_acks_late=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    worker_prefetch_multiplier=1,
    task_default_queue=settings.CELERY_QUEUE,
    task_queues=(Queue(settings.CELERY_QUEUE, durable=True),),
    include=["questreminders.tasks"],
    # A scan that outlives its interval is stale; the next beat tick replaces it
    task_time_limit=settings.SCHEDULER_SCAN_INTERVAL_SECONDS,
    timezone="UTC",
    enable_utc=True,
)

# Celery Beat schedule for periodic scanning
celery_app.conf.beat_schedule = {
    "send-due-reminders": {
        "task": "reminders.send_due",
        "schedule": settings.SCHEDULER_SCAN_INTERVAL_SECONDS,
        "options": {"expires": settings.SCHEDULER_SCAN_INTERVAL_SECONDS},
    },
}


@worker_init.connect
def _start_metrics_exporter(**_kwargs) -> None:
    if settings.METRICS_ENABLED:
        start_http_server(settings.METRICS_PORT)

