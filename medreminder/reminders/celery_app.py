from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging
from kombu import Exchange, Queue
from .config import settings


broker_url = settings.CELERY_BROKER_URL or settings.RABBITMQ_URL
result_backend = settings.CELERY_RESULT_BACKEND or None

celery_app = Celery(
    "medreminder",
    broker=broker_url,
    backend=result_backend,
)

exchange = Exchange(settings.RABBITMQ_EXCHANGE, type="direct", durable=True)

celery_app.conf.update(
    # At-least-once: a job is acked only after its handler returns
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.WORKER_CONCURRENCY,
    task_default_queue=settings.JOBS_QUEUE,
    task_default_exchange=settings.RABBITMQ_EXCHANGE,
    task_default_routing_key=settings.JOBS_ROUTING_KEY,
    task_routes={
        "delivery.*": {
            "queue": settings.DELIVERY_QUEUE,
            "routing_key": settings.DELIVERY_ROUTING_KEY,
        },
    },
    include=[
        "medreminder.reminders.tasks",
        "medreminder.reports.tasks",
        "medreminder.delivery.tasks",
    ],
    task_queues=(
        Queue(settings.JOBS_QUEUE, exchange=exchange, routing_key=settings.JOBS_ROUTING_KEY, durable=True),
        Queue(settings.DELIVERY_QUEUE, exchange=exchange, routing_key=settings.DELIVERY_ROUTING_KEY, durable=True),
    ),
)

# Celery Beat schedule for the periodic sweeps
celery_app.conf.beat_schedule = {
    "drain-delivery-queue": {
        "task": "delivery.drain",
        "schedule": settings.DELIVERY_DRAIN_INTERVAL_SECONDS,
    },
}
if settings.RECONCILE_ENABLED:
    celery_app.conf.beat_schedule["reconcile-reminders"] = {
        "task": "reminders.reconcile",
        "schedule": settings.RECONCILE_INTERVAL_SECONDS,
    }
if settings.WEEKLY_REPORTS_ENABLED:
    celery_app.conf.beat_schedule["weekly-reports"] = {
        "task": "reports.weekly_fanout",
        "schedule": crontab(minute=0, hour=settings.WEEKLY_REPORTS_HOUR, day_of_week="mon"),
    }


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    from medreminder.core.logging import configure_logging
    configure_logging()
