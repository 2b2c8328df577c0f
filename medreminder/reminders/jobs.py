"""
Delayed job scheduling.

Jobs are fire-and-forget and delivered at least once; there is no cancel.
Handlers re-read their records and must tolerate stale or duplicate runs.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Protocol

from medreminder.utils.timemath import now_local

logger = logging.getLogger(__name__)

FIRE_REMINDER_TASK = "reminders.fire"
GENERATE_REPORT_TASK = "reports.generate"
DRAIN_DELIVERY_TASK = "delivery.drain"


class JobScheduler(Protocol):
    def run_after(self, delay_seconds: float, task_name: str, payload: Dict[str, Any]) -> None:
        ...

    def run_at(self, when: datetime, task_name: str, payload: Dict[str, Any]) -> None:
        ...


class CeleryJobScheduler:
    """Publishes jobs through the Celery broker using countdowns."""

    def __init__(self, now_fn: Optional[Callable[[], datetime]] = None):
        self._now = now_fn or now_local

    def run_after(self, delay_seconds: float, task_name: str, payload: Dict[str, Any]) -> None:
        from .celery_app import celery_app

        countdown = max(0.0, float(delay_seconds))
        celery_app.send_task(task_name, kwargs=payload, countdown=countdown)
        logger.info(f"[Jobs] Queued {task_name} in {countdown:.0f}s payload={payload}")

    def run_at(self, when: datetime, task_name: str, payload: Dict[str, Any]) -> None:
        # Instants are naive local time; a countdown avoids the broker's UTC eta handling
        self.run_after((when - self._now()).total_seconds(), task_name, payload)
