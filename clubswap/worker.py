"""Celery worker configuration.

This module sets up Celery for background task processing including:
- Review publication after the double-blind window
- Review reminders
- Deposit release retries
- Starting rentals on their start date
"""

from celery import Celery
from celery.schedules import crontab

from clubswap.config import settings

# Create Celery app
celery_app = Celery(
    "clubswap_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["clubswap.tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="America/Toronto",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,  # Soft limit at 4 minutes

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    # Retry settings
    task_default_retry_delay=60,  # 1 minute
    task_max_retries=3,

    # Beat schedule for periodic tasks
    beat_schedule={
        # Publish lone reviews whose window elapsed, hourly
        "publish-expired-reviews": {
            "task": "clubswap.tasks.publish_expired_reviews",
            "schedule": crontab(minute=5),
        },
        # Review reminders for rentals completed yesterday, daily at 10 AM
        "send-review-reminders": {
            "task": "clubswap.tasks.send_review_reminders",
            "schedule": crontab(hour=10, minute=0),
        },
        # Re-issue failed deposit releases every 30 minutes
        "retry-deposit-releases": {
            "task": "clubswap.tasks.retry_deposit_releases",
            "schedule": crontab(minute="*/30"),
        },
        # Start rentals whose start date has arrived, every 15 minutes
        "start-due-rentals": {
            "task": "clubswap.tasks.start_due_rentals",
            "schedule": crontab(minute="*/15"),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
