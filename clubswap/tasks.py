"""Celery background tasks.

Each task runs one service call in its own event loop and database session.
"""

import asyncio
import logging
from uuid import UUID

from celery import shared_task

from clubswap.database import engine, get_db_context
from clubswap.services.booking_service import booking_service
from clubswap.services.notification_service import notification_service
from clubswap.services.review_service import review_service

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context."""

    async def _runner():
        try:
            return await coro
        finally:
            # Pooled connections belong to this loop
            await notification_service.close()
            await engine.dispose()

    return asyncio.run(_runner())


# ==================== REVIEW TASKS ====================


@shared_task(bind=True, max_retries=3)
def publish_expired_reviews(self):
    """Publish single-sided reviews once the double-blind window has elapsed."""
    try:
        count = run_async(_publish_expired_reviews())
        return {"status": "success", "published": count}
    except Exception as exc:
        logger.exception("publish_expired_reviews failed")
        raise self.retry(exc=exc, countdown=300)


async def _publish_expired_reviews() -> int:
    async with get_db_context() as db:
        return await review_service.publish_expired_reviews(db)


@shared_task(bind=True, max_retries=3)
def send_review_reminders(self):
    """Ask both parties of yesterday's completed rentals for a review."""
    try:
        count = run_async(_send_review_reminders())
        return {"status": "success", "sent": count}
    except Exception as exc:
        logger.exception("send_review_reminders failed")
        raise self.retry(exc=exc, countdown=300)


async def _send_review_reminders() -> int:
    async with get_db_context() as db:
        return await review_service.send_review_reminders(db)


# ==================== BOOKING TASKS ====================


@shared_task(bind=True, max_retries=3)
def retry_deposit_releases(self):
    """Re-issue deposit hold releases that failed during a transition."""
    try:
        count = run_async(_retry_deposit_releases())
        return {"status": "success", "released": count}
    except Exception as exc:
        logger.exception("retry_deposit_releases failed")
        raise self.retry(exc=exc, countdown=300)


async def _retry_deposit_releases() -> int:
    async with get_db_context() as db:
        return await booking_service.retry_deposit_releases(db)


@shared_task(bind=True, max_retries=3)
def start_due_rentals(self):
    """Move confirmed bookings to in_progress on their start date."""
    try:
        count = run_async(_start_due_rentals())
        return {"status": "success", "started": count}
    except Exception as exc:
        logger.exception("start_due_rentals failed")
        raise self.retry(exc=exc, countdown=300)


async def _start_due_rentals() -> int:
    async with get_db_context() as db:
        return await booking_service.start_due_rentals(db)


# ==================== NOTIFICATION TASKS ====================


@shared_task(bind=True, max_retries=3)
def deliver_notification(self, notification_id: str):
    """Send a recorded notification by email/SMS outside the request.

    Queued by ``notify`` before the caller commits, so a missing row is
    retried shortly.
    """
    try:
        delivered = run_async(_deliver_notification(UUID(notification_id)))
    except Exception as exc:
        logger.exception(f"deliver_notification failed for {notification_id}")
        raise self.retry(exc=exc, countdown=60)
    if delivered is None:
        raise self.retry(countdown=5)
    return {"status": "success", **delivered}


async def _deliver_notification(notification_id: UUID) -> dict[str, bool] | None:
    async with get_db_context() as db:
        return await notification_service.deliver(db, notification_id)
