"""Notification Service for email, SMS and in-app notifications.

Handles all notification channels:
- Email (SendGrid)
- SMS (Twilio)
- In-app notifications (database)

Notifications are fire-and-forget: every failure is logged and swallowed so
a booking or review transition is never rolled back by a delivery problem.
"""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from clubswap.config import settings
from clubswap.models.notification import Notification
from clubswap.models.user import User

logger = logging.getLogger(__name__)


class _TemplateData(dict):
    def __missing__(self, key: str) -> str:
        return ""


class NotificationService:
    """Service for sending notifications across all channels."""

    # Notification templates
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_REQUEST = "booking_request"
    BOOKING_DECLINED = "booking_declined"
    BOOKING_CANCELLED = "booking_cancelled"
    PAYOUT = "payout"
    REVIEW_REMINDER = "review_reminder"
    REVIEW_PUBLISHED = "review_published"

    # template -> (title, body, action url)
    TEMPLATES: dict[str, tuple[str, str, str]] = {
        BOOKING_CONFIRMED: (
            "Booking Confirmed!",
            "Your booking for {listing_title} from {start_date} to {end_date} is confirmed.",
            "/bookings/{booking_id}",
        ),
        BOOKING_REQUEST: (
            "New Booking Request",
            "{renter_name} wants to rent {listing_title} from {start_date} to {end_date}.",
            "/bookings/{booking_id}",
        ),
        BOOKING_DECLINED: (
            "Booking Declined",
            "Your request for {listing_title} was declined. {reason}",
            "/bookings/{booking_id}",
        ),
        BOOKING_CANCELLED: (
            "Booking Cancelled",
            "The booking for {listing_title} from {start_date} to {end_date} was cancelled. "
            "Refund: ${refund_amount}",
            "/bookings/{booking_id}",
        ),
        PAYOUT: (
            "Rental Completed",
            "The rental of {listing_title} is complete. Your earnings: ${owner_earnings}",
            "/bookings/{booking_id}",
        ),
        REVIEW_REMINDER: (
            "How did it go?",
            "Leave a review for your rental of {listing_title}. "
            "Reviews stay hidden until both of you have posted.",
            "/bookings/{booking_id}/review",
        ),
        REVIEW_PUBLISHED: (
            "New Review",
            "A review of your rental of {listing_title} has been published.",
            "/bookings/{booking_id}",
        ),
    }

    # Templates also sent by SMS
    SMS_TEMPLATES = frozenset({BOOKING_CONFIRMED, BOOKING_REQUEST, BOOKING_CANCELLED})

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        deliver_inline: bool | None = None,
    ) -> None:
        """Initialize notification service.

        Args:
            http_client: Client for SendGrid/Twilio calls, created lazily if omitted
            deliver_inline: Send email/SMS inside ``notify`` instead of queueing
                ``deliver_notification``; defaults to ``settings.notifications_inline``
        """
        self._http_client = http_client
        self.deliver_inline = (
            settings.notifications_inline if deliver_inline is None else deliver_inline
        )

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client. The next send opens a new one."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def render(self, template: str, data: dict[str, Any]) -> tuple[str, str, str]:
        """Render a template into (title, body, action_url)."""
        title, body, action_url = self.TEMPLATES[template]
        values = _TemplateData({k: v for k, v in data.items() if v is not None})
        return title.format_map(values), body.format_map(values), action_url.format_map(values)

    # ==================== EMAIL (SENDGRID) ====================

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> bool:
        """Send an email via SendGrid.

        Args:
            to_email: Recipient email
            subject: Email subject
            html_content: HTML body
            text_content: Plain text body

        Returns:
            bool: True if sent successfully
        """
        if not settings.sendgrid_api_key:
            return False

        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {
                "email": settings.email_from_address,
                "name": settings.email_from_name,
            },
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
        }
        if text_content:
            payload["content"].insert(0, {"type": "text/plain", "value": text_content})

        try:
            response = await self.http_client.post(
                "https://api.sendgrid.com/v3/mail/send",
                headers={"Authorization": f"Bearer {settings.sendgrid_api_key}"},
                json=payload,
            )
        except httpx.HTTPError as e:
            logger.warning(f"SendGrid request failed for {to_email}: {e}")
            return False

        if response.status_code not in (200, 202):
            logger.warning(f"SendGrid rejected email to {to_email}: {response.status_code}")
            return False
        return True

    # ==================== SMS (TWILIO) ====================

    async def send_sms(self, to_phone: str, message: str) -> bool:
        """Send an SMS via Twilio.

        Args:
            to_phone: Recipient phone number (international format)
            message: SMS text

        Returns:
            bool: True if sent successfully
        """
        if not settings.twilio_account_sid or not settings.twilio_auth_token:
            return False

        url = f"https://api.twilio.com/2010-04-01/Accounts/{settings.twilio_account_sid}/Messages.json"
        data = {
            "To": to_phone,
            "From": settings.twilio_phone_number or "",
            "Body": message,
        }

        try:
            response = await self.http_client.post(
                url,
                auth=(settings.twilio_account_sid, settings.twilio_auth_token),
                data=data,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Twilio request failed for {to_phone}: {e}")
            return False

        if response.status_code != 201:
            logger.warning(f"Twilio rejected SMS to {to_phone}: {response.status_code}")
            return False
        return True

    # ==================== DISPATCH ====================

    def _channels(self, user: User, template: str) -> tuple[bool, bool]:
        """Which of (email, sms) are configured and apply to this user and template."""
        email = bool(settings.sendgrid_api_key and user.email)
        sms = bool(
            settings.twilio_account_sid
            and settings.twilio_auth_token
            and user.phone_number
            and template in self.SMS_TEMPLATES
        )
        return email, sms

    async def _send(self, notification: Notification, user: User) -> None:
        """Deliver a recorded notification and mark what went out."""
        email, sms = self._channels(user, notification.template)
        if email:
            notification.email_sent = await self.send_email(
                to_email=user.email,
                subject=notification.title,
                html_content=self._generate_email_html(
                    notification.title, notification.body, notification.action_url
                ),
                text_content=notification.body,
            )
        if sms:
            notification.sms_sent = await self.send_sms(user.phone_number, f"ClubSwap: {notification.body}")

    def _enqueue(self, notification_id: UUID) -> None:
        from clubswap.tasks import deliver_notification

        deliver_notification.delay(str(notification_id))

    async def notify(
        self,
        db: AsyncSession,
        user_id: UUID,
        template: str,
        data: dict[str, Any],
    ) -> bool:
        """Record an in-app notification and deliver it by email/SMS.

        The notification row is added to ``db``; the caller's next commit
        persists it. Email/SMS go out inline or through the
        ``deliver_notification`` task, which picks the row up once committed.
        A delivery failure never drops the in-app row. Never raises.

        Returns:
            bool: True if the notification was recorded
        """
        try:
            user = await db.get(User, user_id)
            if user is None:
                logger.warning(f"Notification {template} skipped: user {user_id} not found")
                return False

            title, body, action_url = self.render(template, data)
            booking_id = data.get("booking_id")
            if booking_id is not None and not isinstance(booking_id, UUID):
                booking_id = UUID(str(booking_id))
            notification = Notification(
                id=uuid.uuid4(),
                user_id=user.id,
                template=template,
                title=title,
                body=body,
                action_url=action_url,
                booking_id=booking_id,
                email_sent=False,
                sms_sent=False,
            )
            db.add(notification)
        except Exception:
            logger.exception(f"Failed to record {template} notification for user {user_id}")
            return False

        if any(self._channels(user, template)):
            try:
                if self.deliver_inline:
                    await self._send(notification, user)
                else:
                    self._enqueue(notification.id)
            except Exception:
                logger.exception(f"Delivery of {template} notification to user {user_id} failed")

        logger.info(f"Notification {template} recorded for user {user_id}")
        return True

    async def deliver(self, db: AsyncSession, notification_id: UUID) -> dict[str, bool] | None:
        """Send a committed notification by email/SMS. None if the row is not there (yet)."""
        notification = await db.get(Notification, notification_id)
        if notification is None:
            return None
        user = await db.get(User, notification.user_id)
        if user is not None:
            await self._send(notification, user)
        return {"email_sent": bool(notification.email_sent), "sms_sent": bool(notification.sms_sent)}

    def _generate_email_html(self, title: str, body: str, action_url: str | None) -> str:
        """Generate simple HTML email content."""
        button_html = ""
        if action_url:
            button_html = f"""
            <p style="margin-top: 24px;">
                <a href="{settings.app_url}{action_url}"
                   style="background-color: #1B5E20; color: white; padding: 12px 24px;
                          text-decoration: none; border-radius: 6px; display: inline-block;">
                    View Details
                </a>
            </p>
            """

        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
                     max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">
            <div style="background-color: #f9fafb; border-radius: 8px; padding: 24px;">
                <h1 style="color: #111827; font-size: 24px; margin-bottom: 16px;">{title}</h1>
                <p style="color: #4b5563; font-size: 16px; line-height: 1.6;">{body}</p>
                {button_html}
            </div>
            <p style="color: #9ca3af; font-size: 12px; margin-top: 24px; text-align: center;">
                &copy; {datetime.now(UTC).year} ClubSwap. All rights reserved.
            </p>
        </body>
        </html>
        """


# Singleton instance
notification_service = NotificationService()
