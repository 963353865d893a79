"""
Best-effort side effects: the admin notification feed and outgoing email.

Both collaborators are registered on app.extensions by create_app and
looked up per call, so tests can swap them out. Neither ever raises into
the booking workflow; failures are logged and dropped.
"""

import logging

from flask import current_app
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from extensions import db
from errors import NotFoundError
from models import AdminNotification

logger = logging.getLogger(__name__)

SIGNATURE = """
Best regards,
Kofuku Technologies
"""


class NotificationSink:
    """Appends entries to the admin notification feed."""

    def notify(self, notification_type, title, message, related_id=None):
        # Called after the primary transaction has committed, so a failure
        # here only loses the notification.
        try:
            notification = AdminNotification(
                type=notification_type,
                title=title,
                message=message,
                related_id=related_id,
                is_read=False,
            )
            db.session.add(notification)
            db.session.commit()
            logger.info(f"[NOTIFY] {notification_type} #{notification.id}: {title}")
            return notification
        except Exception:
            db.session.rollback()
            logger.exception(f"[NOTIFY] Failed to record {notification_type} notification")
            return None

    def list_notifications(self):
        return AdminNotification.query.order_by(AdminNotification.created_at, AdminNotification.id).all()

    def set_read(self, notification_id, is_read=True):
        notification = db.session.get(AdminNotification, notification_id)
        if not notification:
            raise NotFoundError('Notification not found')
        notification.is_read = is_read
        db.session.commit()
        return notification

    def mark_read(self, notification_id):
        return self.set_read(notification_id, True)

    def mark_unread(self, notification_id):
        return self.set_read(notification_id, False)


class EmailDispatcher:
    """Sends plain text mail through SendGrid, or logs it when no key is set."""

    def __init__(self, api_key=None, from_email=None):
        self.api_key = api_key
        self.from_email = from_email

    def init_app(self, app):
        self.api_key = self.api_key or app.config.get('SENDGRID_API_KEY')
        self.from_email = self.from_email or app.config.get('EMAIL_FROM')

    def send(self, to_email, subject, body):
        try:
            if not self.api_key:
                logger.info(f"[EMAIL] SendGrid not configured, logging instead\n"
                            f"TO: {to_email}\nSUBJECT: {subject}\n{body}")
                return False

            message = Mail(
                from_email=self.from_email,
                to_emails=to_email,
                subject=subject,
                plain_text_content=body,
            )
            response = SendGridAPIClient(api_key=self.api_key).send(message)
            if response.status_code == 202:
                logger.info(f"[EMAIL] Sent '{subject}' to {to_email}")
                return True
            logger.warning(f"[EMAIL] SendGrid answered {response.status_code} for {to_email}")
            return False
        except Exception:
            logger.exception(f"[EMAIL] Error sending '{subject}' to {to_email}")
            return False

    def send_booking_confirmation(self, user, booking, room):
        room_name = room.name if room else 'Unknown Room'
        body = f"""Dear {user.full_name},

Your room booking has been confirmed!

Details:
- Room: {room_name}
- Date: {booking.date.isoformat()}
- Time: {booking.start_time} - {booking.end_time}
- Purpose: {booking.purpose}

Thank you for using Kofuku Room Booking System.
{SIGNATURE}"""
        return self.send(user.email, f'Room Booking Confirmation - {room_name}', body)

    def send_priority_request(self, owner, requester, booking, room, reason):
        room_name = room.name if room else 'Unknown Room'
        body = f"""A priority access request has been made for your room booking.

Request Details:
- Requester: {requester.full_name}
- Room: {room_name}
- Date: {booking.date.isoformat()}
- Time: {booking.start_time} - {booking.end_time}
- Reason: {reason}

Please review this request and respond accordingly.
{SIGNATURE}"""
        return self.send(owner.email, f'Priority Room Access Request - {room_name}', body)


def get_notifier():
    return current_app.extensions['notification_sink']


def get_mailer():
    return current_app.extensions['email_dispatcher']
