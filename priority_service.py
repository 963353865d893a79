"""
Priority request workflow.

A request starts pending and is closed exactly once by an admin:
pending -> approved (the contested slot is transferred to the requester)
or pending -> rejected. Reviewing a closed request is an error.
"""

import logging
from datetime import datetime

from extensions import db
from errors import ValidationError, NotFoundError, InvalidStateTransition
from models import (
    Booking, Room, User, PriorityRequest,
    REQUEST_PENDING, REQUEST_APPROVED, REQUEST_REJECTED,
)
from booking_service import transfer_booking
from notification_service import get_notifier, get_mailer

logger = logging.getLogger(__name__)


def create_request(requester, conflict_booking_id, reason, notifier=None, mailer=None):
    """Open a pending request against a booking.

    The booking is not re-validated here; the admin decision re-checks the
    slot, since the incumbent may have cancelled in the meantime.
    """
    try:
        conflict_booking_id = int(conflict_booking_id)
    except (TypeError, ValueError):
        raise ValidationError('conflictBookingId must be a number')
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError('A reason is required')

    request = PriorityRequest(
        requester_id=requester.id,
        conflict_booking_id=conflict_booking_id,
        reason=reason,
        status=REQUEST_PENDING,
    )
    try:
        db.session.add(request)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(f"[PRIORITY] Request #{request.id} by user={requester.id} "
                f"against booking #{conflict_booking_id}")

    notifier = notifier or get_notifier()
    notifier.notify(
        'priority_request',
        'New Priority Booking Request',
        f'{requester.full_name} has requested priority booking',
        related_id=request.id,
    )
    _email_incumbent(mailer or get_mailer(), requester, conflict_booking_id, reason)
    return request


def _email_incumbent(mailer, requester, booking_id, reason):
    try:
        booking = db.session.get(Booking, booking_id)
        if not booking:
            return
        owner = db.session.get(User, booking.user_id)
        if owner and owner.email:
            mailer.send_priority_request(owner, requester, booking,
                                         db.session.get(Room, booking.room_id), reason)
    except Exception:
        logger.exception(f"[PRIORITY] Could not email owner of booking #{booking_id}")


def get_request(request_id, lock=False):
    query = PriorityRequest.query.filter_by(id=request_id)
    if lock:
        query = query.with_for_update()
    request = query.first()
    if not request:
        raise NotFoundError('Priority request not found')
    return request


def list_requests():
    return PriorityRequest.query.order_by(PriorityRequest.created_at.desc(),
                                          PriorityRequest.id.desc()).all()


def _close(request, status, reviewer_id):
    if not request.is_pending:
        raise InvalidStateTransition(f'Priority request is already {request.status}')
    request.status = status
    request.reviewed_by = reviewer_id
    request.reviewed_at = datetime.utcnow()


def approve_request(request_id, reviewer_id, new_booking_data=None):
    """Approve a pending request and hand the slot to the requester.

    The status change and the transfer commit together; if the transfer
    fails the request stays pending.
    """
    try:
        request = get_request(request_id, lock=True)
        _close(request, REQUEST_APPROVED, reviewer_id)
        booking = transfer_booking(request.conflict_booking_id, request.requester_id,
                                   new_booking_data, commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"[PRIORITY] Request #{request.id} approved by user={reviewer_id}, "
                f"new booking #{booking.id}")
    return request, booking


def reject_request(request_id, reviewer_id):
    try:
        request = get_request(request_id, lock=True)
        _close(request, REQUEST_REJECTED, reviewer_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"[PRIORITY] Request #{request.id} rejected by user={reviewer_id}")
    return request
