"""
Booking store and availability checks.

Every write that can create a confirmed booking goes through
_insert_booking, which runs with the room row locked and re-checks for
overlaps after the insert is flushed. Two requests racing for the same
slot therefore cannot both commit: the loser gets a ConflictError.
"""

import logging

from extensions import db
from errors import ValidationError, NotFoundError, ConflictError
from models import (
    Booking, Room, BOOKING_CONFIRMED, BOOKING_CANCELLED, BOOKING_TYPES,
)
from timeslots import overlaps, parse_date, parse_slot

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('roomId', 'date', 'startTime', 'endTime', 'purpose')


def clean_booking_data(data, defaults=None):
    """Validate an API booking payload and map it onto Booking columns.

    Values in ``defaults`` fill in any field the payload leaves out, which
    is how a transfer inherits the slot of the booking it replaces.
    """
    source = dict(defaults or {})
    source.update({k: v for k, v in (data or {}).items() if v is not None})

    missing = [field for field in REQUIRED_FIELDS if source.get(field) in (None, '')]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    try:
        room_id = int(source['roomId'])
    except (TypeError, ValueError):
        raise ValidationError('Room ID must be a number')

    start_time, end_time = parse_slot(source['startTime'], source['endTime'])

    booking_type = source.get('bookingType') or 'personal'
    if booking_type not in BOOKING_TYPES:
        raise ValidationError(f"Booking type must be one of: {', '.join(BOOKING_TYPES)}")

    team = source.get('team') or None
    if booking_type == 'team' and not team:
        raise ValidationError('Team is required for team bookings')
    if booking_type == 'personal':
        team = None

    return {
        'room_id': room_id,
        'date': parse_date(source['date']),
        'start_time': start_time,
        'end_time': end_time,
        'purpose': str(source['purpose']).strip(),
        'booking_type': booking_type,
        'team': team,
    }


def get_booking(booking_id):
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFoundError('Booking not found')
    return booking


def list_by_room_and_date(room_id, date):
    """All bookings for a room on a day, whatever their status."""
    return (Booking.query
            .filter_by(room_id=room_id, date=date)
            .order_by(Booking.start_time)
            .all())


def list_by_user(user_id):
    return (Booking.query
            .filter_by(user_id=user_id)
            .order_by(Booking.date.desc(), Booking.start_time.desc())
            .all())


def list_in_range(start_date, end_date):
    """Confirmed bookings whose date falls in the inclusive range."""
    return (Booking.query
            .filter(Booking.date >= start_date, Booking.date <= end_date)
            .filter_by(status=BOOKING_CONFIRMED)
            .order_by(Booking.date, Booking.room_id, Booking.start_time)
            .all())


def find_conflicts(room_id, date, start_time, end_time, exclude_ids=()):
    """Confirmed bookings overlapping the slot, ordered by start time.

    More than one result means the no-overlap invariant was already broken;
    every offender is reported.
    """
    return [
        booking for booking in list_by_room_and_date(room_id, date)
        if booking.status == BOOKING_CONFIRMED
        and booking.id not in exclude_ids
        and overlaps(start_time, end_time, booking.start_time, booking.end_time)
    ]


def check_availability(room_id, date, start_time, end_time):
    conflicts = find_conflicts(room_id, date, start_time, end_time)
    if conflicts:
        return {'available': False, 'conflicts': conflicts}
    return {'available': True, 'conflicts': []}


def _lock_room(room_id):
    # FOR UPDATE serialises bookings per room on PostgreSQL; SQLite ignores it
    # and serialises writers on its own.
    room = (Room.query
            .filter_by(id=room_id, is_active=True)
            .with_for_update()
            .first())
    if not room:
        raise NotFoundError('Room not found')
    return room


def _conflict_error(conflicts):
    return ConflictError(
        'Room is no longer available',
        payload={'conflicts': [booking.to_dict() for booking in conflicts]},
    )


def _insert_booking(user_id, fields, exclude_ids=()):
    """Insert a confirmed booking inside the caller's transaction.

    The caller must hold the room lock. Overlaps are checked before the
    insert and again after the flush; the second check catches a racer that
    slipped in on a backend without row locks.
    """
    conflicts = find_conflicts(fields['room_id'], fields['date'],
                               fields['start_time'], fields['end_time'],
                               exclude_ids=exclude_ids)
    if conflicts:
        raise _conflict_error(conflicts)

    booking = Booking(user_id=user_id, status=BOOKING_CONFIRMED, **fields)
    db.session.add(booking)
    db.session.flush()

    conflicts = find_conflicts(fields['room_id'], fields['date'],
                               fields['start_time'], fields['end_time'],
                               exclude_ids=tuple(exclude_ids) + (booking.id,))
    if conflicts:
        raise _conflict_error(conflicts)
    return booking


def create_booking(user_id, data):
    fields = clean_booking_data(data)
    try:
        _lock_room(fields['room_id'])
        booking = _insert_booking(user_id, fields)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"[BOOKING] Created booking #{booking.id} room={booking.room_id} "
                f"{booking.date} {booking.start_time}-{booking.end_time} user={user_id}")
    return booking


def cancel_booking(booking_id, user_id):
    """Cancel a booking owned by ``user_id``.

    Idempotent: cancelling an already cancelled booking succeeds again.
    """
    booking = Booking.query.filter_by(id=booking_id, user_id=user_id).first()
    if not booking:
        raise NotFoundError('Booking not found or cannot be cancelled')

    booking.status = BOOKING_CANCELLED
    db.session.commit()
    logger.info(f"[BOOKING] Cancelled booking #{booking.id} by user={user_id}")
    return booking


def _slot_defaults(booking):
    return {
        'roomId': booking.room_id,
        'date': booking.date.isoformat(),
        'startTime': booking.start_time,
        'endTime': booking.end_time,
        'purpose': booking.purpose,
        'bookingType': booking.booking_type,
        'team': booking.team,
    }


def transfer_booking(old_booking_id, new_owner_id, new_booking_data=None, commit=True):
    """Cancel a booking and book the slot for someone else, atomically.

    Any field missing from ``new_booking_data`` is taken from the old
    booking. With ``commit=False`` the work is left in the session for the
    caller to commit or roll back together with its own changes.
    """
    try:
        old = get_booking(old_booking_id)
        fields = clean_booking_data(new_booking_data, defaults=_slot_defaults(old))
        _lock_room(fields['room_id'])

        old.status = BOOKING_CANCELLED
        db.session.flush()

        new = _insert_booking(new_owner_id, fields, exclude_ids=(old.id,))
        if commit:
            db.session.commit()
    except Exception:
        if commit:
            db.session.rollback()
        raise

    logger.info(f"[BOOKING] Transferred booking #{old.id} -> #{new.id} to user={new_owner_id}")
    return new
