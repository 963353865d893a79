import logging

from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user

from errors import ValidationError
from models import Room, Team
from timeslots import parse_date, parse_slot
from notification_service import get_mailer
import booking_service
import priority_service

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')


def describe_conflict(booking):
    """Conflict summary shown to the user so they can escalate."""
    return {
        'id': booking.id,
        'room': booking.room.name if booking.room else 'Unknown Room',
        'bookedBy': booking.user.full_name if booking.user else 'Unknown User',
        'startTime': booking.start_time,
        'endTime': booking.end_time,
        'date': booking.date.isoformat(),
    }


def booking_with_room(booking):
    data = booking.to_dict()
    data['room'] = booking.room.name if booking.room else 'Unknown Room'
    return data


def _room_id_from(data):
    try:
        return int(data.get('roomId'))
    except (TypeError, ValueError):
        raise ValidationError('Room ID is required')


@api_bp.route('/rooms')
@login_required
def get_rooms():
    rooms = Room.query.filter_by(is_active=True).order_by(Room.id).all()
    return jsonify([room.to_dict() for room in rooms])


@api_bp.route('/teams')
@login_required
def get_teams():
    teams = Team.query.filter_by(is_active=True).order_by(Team.name).all()
    return jsonify([team.to_dict() for team in teams])


@api_bp.route('/bookings')
@login_required
def get_bookings():
    bookings = booking_service.list_by_user(current_user.id)
    return jsonify([booking_with_room(b) for b in bookings])


@api_bp.route('/bookings/schedule')
@login_required
def get_schedule():
    """Confirmed bookings across all rooms for a date range."""
    start = parse_date(request.args.get('start'), 'start')
    end = parse_date(request.args.get('end') or request.args.get('start'), 'end')
    if end < start:
        raise ValidationError('End date must not be before start date')

    result = []
    for booking in booking_service.list_in_range(start, end):
        data = booking_with_room(booking)
        data['bookedBy'] = booking.user.full_name if booking.user else 'Unknown User'
        result.append(data)
    return jsonify(result)


@api_bp.route('/bookings/check-availability', methods=['POST'])
@login_required
def check_availability():
    data = request.get_json(silent=True) or {}
    room_id = _room_id_from(data)
    date = parse_date(data.get('date'))
    start_time, end_time = parse_slot(data.get('startTime'), data.get('endTime'))

    result = booking_service.check_availability(room_id, date, start_time, end_time)
    if result['available']:
        return jsonify({'available': True})

    conflicts = result['conflicts']
    logger.info(f"[BOOKING] Slot room={room_id} {date} {start_time}-{end_time} "
                f"conflicts with {[b.id for b in conflicts]}")
    return jsonify({
        'available': False,
        'conflictingBookings': [describe_conflict(b) for b in conflicts],
        'conflict': describe_conflict(conflicts[0]),
    })


@api_bp.route('/bookings/create', methods=['POST'])
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    booking = booking_service.create_booking(current_user.id, data)

    try:
        get_mailer().send_booking_confirmation(current_user, booking, booking.room)
    except Exception:
        logger.exception(f"[BOOKING] Confirmation email failed for booking #{booking.id}")

    return jsonify(booking_with_room(booking)), 201


@api_bp.route('/bookings/cancel/<int:booking_id>', methods=['POST'])
@login_required
def cancel_booking(booking_id):
    booking_service.cancel_booking(booking_id, current_user.id)
    return jsonify({'success': True, 'message': 'Booking cancelled successfully'})


@api_bp.route('/priority-requests', methods=['POST'])
@login_required
def create_priority_request():
    data = request.get_json(silent=True) or {}
    priority_request = priority_service.create_request(
        current_user, data.get('conflictBookingId'), data.get('reason'))
    return jsonify(priority_request.to_dict()), 201
