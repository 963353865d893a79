import logging

from flask import Blueprint, request, jsonify
from flask_login import current_user

from extensions import db
from errors import ValidationError, NotFoundError
from models import User, Room, Team, Booking, ROLES
from auth import admin_required
from notification_service import get_notifier
import priority_service

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _get_or_404(model, object_id, label):
    obj = db.session.get(model, object_id)
    if not obj:
        raise NotFoundError(f'{label} not found')
    return obj


def _commit():
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def _positive_int(value, field):
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a number')
    if value < 1:
        raise ValidationError(f'{field} must be at least 1')
    return value


# ---- Priority requests ----

def _enrich_request(priority_request):
    data = priority_request.to_dict()
    requester = priority_request.requester
    data['requester'] = requester.to_summary() if requester else None

    booking = db.session.get(Booking, priority_request.conflict_booking_id)
    if booking:
        contested = booking.to_dict()
        contested['room'] = booking.room.name if booking.room else 'Unknown Room'
        contested['owner'] = booking.user.to_summary() if booking.user else None
        data['conflictBooking'] = contested
    else:
        data['conflictBooking'] = None
    return data


@admin_bp.route('/priority-requests')
@admin_required
def list_priority_requests():
    return jsonify([_enrich_request(r) for r in priority_service.list_requests()])


@admin_bp.route('/priority-requests/<int:request_id>/approve', methods=['POST'])
@admin_required
def approve_priority_request(request_id):
    data = request.get_json(silent=True) or {}
    new_booking_data = data.get('newBookingData')
    if new_booking_data is not None and not isinstance(new_booking_data, dict):
        raise ValidationError('newBookingData must be an object')

    priority_request, booking = priority_service.approve_request(
        request_id, current_user.id, new_booking_data)
    return jsonify({
        'success': True,
        'message': 'Priority request approved successfully',
        'request': priority_request.to_dict(),
        'booking': booking.to_dict(),
    })


@admin_bp.route('/priority-requests/<int:request_id>/reject', methods=['POST'])
@admin_required
def reject_priority_request(request_id):
    priority_request = priority_service.reject_request(request_id, current_user.id)
    return jsonify({
        'success': True,
        'message': 'Priority request rejected successfully',
        'request': priority_request.to_dict(),
    })


# ---- Users ----

@admin_bp.route('/users')
@admin_required
def list_users():
    users = User.query.order_by(User.created_at, User.id).all()
    return jsonify([user.to_dict() for user in users])


@admin_bp.route('/users/<int:user_id>/role', methods=['POST'])
@admin_required
def update_user_role(user_id):
    role = (request.get_json(silent=True) or {}).get('role')
    if role not in ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(ROLES)}")

    user = _get_or_404(User, user_id, 'User')
    user.role = role
    _commit()
    logger.info(f"[ADMIN] User #{user.id} role set to {role} by user={current_user.id}")
    return jsonify({'success': True, 'message': 'User role updated successfully'})


@admin_bp.route('/users/<int:user_id>/status', methods=['POST'])
@admin_required
def update_user_status(user_id):
    is_active = (request.get_json(silent=True) or {}).get('isActive')
    if not isinstance(is_active, bool):
        raise ValidationError('isActive must be true or false')

    user = _get_or_404(User, user_id, 'User')
    user.is_active = is_active
    _commit()
    logger.info(f"[ADMIN] User #{user.id} active={is_active} by user={current_user.id}")
    return jsonify({'success': True, 'message': 'User status updated successfully'})


# ---- Notifications ----

@admin_bp.route('/notifications')
@admin_required
def list_notifications():
    return jsonify([n.to_dict() for n in get_notifier().list_notifications()])


@admin_bp.route('/notifications/<int:notification_id>/read', methods=['POST'])
@admin_required
def mark_notification_read(notification_id):
    get_notifier().mark_read(notification_id)
    return jsonify({'success': True, 'message': 'Notification marked as read'})


@admin_bp.route('/notifications/<int:notification_id>/unread', methods=['POST'])
@admin_required
def mark_notification_unread(notification_id):
    get_notifier().mark_unread(notification_id)
    return jsonify({'success': True, 'message': 'Notification marked as unread'})


# ---- Rooms ----

@admin_bp.route('/rooms', methods=['POST'])
@admin_required
def add_room():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError('Room name is required')

    room = Room(name=name, capacity=_positive_int(data.get('capacity', 1), 'Capacity'))
    db.session.add(room)
    _commit()
    logger.info(f"[ADMIN] Added room #{room.id} {room.name}")
    return jsonify(room.to_dict()), 201


@admin_bp.route('/rooms/<int:room_id>', methods=['PUT'])
@admin_required
def update_room(room_id):
    data = request.get_json(silent=True) or {}
    room = _get_or_404(Room, room_id, 'Room')

    if 'name' in data:
        name = (data.get('name') or '').strip()
        if not name:
            raise ValidationError('Room name is required')
        room.name = name
    if 'capacity' in data:
        room.capacity = _positive_int(data['capacity'], 'Capacity')
    if 'isActive' in data:
        room.is_active = bool(data['isActive'])
    _commit()
    return jsonify({'success': True, 'message': 'Room updated successfully', 'room': room.to_dict()})


@admin_bp.route('/rooms/<int:room_id>', methods=['DELETE'])
@admin_required
def remove_room(room_id):
    room = _get_or_404(Room, room_id, 'Room')
    room.is_active = False
    _commit()
    logger.info(f"[ADMIN] Deactivated room #{room.id}")
    return jsonify({'success': True, 'message': 'Room removed successfully'})


# ---- Teams ----

@admin_bp.route('/teams', methods=['POST'])
@admin_required
def add_team():
    name = ((request.get_json(silent=True) or {}).get('name') or '').strip()
    if not name:
        raise ValidationError('Team name is required')

    team = Team(name=name)
    db.session.add(team)
    _commit()
    return jsonify(team.to_dict()), 201


@admin_bp.route('/teams/<int:team_id>', methods=['PUT'])
@admin_required
def update_team(team_id):
    data = request.get_json(silent=True) or {}
    team = _get_or_404(Team, team_id, 'Team')

    if 'name' in data:
        name = (data.get('name') or '').strip()
        if not name:
            raise ValidationError('Team name is required')
        team.name = name
    if 'isActive' in data:
        team.is_active = bool(data['isActive'])
    _commit()
    return jsonify({'success': True, 'message': 'Team updated successfully', 'team': team.to_dict()})


@admin_bp.route('/teams/<int:team_id>', methods=['DELETE'])
@admin_required
def remove_team(team_id):
    team = _get_or_404(Team, team_id, 'Team')
    team.is_active = False
    _commit()
    return jsonify({'success': True, 'message': 'Team removed successfully'})
