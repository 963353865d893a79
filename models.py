from datetime import datetime

import pytz
from flask import current_app
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from extensions import db

ROLE_EMPLOYEE = 'employee'
ROLE_ADMIN = 'admin'
ROLES = (ROLE_EMPLOYEE, ROLE_ADMIN)

BOOKING_CONFIRMED = 'confirmed'
BOOKING_PENDING = 'pending'
BOOKING_CANCELLED = 'cancelled'
BOOKING_TYPES = ('personal', 'team')

REQUEST_PENDING = 'pending'
REQUEST_APPROVED = 'approved'
REQUEST_REJECTED = 'rejected'


def to_local_time(dt):
    """Render a stored UTC timestamp in the office timezone."""
    if not dt:
        return None
    tz = pytz.timezone(current_app.config.get('APP_TIMEZONE', 'UTC'))
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(tz).isoformat()


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    password_hash = db.Column(db.String(256))
    role = db.Column(db.String(20), nullable=False, default=ROLE_EMPLOYEE)
    # Shadows UserMixin.is_active so Flask-Login refuses deactivated accounts
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookings = db.relationship('Booking', backref='user', lazy='dynamic')

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'role': self.role,
            'isActive': self.is_active,
            'createdAt': to_local_time(self.created_at),
        }

    def to_summary(self):
        """Short form used when a user is embedded in another resource."""
        return {
            'firstName': self.first_name,
            'lastName': self.last_name,
            'email': self.email,
        }

    def __repr__(self):
        return f'<User {self.email}>'


class Room(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    capacity = db.Column(db.Integer, nullable=False, default=1)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    bookings = db.relationship('Booking', backref='room', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'capacity': self.capacity,
            'isActive': self.is_active,
            'createdAt': to_local_time(self.created_at),
        }

    def __repr__(self):
        return f'<Room {self.name}>'


class Team(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'isActive': self.is_active,
            'createdAt': to_local_time(self.created_at),
        }

    def __repr__(self):
        return f'<Team {self.name}>'


class Booking(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id'), nullable=False)

    # Slot: calendar day plus zero padded "HH:MM" bounds, end exclusive
    date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.String(5), nullable=False)
    end_time = db.Column(db.String(5), nullable=False)

    purpose = db.Column(db.Text, nullable=False)
    booking_type = db.Column(db.String(20), nullable=False, default='personal')
    team = db.Column(db.String(100))

    # Booking status: confirmed, pending, cancelled
    status = db.Column(db.String(20), nullable=False, default=BOOKING_CONFIRMED)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_booking_room_date', 'room_id', 'date'),
    )

    @property
    def is_confirmed(self):
        return self.status == BOOKING_CONFIRMED

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'roomId': self.room_id,
            'date': self.date.isoformat(),
            'startTime': self.start_time,
            'endTime': self.end_time,
            'purpose': self.purpose,
            'bookingType': self.booking_type,
            'team': self.team,
            'status': self.status,
            'createdAt': to_local_time(self.created_at),
        }

    def __repr__(self):
        return f'<Booking {self.id} room={self.room_id} {self.date} {self.start_time}-{self.end_time}>'


class PriorityRequest(db.Model):
    __tablename__ = 'priority_request'

    id = db.Column(db.Integer, primary_key=True)
    requester_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    # Not a foreign key: the contested booking is re-validated at review time
    conflict_booking_id = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=REQUEST_PENDING)
    reviewed_by = db.Column(db.Integer, db.ForeignKey('user.id'))
    reviewed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    requester = db.relationship('User', foreign_keys=[requester_id])
    reviewer = db.relationship('User', foreign_keys=[reviewed_by])

    @property
    def is_pending(self):
        return self.status == REQUEST_PENDING

    def to_dict(self):
        return {
            'id': self.id,
            'requesterId': self.requester_id,
            'conflictBookingId': self.conflict_booking_id,
            'reason': self.reason,
            'status': self.status,
            'reviewedBy': self.reviewed_by,
            'reviewedAt': to_local_time(self.reviewed_at),
            'createdAt': to_local_time(self.created_at),
        }

    def __repr__(self):
        return f'<PriorityRequest {self.id} {self.status}>'


class AdminNotification(db.Model):
    __tablename__ = 'admin_notification'

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(50), nullable=False)  # 'priority_request', 'new_user'
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    related_id = db.Column(db.Integer)  # ID of the related priority request, user, etc.
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'relatedId': self.related_id,
            'isRead': self.is_read,
            'createdAt': to_local_time(self.created_at),
        }

    def __repr__(self):
        return f'<AdminNotification {self.type} {self.id}>'
