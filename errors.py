"""
Error taxonomy for the room booking API.

Service functions raise these; the handlers registered by
register_error_handlers turn them into JSON responses shaped like the
rest of the API ({'success': False, 'message': ...}).
"""

import logging

from flask import jsonify
from sqlalchemy.exc import OperationalError

from extensions import db

logger = logging.getLogger(__name__)


class BookingError(Exception):
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None, payload=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.payload = payload or {}

    def to_dict(self):
        data = dict(self.payload)
        data['success'] = False
        data['message'] = self.message
        return data


class ValidationError(BookingError):
    status_code = 400
    default_message = 'Invalid request'


class AuthenticationError(BookingError):
    status_code = 401
    default_message = 'Unauthorized'


class AuthorizationError(BookingError):
    status_code = 403
    default_message = 'Admin access required'


class NotFoundError(BookingError):
    status_code = 404
    default_message = 'Not found'


class ConflictError(BookingError):
    status_code = 409
    default_message = 'Room is no longer available'


class InvalidStateTransition(BookingError):
    status_code = 409
    default_message = 'Request has already been reviewed'


class StoreUnavailable(BookingError):
    status_code = 500
    default_message = 'Service temporarily unavailable'


def register_error_handlers(app):
    @app.errorhandler(BookingError)
    def handle_booking_error(error):
        if error.status_code >= 500:
            logger.error(f"[ERROR] {error.__class__.__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(OperationalError)
    def handle_store_error(error):
        # Never leak driver details to the client
        logger.exception("[ERROR] Database unreachable")
        db.session.rollback()
        return handle_booking_error(StoreUnavailable())

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'success': False, 'message': 'Not found'}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({'success': False, 'message': 'Method not allowed'}), 405
