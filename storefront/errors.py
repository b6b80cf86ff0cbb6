from flask import jsonify
from marshmallow import ValidationError as SchemaValidationError
from werkzeug.exceptions import HTTPException


class StorefrontError(Exception):
    """Base error. Carries the HTTP status the endpoint layer should return."""

    status_code = 500
    message = 'Something went wrong on the server.'

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'message': self.message}


class ValidationError(StorefrontError):
    status_code = 400
    message = 'Invalid request'


class InvalidRateError(ValidationError):
    message = 'Commission rate must be greater than 0 and at most 1'


class AuthError(StorefrontError):
    status_code = 401
    message = 'Authentication required'


class AuthorizationError(StorefrontError):
    status_code = 403
    message = 'Access denied'


class NotFoundError(StorefrontError):
    status_code = 404
    message = 'Not found'


class ConflictError(StorefrontError):
    status_code = 409
    message = 'Already exists'


class PersistenceError(StorefrontError):
    message = 'Failed to read or write stored data'


class DecryptionError(PersistenceError):
    message = 'Invalid encrypted data format'


class ServiceNotConfiguredError(StorefrontError):
    status_code = 400
    message = 'Service not configured'


class UpstreamServiceError(StorefrontError):
    status_code = 500
    message = 'Upstream service failed'


def register_error_handlers(app):
    """Convert every error raised by a handler into a JSON body with a message."""

    @app.errorhandler(StorefrontError)
    def handle_storefront_error(error):
        if error.status_code >= 500:
            app.logger.error('%s: %s', type(error).__name__, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SchemaValidationError)
    def handle_schema_error(error):
        return jsonify({'message': 'Invalid request', 'errors': error.messages}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'message': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        app.logger.exception('Unhandled error')
        return jsonify({
            'message': 'Something went wrong on the server.',
            'suggestion': 'Check server logs for details.'
        }), 500
