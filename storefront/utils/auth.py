from functools import wraps
from flask_jwt_extended import (
    create_access_token, get_jwt, get_jwt_identity, verify_jwt_in_request
)

from storefront.errors import AuthError, AuthorizationError


def jwt_required_custom(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        verify_jwt_in_request()
        return f(*args, **kwargs)
    return decorated


def role_required(role, message=None):
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            verify_jwt_in_request()
            if get_jwt().get('role') != role:
                raise AuthorizationError(message or f'{role.capitalize()} access required')
            return f(*args, **kwargs)
        return decorated
    return decorator


admin_required = role_required('admin', 'Admin only')
affiliate_required = role_required('affiliate', 'Not affiliate')


def current_user_id():
    identity = get_jwt_identity()
    try:
        return int(identity)
    except (TypeError, ValueError):
        raise AuthError('Invalid token')


def issue_token(user):
    # identity must be a string
    return create_access_token(
        identity=str(user['id']),
        additional_claims={'role': user['role'], 'email': user['email']}
    )


def register_jwt_callbacks(jwt):
    """Make flask-jwt-extended failures use the same JSON shape as everything else."""

    @jwt.unauthorized_loader
    def missing_token(reason):
        return {'message': 'No token'}, 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return {'message': 'Invalid token'}, 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return {'message': 'Token has expired'}, 401

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return {'message': 'Token has been revoked'}, 401
