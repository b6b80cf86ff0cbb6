import logging
from flask import Blueprint, jsonify
from flask_jwt_extended import get_jwt

from storefront import bcrypt
from storefront.errors import (
    AuthError, AuthorizationError, ConflictError, StorefrontError, ValidationError
)
from storefront.schemas import login_schema, register_schema
from storefront.services import get_services
from storefront.utils.auth import current_user_id, issue_token, jwt_required_custom
from storefront.utils.helpers import utc_now_iso
from storefront.utils.http import load_json, public_user

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


# ------------------ REGISTER ------------------
@auth_bp.route('/register', methods=['POST'])
def register():
    data = load_json(register_schema)
    services = get_services()
    repository = services.repository

    users = repository.load_all('user')
    if any(u.get('email') == data['email'] for u in users):
        raise ValidationError('Email exists')

    role = data['roleRequested']
    if role == 'admin' and any(u.get('role') == 'admin' for u in users):
        # only the first admin can self-register
        raise AuthorizationError('Admin accounts can only be created during setup')

    hashed_pw = bcrypt.generate_password_hash(data['password']).decode('utf-8')
    user = repository.save('user', {
        'email': data['email'],
        'password': hashed_pw,
        'role': role,
        'status': 'active',
        'lastLogin': None
    })

    if role == 'affiliate':
        try:
            services.ledger.create_pending(user['id'], user['email'])
        except StorefrontError as e:
            # the account exists either way; the admin can re-create the ledger entry
            logger.error('Failed to create affiliate record for user %s: %s', user['id'], e.message)

    return jsonify({
        'message': 'Affiliate registration submitted for approval' if role == 'affiliate' else 'Registered',
        'role': role,
        'userId': user['id']
    }), 201


# ------------------ LOGIN ------------------
@auth_bp.route('/login', methods=['POST'])
def login():
    data = load_json(login_schema)
    repository = get_services().repository

    user = repository.find_one('user', email=data['email'])
    if not user or not bcrypt.check_password_hash(user['password'], data['password']):
        raise AuthError('Invalid credentials')
    if data.get('roleRequested') == 'admin' and user.get('role') != 'admin':
        raise AuthorizationError('Not admin')
    if user.get('status', 'active') != 'active':
        raise AuthorizationError('Account is not active')

    user['lastLogin'] = utc_now_iso()
    repository.save('user', user)

    return jsonify({
        'message': 'Login successful',
        'token': issue_token(user),
        'role': user['role'],
        'userId': user['id']
    }), 200


# ------------------ PROFILE ------------------
@auth_bp.route('/profile', methods=['GET'])
@jwt_required_custom
def get_profile():
    user = get_services().repository.load_one('user', current_user_id())
    if not user:
        claims = get_jwt()
        return jsonify({'id': current_user_id(), 'role': claims.get('role'), 'email': claims.get('email')}), 200
    return jsonify(public_user(user)), 200


# ------------------ BECOME AN AFFILIATE ------------------
@auth_bp.route('/register-affiliate', methods=['POST'])
@jwt_required_custom
def register_affiliate():
    services = get_services()
    user = services.repository.load_one('user', current_user_id())
    if not user:
        raise AuthError('Account not found')
    if user.get('role') == 'admin':
        raise ValidationError('Admins cannot join the affiliate program')

    try:
        affiliate = services.ledger.create_pending(
            user['id'], user['email'], notes='Applied from account'
        )
    except ConflictError:
        raise ValidationError('Already registered as affiliate')

    user['role'] = 'affiliate'
    services.repository.save('user', user)

    return jsonify({
        'message': 'Affiliate registration submitted for approval',
        'affiliate': affiliate,
        # the old token still carries the previous role
        'token': issue_token(user)
    }), 201
