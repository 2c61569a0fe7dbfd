from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token
from approvals.models.authz import User
from approvals import get_db
from approvals.constants.permissions import ROLE_CANDIDATE
from approvals.decorators.auth import require_login
from approvals.services.audit import add_audit
from approvals.services.policy import active_user_by_email, current_user
from approvals.utils.validation import require_fields

auth_bp = Blueprint('auth', __name__)


def user_json(u: User):
    return {
        'id': u.id,
        'name': u.name,
        'email': u.email,
        'phone': u.phone,
        'role': u.role,
        'permissions': u.permissions if u.permissions is not None else None,
        'profile': u.profile or {},
        'is_active': u.is_active,
        'promoted_from_id': u.promoted_from_id,
    }


@auth_bp.post('/register')
def register():
    """Self-service sign-up always yields a candidate; other roles come from approvals."""
    data = request.json or {}
    require_fields(data, 'name', 'email', 'password')
    email = data['email'].strip().lower()
    if active_user_by_email(email):
        abort(409, description='email already registered')
    session = get_db()
    user = User(name=data['name'], email=email, phone=data.get('phone'), role=ROLE_CANDIDATE, profile={})
    user.set_password(data['password'])
    session.add(user)
    session.flush()
    add_audit('USER.REGISTER', 'User', user.id, {'role': user.role}, actor_id=user.id)
    session.commit()
    return user_json(user), 201


@auth_bp.post('/login')
def login():
    data = request.json or {}
    email = data.get('email'); password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    # only the live principal for an email can log in; promoted/deleted rows are inactive
    user = active_user_by_email(email)
    if not user or not user.verify_password(password):
        abort(401, description='invalid credentials')
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims={'role': user.role})
    return {'access_token': token, 'user': user_json(user)}


@auth_bp.get('/me')
@require_login()
def me():
    return user_json(current_user())
