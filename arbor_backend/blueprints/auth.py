"""Authentication blueprint: accounts, JWT login and the request auth hook."""
import logging
from functools import wraps
from flask import Blueprint, request, jsonify, g, current_app
from pydantic import ValidationError as PydanticValidationError
from ..utils import api_error, result_response
from arbor_shared.errors import AuthenticationError
from arbor_shared.schemas import (
    RegisterRequest, LoginRequest, RefreshRequest, PasswordResetRequest, pydantic_field_errors
)

bp = Blueprint('auth', __name__, url_prefix='/auth')
logger = logging.getLogger(__name__)

AUTH_REQUIRED = 'Authentication required'


def get_auth_service():
    return current_app.extensions['arbor_auth']


def parse_body(schema):
    """Validate the JSON body against ``schema``.

    Returns:
        tuple: (model, None) on success or (None, error response)
    """
    try:
        return schema.model_validate(request.get_json(silent=True) or {}), None
    except PydanticValidationError as e:
        return None, api_error('Validation failed', 400, errors=pydantic_field_errors(e))


@bp.route('/register', methods=['POST'])
def register():
    """Register a new user."""
    data, error = parse_body(RegisterRequest)
    if error:
        return error
    result = get_auth_service().register_user(data.username, data.password, data.email, data.full_name)
    return result_response(result, success_status=201)


@bp.route('/login', methods=['POST'])
def login():
    """Login user and return an access and a refresh token."""
    data, error = parse_body(LoginRequest)
    if error:
        return error
    return result_response(get_auth_service().login(data.username, data.password))


@bp.route('/refresh', methods=['POST'])
def refresh():
    data, error = parse_body(RefreshRequest)
    if error:
        return error
    return result_response(get_auth_service().refresh(data.refresh_token))


@bp.route('/reset-password', methods=['POST'])
def reset_password():
    data, error = parse_body(PasswordResetRequest)
    if error:
        return error
    result = get_auth_service().reset_password(
        data.username, data.new_password, data.confirm_new_password
    )
    return result_response(result)


@bp.route('/me', methods=['GET'])
def me():
    """Get current user info."""
    if not getattr(g, 'user', None):
        return api_error(AUTH_REQUIRED, 401)
    return jsonify({'success': True, 'data': g.user.model_dump(by_alias=True)})


def admin_required(view):
    """Restrict a view to actors whose token carries isAdmin."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        user = getattr(g, 'user', None)
        if user is None:
            return api_error(AUTH_REQUIRED, 401)
        if not user.is_admin:
            return api_error('Admin access required', 403, details={'user': user.username})
        return view(*args, **kwargs)
    return wrapped


def init_auth(app):
    """Initialize authentication for the Flask app."""
    @app.before_request
    def check_auth():
        g.user = None
        token = get_auth_service().token_service.extract_token_from_header(
            request.headers.get('Authorization')
        )
        if token:
            try:
                g.user = get_auth_service().verify_token(token)
            except AuthenticationError as e:
                logger.info(f"Rejected bearer token on {request.path}: {e}")

        if request.path.startswith('/api') and g.user is None:
            return api_error(AUTH_REQUIRED, 401, log_level='info')
