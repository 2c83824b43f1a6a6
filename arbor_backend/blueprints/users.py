"""User administration blueprint (admin only)."""
from flask import Blueprint, current_app
from ..utils import result_response
from .auth import admin_required, parse_body
from arbor_shared.schemas import UserUpdateRequest

bp = Blueprint('users', __name__, url_prefix='/api')


def _auth_service():
    return current_app.extensions['arbor_auth']


@bp.route('/users', methods=['GET'])
@admin_required
def list_users():
    """List users ordered by full name, without password hashes."""
    return result_response(_auth_service().list_users())


@bp.route('/users/<int:user_id>', methods=['PUT'])
@admin_required
def update_user(user_id):
    data, error = parse_body(UserUpdateRequest)
    if error:
        return error
    return result_response(_auth_service().update_user(user_id, data.model_dump(exclude_unset=True)))


@bp.route('/users/<int:user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    return result_response(_auth_service().delete_user(user_id))
