"""Trees blueprint: record lifecycle, offline sync and the dashboard."""
from flask import Blueprint, request, jsonify, g, current_app
from ..utils import api_error, handle_api_exception, result_response
from .auth import parse_body
from arbor_shared.schemas import TreeSyncRequest, serialize_tree

bp = Blueprint('trees', __name__, url_prefix='/api')


def _services():
    return current_app.extensions['arbor_trees']


def _dump(model):
    return model.model_dump(mode='json', by_alias=True)


@bp.route('/dashboard', methods=['GET'])
def get_dashboard():
    return result_response(_services().dashboard.get_dashboard(), serializer=_dump)


@bp.route('/trees', methods=['POST'])
def create_tree():
    """Register a tree for the authenticated user."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error('Request body must be a JSON object', 400)
    result = _services().trees.create_tree(data, g.user)
    return result_response(result, serializer=serialize_tree, success_status=201)


@bp.route('/trees', methods=['GET'])
def list_trees():
    """List trees, filtered by userId, cidade and search, paginated."""
    result = _services().trees.list_trees(request.args.to_dict())
    return result_response(result, serializer=serialize_tree)


@bp.route('/users/<user_id>/trees', methods=['GET'])
def list_user_trees(user_id):
    result = _services().trees.list_trees_by_user(user_id, request.args.to_dict())
    return result_response(result, serializer=serialize_tree)


@bp.route('/trees/<unique_id>', methods=['PUT'])
def update_tree(unique_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error('Request body must be a JSON object', 400)
    result = _services().trees.update_tree(unique_id, data)
    return result_response(result, serializer=serialize_tree)


@bp.route('/trees/<unique_id>', methods=['DELETE'])
def delete_tree(unique_id):
    return result_response(_services().trees.delete_tree(unique_id))


@bp.route('/trees/sync', methods=['POST'])
def sync_trees():
    """Reconcile an offline batch from a mobile client."""
    batch, error = parse_body(TreeSyncRequest)
    if error:
        return error
    try:
        response = _services().sync.sync_trees(batch, g.user)
    except Exception as e:
        return handle_api_exception(e, 'sync trees')
    return jsonify(_dump(response)), 200 if response.success else 400
