# effiplat/users_routes.py

from flask import Blueprint, jsonify, request

from .auth.permissions import permission_required, Permissions
from .models import Role
from .services.user_service import UserService
from .utils import api_errors, current_actor_id, ids_from_request, json_body, optional_ids, sync_context

users_bp = Blueprint('users_bp', __name__)


def _roles_payload(role_ids):
    if not role_ids:
        return []
    roles = Role.query.filter(Role.id.in_(role_ids)).order_by(Role.id).all()
    return [role.to_dict() for role in roles]


@users_bp.route('/users', methods=['GET'])
@permission_required(Permissions.USER_VIEW)
@api_errors('listing users')
def list_users():
    users = UserService.list_users(status=request.args.get('status'))
    return jsonify(success=True, data=[u.to_dict(include_roles=True) for u in users])


@users_bp.route('/users', methods=['POST'])
@permission_required(Permissions.USER_MANAGE)
@api_errors('creating user')
def create_user():
    data = json_body()
    user = UserService.create_user(
        name=data.get('name'),
        email=data.get('email'),
        password=data.get('password'),
        department=data.get('department'),
        status=data.get('status', 'active'),
        role_ids=optional_ids(data, 'role_ids'),
        actor_id=current_actor_id(),
        ctx=sync_context(),
    )
    return jsonify(success=True, data=user.to_dict(include_roles=True)), 201


@users_bp.route('/users/<int:user_id>', methods=['GET'])
@permission_required(Permissions.USER_VIEW)
@api_errors('loading user')
def get_user(user_id):
    user = UserService.get_user(user_id)
    return jsonify(success=True, data=user.to_dict(include_roles=True))


@users_bp.route('/users/<int:user_id>', methods=['PUT'])
@permission_required(Permissions.USER_MANAGE)
@api_errors('updating user')
def update_user(user_id):
    data = json_body()
    role_ids = optional_ids(data, 'role_ids')
    if role_ids is None:
        # null or absent leaves the current roles alone
        data.pop('role_ids', None)
    else:
        data['role_ids'] = role_ids
    user = UserService.update_user(user_id, data, actor_id=current_actor_id(), ctx=sync_context())
    return jsonify(success=True, data=user.to_dict(include_roles=True))


@users_bp.route('/users/<int:user_id>', methods=['DELETE'])
@permission_required(Permissions.USER_MANAGE)
@api_errors('deleting user')
def delete_user(user_id):
    UserService.delete_user(user_id, actor_id=current_actor_id())
    return jsonify(success=True, message="User deleted")


# Role assignments

@users_bp.route('/users/<int:user_id>/roles', methods=['GET'])
@permission_required(Permissions.USER_VIEW)
@api_errors('listing user roles')
def list_user_roles(user_id):
    role_ids = UserService.list_roles(user_id, ctx=sync_context())
    return jsonify(success=True, data=_roles_payload(role_ids))


@users_bp.route('/users/<int:user_id>/roles', methods=['POST'])
@permission_required(Permissions.ROLE_ASSIGN)
@api_errors('assigning roles')
def add_user_roles(user_id):
    change = UserService.add_roles(user_id, ids_from_request('role_ids'),
                                   actor_id=current_actor_id(), ctx=sync_context())
    return jsonify(success=True, data=change.to_dict())


@users_bp.route('/users/<int:user_id>/roles', methods=['PUT'])
@permission_required(Permissions.ROLE_ASSIGN)
@api_errors('replacing roles')
def replace_user_roles(user_id):
    change = UserService.replace_roles(user_id, ids_from_request('role_ids', allow_empty=True),
                                       actor_id=current_actor_id(), ctx=sync_context())
    return jsonify(success=True, data=change.to_dict())


@users_bp.route('/users/<int:user_id>/roles', methods=['DELETE'])
@permission_required(Permissions.ROLE_ASSIGN)
@api_errors('removing roles')
def remove_user_roles(user_id):
    change = UserService.remove_roles(user_id, ids_from_request('role_ids'),
                                      actor_id=current_actor_id(), ctx=sync_context())
    return jsonify(success=True, data=change.to_dict())
