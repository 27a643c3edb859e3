# effiplat/roles_routes.py

from flask import Blueprint, jsonify

from .auth.permissions import permission_required, Permissions
from .models import Permission
from .services.role_service import RoleService
from .utils import api_errors, current_actor_id, ids_from_request, json_body, optional_ids, sync_context

roles_bp = Blueprint('roles_bp', __name__)


@roles_bp.route('/roles', methods=['GET'])
@permission_required(Permissions.ROLE_VIEW)
@api_errors('listing roles')
def list_roles():
    return jsonify(success=True, data=[r.to_dict() for r in RoleService.list_roles()])


@roles_bp.route('/roles', methods=['POST'])
@permission_required(Permissions.ROLE_MANAGE)
@api_errors('creating role')
def create_role():
    data = json_body()
    role = RoleService.create_role(
        data.get('name'),
        description=data.get('description'),
        permission_ids=optional_ids(data, 'permission_ids'),
        actor_id=current_actor_id(),
        ctx=sync_context(),
    )
    return jsonify(success=True, data=role.to_dict(include_permissions=True)), 201


@roles_bp.route('/roles/<int:role_id>', methods=['GET'])
@permission_required(Permissions.ROLE_VIEW)
@api_errors('loading role')
def get_role(role_id):
    role = RoleService.get_role(role_id)
    return jsonify(success=True, data=role.to_dict(include_permissions=True))


@roles_bp.route('/roles/<int:role_id>', methods=['PUT'])
@permission_required(Permissions.ROLE_MANAGE)
@api_errors('updating role')
def update_role(role_id):
    data = json_body()
    role = RoleService.update_role(role_id, name=data.get('name'), description=data.get('description'))
    return jsonify(success=True, data=role.to_dict())


@roles_bp.route('/roles/<int:role_id>', methods=['DELETE'])
@permission_required(Permissions.ROLE_MANAGE)
@api_errors('deleting role')
def delete_role(role_id):
    RoleService.delete_role(role_id, actor_id=current_actor_id())
    return jsonify(success=True, message="Role deleted")


# Role permissions

@roles_bp.route('/roles/<int:role_id>/permissions', methods=['GET'])
@permission_required(Permissions.ROLE_VIEW)
@api_errors('listing role permissions')
def list_role_permissions(role_id):
    permission_ids = RoleService.list_permissions(role_id, ctx=sync_context())
    permissions = Permission.query.filter(Permission.id.in_(permission_ids)).order_by(Permission.id).all() \
        if permission_ids else []
    return jsonify(success=True, data=[p.to_dict() for p in permissions])


@roles_bp.route('/roles/<int:role_id>/permissions', methods=['POST'])
@permission_required(Permissions.ROLE_MANAGE)
@api_errors('adding role permissions')
def add_role_permissions(role_id):
    change = RoleService.add_permissions(role_id, ids_from_request('permission_ids'),
                                         actor_id=current_actor_id(), ctx=sync_context())
    return jsonify(success=True, data=change.to_dict())


@roles_bp.route('/roles/<int:role_id>/permissions', methods=['PUT'])
@permission_required(Permissions.ROLE_MANAGE)
@api_errors('replacing role permissions')
def replace_role_permissions(role_id):
    change = RoleService.replace_permissions(role_id, ids_from_request('permission_ids', allow_empty=True),
                                             actor_id=current_actor_id(), ctx=sync_context())
    return jsonify(success=True, data=change.to_dict())


@roles_bp.route('/roles/<int:role_id>/permissions', methods=['DELETE'])
@permission_required(Permissions.ROLE_MANAGE)
@api_errors('removing role permissions')
def remove_role_permissions(role_id):
    change = RoleService.remove_permissions(role_id, ids_from_request('permission_ids'),
                                            actor_id=current_actor_id(), ctx=sync_context())
    return jsonify(success=True, data=change.to_dict())
