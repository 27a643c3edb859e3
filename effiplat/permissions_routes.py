# effiplat/permissions_routes.py

from flask import Blueprint, jsonify, request

from .auth.permissions import permission_required, Permissions
from .services.permission_service import PermissionService
from .utils import api_errors, current_actor_id, json_body

permissions_bp = Blueprint('permissions_bp', __name__)


@permissions_bp.route('/permissions', methods=['GET'])
@permission_required(Permissions.PERMISSION_VIEW)
@api_errors('listing permissions')
def list_permissions():
    permissions = PermissionService.list_permissions(resource=request.args.get('resource'))
    return jsonify(success=True, data=[p.to_dict() for p in permissions])


@permissions_bp.route('/permissions', methods=['POST'])
@permission_required(Permissions.PERMISSION_MANAGE)
@api_errors('creating permission')
def create_permission():
    data = json_body()
    permission = PermissionService.create_permission(
        data.get('name'), data.get('resource'), data.get('action'), description=data.get('description'))
    return jsonify(success=True, data=permission.to_dict()), 201


@permissions_bp.route('/permissions/<int:permission_id>', methods=['DELETE'])
@permission_required(Permissions.PERMISSION_MANAGE)
@api_errors('deleting permission')
def delete_permission(permission_id):
    PermissionService.delete_permission(permission_id, actor_id=current_actor_id())
    return jsonify(success=True, message="Permission deleted")
