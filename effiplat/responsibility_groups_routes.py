# effiplat/responsibility_groups_routes.py
#
# Responsibilities catalogue and responsibility groups.

from flask import Blueprint, jsonify

from .auth.permissions import permission_required, Permissions
from .models import Responsibility
from .services.responsibility_group_service import ResponsibilityGroupService
from .services.responsibility_service import ResponsibilityService
from .utils import api_errors, current_actor_id, ids_from_request, json_body, optional_ids, sync_context

responsibility_groups_bp = Blueprint('responsibility_groups_bp', __name__)


@responsibility_groups_bp.route('/responsibilities', methods=['GET'])
@permission_required(Permissions.GROUP_VIEW)
@api_errors('listing responsibilities')
def list_responsibilities():
    items = ResponsibilityService.list_responsibilities()
    return jsonify(success=True, data=[r.to_dict() for r in items])


@responsibility_groups_bp.route('/responsibilities', methods=['POST'])
@permission_required(Permissions.GROUP_MANAGE)
@api_errors('creating responsibility')
def create_responsibility():
    data = json_body()
    responsibility = ResponsibilityService.create_responsibility(
        data.get('name'), description=data.get('description'))
    return jsonify(success=True, data=responsibility.to_dict()), 201


@responsibility_groups_bp.route('/responsibilities/<int:responsibility_id>', methods=['DELETE'])
@permission_required(Permissions.GROUP_MANAGE)
@api_errors('deleting responsibility')
def delete_responsibility(responsibility_id):
    ResponsibilityService.delete_responsibility(responsibility_id, actor_id=current_actor_id())
    return jsonify(success=True, message="Responsibility deleted")


# Groups

@responsibility_groups_bp.route('/responsibility-groups', methods=['GET'])
@permission_required(Permissions.GROUP_VIEW)
@api_errors('listing responsibility groups')
def list_groups():
    groups = ResponsibilityGroupService.list_groups()
    return jsonify(success=True, data=[g.to_dict() for g in groups])


@responsibility_groups_bp.route('/responsibility-groups', methods=['POST'])
@permission_required(Permissions.GROUP_MANAGE)
@api_errors('creating responsibility group')
def create_group():
    data = json_body()
    group = ResponsibilityGroupService.create_group(
        data.get('name'),
        description=data.get('description'),
        responsibility_ids=optional_ids(data, 'responsibility_ids'),
        actor_id=current_actor_id(),
        ctx=sync_context(),
    )
    return jsonify(success=True, data=group.to_dict(include_responsibilities=True)), 201


@responsibility_groups_bp.route('/responsibility-groups/<int:group_id>', methods=['GET'])
@permission_required(Permissions.GROUP_VIEW)
@api_errors('loading responsibility group')
def get_group(group_id):
    group = ResponsibilityGroupService.get_group(group_id)
    return jsonify(success=True, data=group.to_dict(include_responsibilities=True))


@responsibility_groups_bp.route('/responsibility-groups/<int:group_id>', methods=['PUT'])
@permission_required(Permissions.GROUP_MANAGE)
@api_errors('updating responsibility group')
def update_group(group_id):
    data = json_body()
    group = ResponsibilityGroupService.update_group(
        group_id, name=data.get('name'), description=data.get('description'))
    return jsonify(success=True, data=group.to_dict())


@responsibility_groups_bp.route('/responsibility-groups/<int:group_id>', methods=['DELETE'])
@permission_required(Permissions.GROUP_MANAGE)
@api_errors('deleting responsibility group')
def delete_group(group_id):
    ResponsibilityGroupService.delete_group(group_id, actor_id=current_actor_id())
    return jsonify(success=True, message="Responsibility group deleted")


# Group membership

@responsibility_groups_bp.route('/responsibility-groups/<int:group_id>/responsibilities', methods=['GET'])
@permission_required(Permissions.GROUP_VIEW)
@api_errors('listing group responsibilities')
def list_group_responsibilities(group_id):
    ids = ResponsibilityGroupService.list_responsibilities(group_id, ctx=sync_context())
    items = Responsibility.query.filter(Responsibility.id.in_(ids)).order_by(Responsibility.id).all() if ids else []
    return jsonify(success=True, data=[r.to_dict() for r in items])


@responsibility_groups_bp.route('/responsibility-groups/<int:group_id>/responsibilities', methods=['POST'])
@permission_required(Permissions.GROUP_MANAGE)
@api_errors('adding group responsibilities')
def add_group_responsibilities(group_id):
    change = ResponsibilityGroupService.add_responsibilities(
        group_id, ids_from_request('responsibility_ids'), actor_id=current_actor_id(), ctx=sync_context())
    return jsonify(success=True, data=change.to_dict())


@responsibility_groups_bp.route('/responsibility-groups/<int:group_id>/responsibilities', methods=['PUT'])
@permission_required(Permissions.GROUP_MANAGE)
@api_errors('replacing group responsibilities')
def replace_group_responsibilities(group_id):
    change = ResponsibilityGroupService.replace_responsibilities(
        group_id, ids_from_request('responsibility_ids', allow_empty=True),
        actor_id=current_actor_id(), ctx=sync_context())
    return jsonify(success=True, data=change.to_dict())


@responsibility_groups_bp.route('/responsibility-groups/<int:group_id>/responsibilities', methods=['DELETE'])
@permission_required(Permissions.GROUP_MANAGE)
@api_errors('removing group responsibilities')
def remove_group_responsibilities(group_id):
    change = ResponsibilityGroupService.remove_responsibilities(
        group_id, ids_from_request('responsibility_ids'), actor_id=current_actor_id(), ctx=sync_context())
    return jsonify(success=True, data=change.to_dict())


@responsibility_groups_bp.route('/responsibility-groups/<int:group_id>/responsibilities/<int:responsibility_id>',
                                methods=['POST'])
@permission_required(Permissions.GROUP_MANAGE)
@api_errors('adding group responsibility')
def add_group_responsibility(group_id, responsibility_id):
    change = ResponsibilityGroupService.add_responsibilities(
        group_id, [responsibility_id], actor_id=current_actor_id(), ctx=sync_context())
    return jsonify(success=True, data=change.to_dict())


@responsibility_groups_bp.route('/responsibility-groups/<int:group_id>/responsibilities/<int:responsibility_id>',
                                methods=['DELETE'])
@permission_required(Permissions.GROUP_MANAGE)
@api_errors('removing group responsibility')
def remove_group_responsibility(group_id, responsibility_id):
    change = ResponsibilityGroupService.remove_responsibilities(
        group_id, [responsibility_id], actor_id=current_actor_id(), ctx=sync_context())
    return jsonify(success=True, data=change.to_dict())
