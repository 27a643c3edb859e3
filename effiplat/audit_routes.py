# effiplat/audit_routes.py

from flask import Blueprint, jsonify, request

from .auth.permissions import permission_required, Permissions
from .models import PermissionAudit
from .services.errors import InvalidInput, ValidationError
from .services.relations import coerce_relation_kind
from .utils import api_errors

audit_bp = Blueprint('audit_bp', __name__)

MAX_LIMIT = 500


@audit_bp.route('/audit-logs', methods=['GET'])
@permission_required(Permissions.AUDIT_VIEW)
@api_errors('listing audit logs')
def list_audit_logs():
    query = PermissionAudit.query

    relation_kind = request.args.get('relation_kind')
    if relation_kind:
        try:
            query = query.filter(PermissionAudit.relation_kind == coerce_relation_kind(relation_kind).value)
        except InvalidInput as e:
            raise ValidationError(e.message) from e

    owner_id = request.args.get('owner_id', type=int)
    if owner_id is not None:
        query = query.filter(PermissionAudit.owner_id == owner_id)

    actor_id = request.args.get('actor_id', type=int)
    if actor_id is not None:
        query = query.filter(PermissionAudit.actor_id == actor_id)

    limit = max(1, min(request.args.get('limit', 100, type=int), MAX_LIMIT))
    entries = query.order_by(PermissionAudit.timestamp.desc(), PermissionAudit.id.desc()).limit(limit).all()
    return jsonify(success=True, data=[e.to_dict() for e in entries])
