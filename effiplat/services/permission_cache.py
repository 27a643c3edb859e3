"""Invalidation of cached per-user permission sets."""
from flask import current_app
from sqlalchemy import select

from .. import cache, db
from ..models import UserRole, permission_cache_key
from .relations import RelationKind


def invalidate_user_permissions(user_ids):
    keys = [permission_cache_key(user_id) for user_id in user_ids]
    if keys:
        cache.delete_many(*keys)


def users_holding_role(role_ids):
    role_ids = list(role_ids)
    if not role_ids:
        return []
    stmt = select(UserRole.user_id).where(UserRole.role_id.in_(role_ids)).distinct()
    with db.engine.connect() as conn:
        return list(conn.execute(stmt).scalars())


def invalidate_for_change(change):
    """Drop cached permissions made stale by a committed association change."""
    if change.relation_kind == RelationKind.USER_ROLE:
        invalidate_user_permissions([change.owner_id])
    elif change.relation_kind == RelationKind.ROLE_PERMISSION:
        user_ids = users_holding_role([change.owner_id])
        invalidate_user_permissions(user_ids)
        current_app.logger.debug(
            f"Invalidated cached permissions for {len(user_ids)} users of role {change.owner_id}")
