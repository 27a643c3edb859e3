"""
Models package for the EffiPlat RBAC core.

Join models are written only through the relationship synchronizer; the
relationship() attributes on the entity models are read-only views.
"""
from .base import db
from .user import User, AnonymousUser, permission_cache_key
from .role import Role
from .permission import Permission
from .user_role import UserRole
from .role_permission import RolePermission
from .responsibility import Responsibility
from .responsibility_group import ResponsibilityGroup
from .responsibility_group_member import ResponsibilityGroupMember
from .permission_audit import PermissionAudit
