"""Relation registry: one RelationSpec per many-to-many association kind."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import InvalidInput


class RelationKind(str, Enum):
    USER_ROLE = 'USER_ROLE'
    ROLE_PERMISSION = 'ROLE_PERMISSION'
    GROUP_MEMBER = 'GROUP_MEMBER'


class EntityKind(str, Enum):
    USER = 'user'
    ROLE = 'role'
    PERMISSION = 'permission'
    RESPONSIBILITY = 'responsibility'
    RESPONSIBILITY_GROUP = 'responsibility_group'


@dataclass(frozen=True)
class RelationSpec:
    """Describes how a relation kind maps onto its join table."""
    kind: RelationKind
    owner_kind: EntityKind
    member_kind: EntityKind
    table: object
    owner_column: str
    member_column: str
    actor_column: Optional[str] = None
    max_members: Optional[int] = None

    @property
    def owner_col(self):
        return self.table.c[self.owner_column]

    @property
    def member_col(self):
        return self.table.c[self.member_column]


def build_relation_specs():
    """Registry for the built-in relation kinds, keyed by RelationKind."""
    from ..models import UserRole, RolePermission, ResponsibilityGroupMember

    specs = [
        RelationSpec(
            kind=RelationKind.USER_ROLE,
            owner_kind=EntityKind.USER,
            member_kind=EntityKind.ROLE,
            table=UserRole.__table__,
            owner_column='user_id',
            member_column='role_id',
            actor_column='assigned_by',
        ),
        RelationSpec(
            kind=RelationKind.ROLE_PERMISSION,
            owner_kind=EntityKind.ROLE,
            member_kind=EntityKind.PERMISSION,
            table=RolePermission.__table__,
            owner_column='role_id',
            member_column='permission_id',
        ),
        RelationSpec(
            kind=RelationKind.GROUP_MEMBER,
            owner_kind=EntityKind.RESPONSIBILITY_GROUP,
            member_kind=EntityKind.RESPONSIBILITY,
            table=ResponsibilityGroupMember.__table__,
            owner_column='group_id',
            member_column='responsibility_id',
        ),
    ]
    return {spec.kind: spec for spec in specs}


def coerce_relation_kind(value):
    if isinstance(value, RelationKind):
        return value
    try:
        return RelationKind(str(value).upper())
    except ValueError:
        raise InvalidInput(f"Unknown relation kind: {value!r}")


def coerce_entity_kind(value):
    if isinstance(value, EntityKind):
        return value
    try:
        return EntityKind(str(value).lower())
    except ValueError:
        raise InvalidInput(f"Unknown entity kind: {value!r}")


def normalize_id(value, label='id'):
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInput(f"Invalid {label}: {value!r}")
    return value


def normalize_ids(values, label='member id', allow_empty=False):
    """De-duplicate ids, keeping first-seen order."""
    if values is None or isinstance(values, (str, bytes, dict)):
        raise InvalidInput(f"Expected a list of {label}s")
    try:
        items = list(values)
    except TypeError:
        raise InvalidInput(f"Expected a list of {label}s")

    seen = set()
    result = []
    for value in items:
        value = normalize_id(value, label)
        if value not in seen:
            seen.add(value)
            result.append(value)

    if not result and not allow_empty:
        raise InvalidInput(f"At least one {label} is required")
    return result
