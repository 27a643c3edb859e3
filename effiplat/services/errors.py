"""
Error types for the relationship engine and the service facades.

Engine errors (SyncError and subclasses) describe what went wrong in
relation terms. Facades translate them into ServiceError subclasses that
carry feature wording and the HTTP status the blueprints respond with.
"""
from contextlib import contextmanager


class SyncError(Exception):
    kind = 'sync_error'

    def __init__(self, message=None):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class InvalidInput(SyncError):
    kind = 'invalid_input'


class OwnerNotFound(SyncError):
    kind = 'owner_not_found'

    def __init__(self, relation_kind, owner_id):
        self.relation_kind = relation_kind
        self.owner_id = owner_id
        super().__init__(f"Owner {owner_id} not found for {_kind_name(relation_kind)}")


class MembersNotFound(SyncError):
    kind = 'members_not_found'

    def __init__(self, relation_kind, missing_ids):
        self.relation_kind = relation_kind
        self.missing_ids = list(missing_ids)
        super().__init__(f"Members not found for {_kind_name(relation_kind)}: {self.missing_ids}")


class Conflict(SyncError):
    kind = 'conflict'


class StorageError(SyncError):
    kind = 'storage_error'


class OperationCancelled(StorageError):
    kind = 'cancelled'


def _kind_name(relation_kind):
    return getattr(relation_kind, 'value', relation_kind)


class ServiceError(Exception):
    """Base class for errors a facade reports to its caller."""
    status_code = 500

    def __init__(self, message, missing_ids=None):
        super().__init__(message)
        self.message = message
        self.missing_ids = list(missing_ids) if missing_ids is not None else None

    def to_dict(self):
        data = {'success': False, 'message': self.message}
        if self.missing_ids is not None:
            data['missing_ids'] = self.missing_ids
        return data


class ValidationError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class InternalError(ServiceError):
    status_code = 500


class UnavailableError(ServiceError):
    status_code = 503


@contextmanager
def translate_errors(owner_label, member_label):
    """
    Re-raise engine errors as ServiceErrors worded for one feature.

    owner_label is singular ("Role"), member_label plural ("Permissions").
    """
    try:
        yield
    except OwnerNotFound as e:
        raise NotFoundError(f"{owner_label} {e.owner_id} not found") from e
    except MembersNotFound as e:
        raise NotFoundError(f"{member_label} not found: {e.missing_ids}",
                            missing_ids=e.missing_ids) from e
    except InvalidInput as e:
        raise ValidationError(e.message) from e
    except Conflict as e:
        raise ConflictError(e.message) from e
    except OperationCancelled as e:
        raise UnavailableError(f"Operation cancelled: {e.message}") from e
    except StorageError as e:
        raise InternalError(f"Failed to update {member_label.lower()} of {owner_label.lower()}") from e
