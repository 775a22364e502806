# fundapp/exceptions.py
"""
Error taxonomy for the fundraising core.

Caller-facing errors (a request is rejected):
    ValidationError, NotFoundError, PermissionDenied, ConflictError

Internal conditions (logged only, never raised to a caller):
    HierarchyCycleDetected, HierarchyTooDeep,
    PropagationFailure, ConcurrencyConflict
"""


class FundraisingError(Exception):
    """Base class for errors surfaced to the caller."""

    status_code = 400

    def __init__(self, message, *, field=None, index=None, details=None):
        super().__init__(message)
        self.message = message
        self.field = field
        # Position of the offending entry in a multi-entry request (divide)
        self.index = index
        self.details = details or {}

    def as_dict(self):
        data = {"error": self.message}
        if self.field is not None:
            data["field"] = self.field
        if self.index is not None:
            data["index"] = self.index
        if self.details:
            data["details"] = self.details
        return data


class ValidationError(FundraisingError):
    status_code = 400


class NotFoundError(FundraisingError):
    status_code = 404


class PermissionDenied(FundraisingError):
    status_code = 403


class ConflictError(FundraisingError):
    status_code = 409


# ----------------------------------------------------------
# Internal conditions
# ----------------------------------------------------------
class HierarchyCondition(Exception):
    """Defect found while walking parent links."""

    def __init__(self, user_id, message):
        super().__init__(message)
        self.user_id = user_id


class HierarchyCycleDetected(HierarchyCondition):
    def __init__(self, user_id, repeated_id):
        super().__init__(
            user_id,
            f"hierarchy cycle above {user_id}: {repeated_id} seen twice",
        )
        self.repeated_id = repeated_id


class HierarchyTooDeep(HierarchyCondition):
    def __init__(self, user_id, max_depth):
        super().__init__(
            user_id,
            f"hierarchy above {user_id} deeper than {max_depth} levels",
        )
        self.max_depth = max_depth


class ConcurrencyConflict(Exception):
    """Compare-and-swap on a target row lost to another writer."""

    def __init__(self, target_id, expected_version):
        super().__init__(
            f"target {target_id} changed since version {expected_version}"
        )
        self.target_id = target_id
        self.expected_version = expected_version


class PropagationFailure(Exception):
    """An ancestor level could not be recomputed."""

    def __init__(self, user_id, cause):
        super().__init__(f"propagation failed at {user_id}: {cause}")
        self.user_id = user_id
        self.cause = cause
