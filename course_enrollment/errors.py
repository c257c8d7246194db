from typing import Any, Dict, Iterable, List, Optional


class EnrollmentError(Exception):
    """Base failure of every enrollment / timetable operation.

    Carries a human readable message, an optional machine readable list of
    conflicting entities and the HTTP status the API layer answers with.
    """

    kind = "error"
    status_code = 400

    def __init__(self, message: str, conflicts: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.conflicts = conflicts or []

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": False, "error": self.message, "kind": self.kind}
        if self.conflicts:
            out["conflicts"] = self.conflicts
        return out


class InvalidInput(EnrollmentError):
    kind = "invalid_input"
    status_code = 400


class NotFound(EnrollmentError):
    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, message: str, missing: Iterable[Any] = ()):
        super().__init__(message)
        self.entity = entity
        self.missing = list(missing)

    def to_dict(self):
        out = super().to_dict()
        out["entity"] = self.entity
        if self.missing:
            out["missing"] = self.missing
        return out


class PolicyViolation(EnrollmentError):
    kind = "policy_violation"
    status_code = 403

    def __init__(self, message: str, course_codes: Iterable[str] = ()):
        super().__init__(message)
        self.course_codes = list(course_codes)

    def to_dict(self):
        out = super().to_dict()
        out["course_codes"] = self.course_codes
        return out


class ScheduleConflict(EnrollmentError):
    kind = "schedule_conflict"
    status_code = 409

    INTERNAL = "internal"
    EXISTING = "existing"
    WOULD_AFFECT_ENROLLED = "would_affect_enrolled"

    def __init__(self, scope: str, message: str, conflicts: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, conflicts)
        self.scope = scope

    def to_dict(self):
        out = super().to_dict()
        out["scope"] = self.scope
        return out


class AlreadyEnrolled(EnrollmentError):
    kind = "already_enrolled"
    status_code = 409

    def __init__(self, message: str, course_codes: Iterable[str] = ()):
        super().__init__(message)
        self.course_codes = list(course_codes)

    def to_dict(self):
        out = super().to_dict()
        out["course_codes"] = self.course_codes
        return out


class AlreadyExists(EnrollmentError):
    kind = "already_exists"
    status_code = 409


class StorageFailure(EnrollmentError):
    """Transaction or constraint failure raised by the database.

    ``retryable`` is set for lock timeouts, deadlocks and serialization
    failures; the caller may simply try again.
    """

    kind = "storage_failure"

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable

    @property
    def status_code(self):
        return 503 if self.retryable else 500

    def to_dict(self):
        out = super().to_dict()
        out["retryable"] = self.retryable
        return out
