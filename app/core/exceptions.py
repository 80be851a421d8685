"""
Platform-wide exception hierarchy.

Services raise these types; the tasks blueprint registers one handler per
type and maps it to a deterministic HTTP status and machine-readable code.
Nothing below the blueprint layer builds HTTP responses.

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=project_id)
    raise ValidationError("text is required", details={"text": "missing"})
"""

from app.utils.errors import E


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the given scope.

    Args:
        resource: Human-readable model/entity name (e.g. "Project").
        resource_id: The key that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would create a duplicate unique constraint violation.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class ProvenanceError(ValueError):
    """Raised by the model when code tries to rewrite origin/source/source_id."""


class TransportError(Exception):
    """The store could not be reached or refused the write.

    The original exception is chained; only a generic message reaches clients.
    """


# ── Task resolution / mutation ───────────────────────────────────────────────


class TaskError(Exception):
    """Base for task lookup and mutation failures.

    Attributes:
        code: Machine-readable error code returned in the JSON body.
        status: HTTP status the blueprint responds with.
        raw_id: The caller-supplied task reference.
        project_id: Project scope of the request.
    """

    code = E.TASK_ERROR
    status = 400

    def __init__(self, message: str, *, project_id: str | None = None,
                 raw_id: str | None = None, details: dict | None = None) -> None:
        self.message = message
        self.project_id = project_id
        self.raw_id = raw_id
        self.details = details or {}
        super().__init__(message)


class TaskNotFoundError(TaskError):
    """No resolution strategy matched the raw id."""

    code = E.TASK_NOT_FOUND
    status = 404


class AmbiguousMatchError(TaskError):
    """More than one row in the project shares the requested source_id.

    This is a data-integrity defect (the unique constraint should prevent it),
    never something to resolve by picking a row.
    """

    code = E.AMBIGUOUS_TASK_MATCH
    status = 409


class SourceIdWithoutRowError(TaskError):
    """The raw id looks like a canonical template id but the project has no row for it.

    Usually means the project was never seeded.
    """

    code = E.TEMPLATE_TASK_NOT_SEEDED
    status = 404


class PermissionDeniedError(TaskError):
    """The resolved task may not be deleted (factor-origin tasks)."""

    code = E.TASK_DELETE_FORBIDDEN
    status = 403
