"""
Application-wide exception hierarchy.

Services raise these; the app factory registers one handler per type so
blueprints get consistent HTTP status codes everywhere.

Usage:
    from servicehub.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="ContactRequest", resource_id=42)
    raise ValidationError("Unknown permission codes", details={"codes": [...]})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "Customer").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when well-formed input violates a business rule.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class WorkflowError(Exception):
    """Raised when the workflow engine is unreachable, misconfigured, or rejects a call.

    Maps to HTTP 502.

    Args:
        message: What failed.
        status_code: Upstream HTTP status, if the engine answered at all.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
