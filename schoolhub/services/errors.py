"""
Typed failures raised by the catalog, resource, quiz and attempt services.

Every error carries an HTTP status code and a ``details`` mapping so the
API layer can render it without knowing the concrete type.
"""
from typing import Any, Dict, Optional


class SchoolHubError(Exception):
    """Base class for domain errors."""

    status_code = 400
    error_type = "domain_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "type": self.error_type,
            "status_code": self.status_code,
            "details": self.details,
        }


class NotFoundError(SchoolHubError):
    status_code = 404
    error_type = "not_found"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found", {"entity": entity, "id": entity_id})


# ============= Unknown references =============

class UnknownReferenceError(SchoolHubError):
    """A parent id passed to a mutating call does not exist."""

    error_type = "unknown_reference"
    entity = "Entity"

    def __init__(self, entity_id: str):
        super().__init__(
            f"{self.entity} with ID {entity_id} not found. Please refresh and try again.",
            {"entity": self.entity, "id": entity_id},
        )


class UnknownClassError(UnknownReferenceError):
    entity = "Class"


class UnknownTermError(UnknownReferenceError):
    entity = "Term"


class UnknownSubjectError(UnknownReferenceError):
    entity = "Subject"


class UnknownResourceError(UnknownReferenceError):
    entity = "Resource"


# ============= Structural conflicts =============

class StructuralConflictError(SchoolHubError):
    """A uniqueness rule would be broken; the caller must pick another value."""

    status_code = 409
    error_type = "structural_conflict"
    field = "value"

    def __init__(self, message: str, value: Any, scope: Optional[Dict[str, Any]] = None):
        details = {"field": self.field, "value": value}
        if scope:
            details["scope"] = scope
        super().__init__(message, details)


class DuplicateOrderError(StructuralConflictError):
    field = "order"


class DuplicateNameError(StructuralConflictError):
    field = "name"


class DuplicateCodeError(StructuralConflictError):
    field = "code"


class HasDependentsError(SchoolHubError):
    """Delete refused because the target still owns child records."""

    status_code = 409
    error_type = "has_dependents"

    def __init__(self, entity: str, dependents: Dict[str, int]):
        listed = ", ".join(f"{count} {kind}" for kind, count in dependents.items() if count)
        super().__init__(f"Cannot delete {entity.lower()} with existing {listed}", {"dependents": dependents})
        self.dependents = dependents


# ============= Quiz definition =============

class InvalidResourceTypeError(SchoolHubError):
    error_type = "invalid_resource_type"


class QuizAlreadyExistsError(SchoolHubError):
    status_code = 409
    error_type = "quiz_exists"


class InvalidQuestionError(SchoolHubError):
    error_type = "invalid_question"


# ============= Uploads =============

class FileValidationError(SchoolHubError):
    error_type = "file_validation"
