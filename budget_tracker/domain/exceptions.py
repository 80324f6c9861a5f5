"""Domain-specific exceptions"""

from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class FieldError:
    """One offending input field"""

    field: str
    code: str
    message: str


class DomainException(Exception):
    """Base exception for domain layer"""

    code = "DOMAIN_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(DomainException):
    """Malformed or out-of-range input, one entry per offending field"""

    code = "VALIDATION_ERROR"

    def __init__(self, errors: Sequence[FieldError]):
        self.errors = list(errors)
        summary = self.first_error.message if self.errors else "Invalid input"
        super().__init__(summary)

    @property
    def first_error(self) -> Optional[FieldError]:
        return self.errors[0] if self.errors else None

    @property
    def fields(self) -> list[str]:
        return [error.field for error in self.errors]


class BusinessRuleFailure(DomainException):
    """Structurally valid input that breaks a domain invariant"""

    def __init__(self, code: str, message: str, errors: Sequence[FieldError] = ()):
        super().__init__(message)
        self.code = code
        self.errors = list(errors)


class NotFoundFailure(DomainException):
    """Referenced row does not exist or belongs to another owner"""

    code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, resource_id: object):
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id


class ConflictFailure(DomainException):
    """A concurrent write invalidated an assumption; refetch and retry once"""

    code = "CONFLICT"


class StoreFailure(DomainException):
    """Persistence error; details stay in the server log"""

    code = "STORE_ERROR"


class RollbackFailure(StoreFailure):
    """A compensating action failed, invariants can no longer be guaranteed"""

    code = "ROLLBACK_FAILED"
