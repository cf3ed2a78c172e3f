"""Domain errors surfaced to the immediate caller of a store or time-tracking operation."""

from enum import Enum


class ErrorCode(Enum):
    INVALID_TRANSITION = "INVALID_TRANSITION"
    NOT_FOUND = "NOT_FOUND"
    DOCUMENT_CORRUPT = "DOCUMENT_CORRUPT"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    INVALID_VALUE = "INVALID_VALUE"


class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidTransitionError(DomainError):
    """Raised when a time-tracking action is not allowed from the team's current status."""

    def __init__(self, team_id: str, status: str, action: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot {action} for team {team_id} while {status}",
        )
        self.team_id = team_id
        self.status = status
        self.action = action


class NotFoundError(DomainError):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(
            code=ErrorCode.NOT_FOUND,
            message=f"{kind} {entity_id} not found",
        )
        self.kind = kind
        self.entity_id = entity_id


class DocumentCorruptError(DomainError):
    """Raised when the persisted document cannot be decrypted or parsed."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            code=ErrorCode.DOCUMENT_CORRUPT,
            message=f"Stored document {key!r} is unreadable: {reason}",
        )
        self.key = key


class AlreadyExistsError(DomainError):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_EXISTS,
            message=f"{kind} {entity_id} already exists",
        )
        self.kind = kind
        self.entity_id = entity_id


class InvalidValueError(DomainError):
    """Raised when a mutation would write a document that no longer validates. Nothing is written."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_VALUE,
            message=f"Rejected invalid value: {reason}",
        )
        self.reason = reason
