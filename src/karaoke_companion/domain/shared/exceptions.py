"""Base exception classes for domain-level errors."""

from __future__ import annotations

from enum import Enum


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ValidationError(DomainError):
    """Raised when domain validation fails."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


class EntityNotFoundError(DomainError):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, identifier: str | int, message: str | None = None) -> None:
        msg = message or f"{entity_type} with id '{identifier}' not found"
        super().__init__(msg, code="ENTITY_NOT_FOUND")
        self.entity_type = entity_type
        self.identifier = identifier


class BusinessRuleViolationError(DomainError):
    """Raised when a business rule is violated."""

    def __init__(self, rule: str, message: str | None = None) -> None:
        msg = message or f"Business rule violated: {rule}"
        super().__init__(msg, code="BUSINESS_RULE_VIOLATION")
        self.rule = rule


class OwnershipConflictError(DomainError):
    """Raised by the session store when another user already owns the hosted session."""

    def __init__(self, session_id: int, message: str | None = None) -> None:
        msg = message or f"Session {session_id} is hosted by another user"
        super().__init__(msg, code="OWNERSHIP_CONFLICT")
        self.session_id = session_id


# === Hosting errors (fatal to the caller of an explicit host attempt) ===


class HostingError(DomainError):
    """Base class for errors surfaced to the user when hosting fails."""


class NoActiveSessionError(HostingError):
    def __init__(self, message: str = "No active session") -> None:
        super().__init__(message, code="NO_ACTIVE_SESSION")


class NotAuthenticatedError(HostingError):
    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message, code="NOT_AUTHENTICATED")


class SessionExpiredError(HostingError):
    def __init__(self, message: str = "Session expired. Please sign in again.") -> None:
        super().__init__(message, code="SESSION_EXPIRED")


class UserNotLoadedError(HostingError):
    def __init__(self, message: str = "User not loaded. Please sign in again.") -> None:
        super().__init__(message, code="USER_NOT_LOADED")


class HostedByOtherUserError(HostingError):
    def __init__(
        self,
        message: str = (
            "Another user is currently hosting this session. "
            "They must stop hosting before you can host."
        ),
    ) -> None:
        super().__init__(message, code="HOSTED_BY_OTHER_USER")


# === Relay errors ===


class RelayFailureKind(Enum):
    """How a failed relay call affects durable hosted-session state."""

    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    TRANSIENT = "transient"

    @property
    def is_definitive(self) -> bool:
        return self is not RelayFailureKind.TRANSIENT


class RelayApiError(DomainError):
    """Raised by the relay client.

    ``status_code`` is ``None`` when no response was received (network error
    or timeout); those are always transient.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, code="RELAY_API_ERROR")
        self.status_code = status_code

    @property
    def failure_kind(self) -> RelayFailureKind:
        match self.status_code:
            case 404:
                return RelayFailureKind.NOT_FOUND
            case 401:
                return RelayFailureKind.UNAUTHORIZED
            case 403:
                return RelayFailureKind.FORBIDDEN
            case _:
                return RelayFailureKind.TRANSIENT
