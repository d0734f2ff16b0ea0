"""
Shared Domain Kernel

Contains exceptions, constrained types and events shared across all bounded contexts.
"""

from karaoke_companion.domain.shared.exceptions import (
    BusinessRuleViolationError,
    DomainError,
    EntityNotFoundError,
    HostingError,
    OwnershipConflictError,
    RelayApiError,
    RelayFailureKind,
    ValidationError,
)

__all__ = [
    "DomainError",
    "ValidationError",
    "EntityNotFoundError",
    "BusinessRuleViolationError",
    "OwnershipConflictError",
    "HostingError",
    "RelayApiError",
    "RelayFailureKind",
]
