"""Shared enums for the short-code service.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["AllocationState", "HealthStatus", "RequestStatus", "ReservationOutcome"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DISABLED = "disabled"

    @classmethod
    def from_str(cls, value: str) -> "HealthStatus":
        """Safely parse from string, falling back to UNHEALTHY for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNHEALTHY


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    CAPACITY_EXHAUSTED = "capacity_exhausted"
    ERROR = "error"

    @classmethod
    def from_str(cls, value: str) -> "RequestStatus":
        """Safely parse from string, falling back to ERROR for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return cls.ERROR


class ReservationOutcome(StrEnum):
    """Result of an insert-if-absent attempt against the registry."""

    RESERVED = "reserved"
    CONFLICT = "conflict"


class AllocationState(StrEnum):
    """States of the code allocator's retry/growth machine."""

    GENERATING = "generating"
    RESERVING = "reserving"
    GROWING = "growing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AllocationState.SUCCEEDED, AllocationState.FAILED)
