"""Exception hierarchy for the short-code service.

Registry faults are raised as ``StoreError``; the allocator and resolver
re-raise them as ``InternalError`` chained to the original exception, so the
HTTP layer only has to tell "not found" apart from everything else.
"""

__all__ = [
    "CapacityExhaustedError",
    "InternalError",
    "NotFoundError",
    "ShortenerError",
    "StoreError",
]


class ShortenerError(Exception):
    """Base class for all service errors."""


class StoreError(ShortenerError):
    """The registry failed for a reason other than a code collision."""


class NotFoundError(ShortenerError):
    """No record exists for the requested short code."""

    def __init__(self, short_code: str):
        super().__init__(f"Short code '{short_code}' not found")
        self.short_code = short_code


class InternalError(ShortenerError):
    """A store fault surfaced by the allocator or resolver."""


class CapacityExhaustedError(ShortenerError):
    """Allocation gave up after too many saturated rounds."""

    def __init__(self, rounds: int, last_length: int):
        super().__init__(
            f"No short code reserved after {rounds} saturated rounds (last length {last_length})"
        )
        self.rounds = rounds
        self.last_length = last_length
