"""Short code allocation with collision retry and adaptive length.

This module produces fresh, globally unique short codes. Uniqueness is never
checked in-process: each random candidate is handed to the registry's atomic
insert, and a unique-constraint violation is treated as a collision.

State Machine — CodeAllocator.allocate()
========================================
::
    ┌─────────────┐
    │ read length │◄──────────────────────────────┐
    └──────┬──────┘                               │
           ▼                                      │
    ┌─────────────┐                               │
    │ GENERATING  │◄──────────┐                   │
    │ nanoid(len) │           │ CONFLICT and      │
    └──────┬──────┘           │ attempts < 3      │
           ▼                  │                   │
    ┌─────────────┐           │                   │
    │ RESERVING   ├───────────┘                   │
    │ try_reserve │                               │
    └──────┬──────┘                               │
           │                                      │
   ┌───────┼──────────────┬──────────────┐        │
   │RESERVED│ StoreError   │ 3rd CONFLICT │        │
   ▼        ▼              ▼              │        │
┌────────┐┌────────┐ ┌─────────────┐      │        │
│SUCCEED-││ FAILED │ │  GROWING    │      │        │
│ED      ││Internal│ │ write len+1 ├──────┘        │
└────────┘│Error   │ │ (best-effort)│ rounds < max ─┘
          └────────┘ └──────┬──────┘
                            │ rounds == max
                            ▼
                     ┌─────────────┐
                     │ FAILED      │
                     │ Capacity-   │
                     │ Exhausted   │
                     └─────────────┘

Key Behaviours
===============
- The length setting is re-read at the start of every round, never cached.
- A store fault aborts the allocation immediately; it is not retried.
- A failure to persist the grown length is logged and swallowed.
- Identical URLs are not deduplicated; every call reserves a new code.
- The total number of saturated rounds is bounded.

Functions:
    generate_short_code():  Uniform random code over the 62-symbol alphabet.

Classes:
    CodeAllocator:  Allocation state machine over a ShortUrlRegistry.
"""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from nanoid import generate
from prometheus_client import Counter, Histogram

from shortener.config import Settings, get_settings
from shortener.enums import AllocationState, RequestStatus, ReservationOutcome
from shortener.errors import CapacityExhaustedError, InternalError, StoreError
from shortener.registry import ShortUrlRegistry

__all__ = ["ALPHABET", "AllocationTrace", "CodeAllocator", "generate_short_code"]

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

ALLOCATION_REQUESTS_TOTAL = Counter(
    "shortener_allocation_requests_total",
    "Total short code allocation requests",
    ["status"],
)
ALLOCATION_DURATION = Histogram(
    "shortener_allocation_duration_seconds",
    "Time taken to allocate a short code",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
RESERVATION_ATTEMPTS_TOTAL = Counter(
    "shortener_reservation_attempts_total",
    "Candidate codes submitted to the registry",
)
COLLISIONS_TOTAL = Counter(
    "shortener_collisions_total",
    "Candidate codes rejected by the unique constraint",
)
LENGTH_GROWTHS_TOTAL = Counter(
    "shortener_length_growths_total",
    "Saturated rounds that requested a longer code length",
    ["persisted"],
)


def generate_short_code(length: int) -> str:
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    return generate(ALPHABET, length)


@dataclass
class AllocationTrace:
    """Bookkeeping for a single allocate() call."""

    length: int = 0
    attempts_in_round: int = 0
    total_attempts: int = 0
    collisions: int = 0
    rounds: int = 0
    candidate: str = ""


class CodeAllocator:
    """Allocate unique short codes against a registry.

    The allocator holds no locks and no mutable state between calls, so one
    instance may serve any number of concurrent requests.

    Example:
        >>> allocator = CodeAllocator(registry)
        >>> code = await allocator.allocate("https://example.com")
    """

    def __init__(
        self,
        registry: ShortUrlRegistry,
        settings: Settings | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        code_generator: Callable[[int], str] = generate_short_code,
        reserved_codes: Iterable[str] = (),
    ):
        settings = settings or get_settings()
        self._registry = registry
        self._attempts_per_length = settings.ATTEMPTS_PER_LENGTH
        self._max_rounds = settings.MAX_ALLOCATION_ROUNDS
        self._logger = logger or logging.getLogger("shortener")
        self._generate = code_generator
        self._reserved_codes = frozenset(reserved_codes)

    async def allocate(self, original_url: str) -> str:
        """Reserve a fresh short code bound to ``original_url``.

        Returns:
            str: The reserved code.

        Raises:
            InternalError: The registry failed while reading the length or reserving.
            CapacityExhaustedError: Every round up to the configured ceiling collided.
        """
        start_time = time.perf_counter()
        trace = AllocationTrace()
        try:
            code = await self._run(original_url, trace)
        except CapacityExhaustedError:
            ALLOCATION_REQUESTS_TOTAL.labels(status=RequestStatus.CAPACITY_EXHAUSTED).inc()
            self._logger.error(
                f"Allocation gave up after {trace.rounds} saturated rounds "
                f"({trace.total_attempts} attempts, last length {trace.length})"
            )
            raise
        except InternalError as exc:
            ALLOCATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Allocation failed: {exc}")
            raise
        finally:
            ALLOCATION_DURATION.observe(time.perf_counter() - start_time)

        ALLOCATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.debug(
            f"Allocated {code} after {trace.total_attempts} attempts "
            f"({trace.collisions} collisions, length {trace.length})"
        )
        return code

    async def _run(self, original_url: str, trace: AllocationTrace) -> str:
        trace.length = await self._read_length()
        state = AllocationState.GENERATING

        while not state.is_terminal:
            if state is AllocationState.GENERATING:
                trace.candidate = self._generate(trace.length)
                trace.attempts_in_round += 1
                trace.total_attempts += 1
                state = AllocationState.RESERVING

            elif state is AllocationState.RESERVING:
                state = await self._reserve(original_url, trace)

            elif state is AllocationState.GROWING:
                trace.rounds += 1
                await self._grow(trace.length + 1)
                if trace.rounds >= self._max_rounds:
                    state = AllocationState.FAILED
                    continue
                trace.length = await self._read_length()
                trace.attempts_in_round = 0
                state = AllocationState.GENERATING

        if state is AllocationState.FAILED:
            raise CapacityExhaustedError(trace.rounds, trace.length)
        return trace.candidate

    async def _reserve(self, original_url: str, trace: AllocationTrace) -> AllocationState:
        if trace.candidate in self._reserved_codes:
            outcome = ReservationOutcome.CONFLICT
        else:
            RESERVATION_ATTEMPTS_TOTAL.inc()
            try:
                outcome = await self._registry.try_reserve(trace.candidate, original_url)
            except StoreError as exc:
                raise InternalError(str(exc)) from exc

        if outcome is ReservationOutcome.RESERVED:
            return AllocationState.SUCCEEDED

        COLLISIONS_TOTAL.inc()
        trace.collisions += 1
        self._logger.debug(f"Collision on {trace.candidate} (attempt {trace.attempts_in_round})")
        if trace.attempts_in_round < self._attempts_per_length:
            return AllocationState.GENERATING
        return AllocationState.GROWING

    async def _read_length(self) -> int:
        try:
            return await self._registry.read_code_length()
        except StoreError as exc:
            raise InternalError(str(exc)) from exc

    async def _grow(self, new_length: int) -> None:
        try:
            await self._registry.write_code_length(new_length)
        except StoreError as exc:
            LENGTH_GROWTHS_TOTAL.labels(persisted="false").inc()
            self._logger.warning(f"Could not persist short code length {new_length}: {exc}")
            return
        LENGTH_GROWTHS_TOTAL.labels(persisted="true").inc()
        self._logger.info(f"Keyspace saturated, short code length grown to {new_length}")
