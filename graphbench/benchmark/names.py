"""
Node Name Generation.

Time-based (RFC 4122 version 1) identifiers used as synthetic node names.
A generator instance is shared by every worker thread of a run.
"""

import itertools
import secrets
import threading
import time
import uuid
from collections.abc import Iterable
from typing import Protocol

import structlog

from graphbench.graph.store import GraphBenchError

logger = structlog.get_logger(__name__)

# 100-ns intervals between the Gregorian epoch (1582-10-15) and the Unix epoch
_GREGORIAN_OFFSET = 0x01B21DD213814000


class GeneratorExhaustion(GraphBenchError):
    """Raised when no entropy or clock source is available for identifiers."""

    pass


class NameGenerator(Protocol):
    """Anything that hands out node names."""

    def next(self) -> str: ...


class TimeBasedNameGenerator:
    """
    Thread-safe version 1 UUID generator.

    The 60-bit timestamp is strictly increasing per instance: when the clock
    has not advanced since the previous call (or went backwards) the last
    timestamp is bumped by one tick, so concurrent callers never receive the
    same identifier.

    Args:
        node: 48-bit node id (defaults to the host's hardware address)
        clock_seq: 14-bit clock sequence (random if omitted)
    """

    def __init__(self, node: int | None = None, clock_seq: int | None = None) -> None:
        try:
            self._node = node if node is not None else uuid.getnode()
            self._clock_seq = clock_seq if clock_seq is not None else secrets.randbits(14)
            self._last_timestamp = self._now()
        except (NotImplementedError, OSError) as e:
            raise GeneratorExhaustion(f"No usable entropy or clock source: {e}") from e

        if not 0 <= self._node < (1 << 48):
            raise ValueError(f"node out of range: {self._node}")
        if not 0 <= self._clock_seq < (1 << 14):
            raise ValueError(f"clock_seq out of range: {self._clock_seq}")

        self._lock = threading.Lock()
        logger.debug("Name generator ready", node=f"{self._node:012x}")

    @staticmethod
    def _now() -> int:
        return time.time_ns() // 100 + _GREGORIAN_OFFSET

    def generate(self) -> uuid.UUID:
        """Return the next identifier as a UUID."""
        with self._lock:
            timestamp = self._now()
            if timestamp <= self._last_timestamp:
                timestamp = self._last_timestamp + 1
            self._last_timestamp = timestamp

        return uuid.UUID(
            fields=(
                timestamp & 0xFFFFFFFF,
                (timestamp >> 32) & 0xFFFF,
                (timestamp >> 48) & 0x0FFF,
                (self._clock_seq >> 8) & 0x3F,
                self._clock_seq & 0xFF,
                self._node,
            ),
            version=1,
        )

    def next(self) -> str:
        return str(self.generate())


class ReplayNameGenerator:
    """
    Hands out a fixed sequence of names, cycling when exhausted.

    Used to force name collisions under the unique indexing strategy.
    """

    def __init__(self, names: Iterable[str]) -> None:
        names = list(names)
        if not names:
            raise GeneratorExhaustion("ReplayNameGenerator needs at least one name")
        self._names = itertools.cycle(names)
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            return next(self._names)
