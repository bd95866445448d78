"""
Unit Tests for Node Name Generation.

Tests TimeBasedNameGenerator and ReplayNameGenerator.
"""

import threading
import uuid
from unittest.mock import patch

import pytest

from graphbench.benchmark.names import (
    GeneratorExhaustion,
    ReplayNameGenerator,
    TimeBasedNameGenerator,
)


class TestTimeBasedNameGenerator:
    """Test cases for the version 1 UUID generator."""

    def test_names_are_version_1_uuids(self) -> None:
        """Names parse as RFC 4122 version 1 UUIDs."""
        generator = TimeBasedNameGenerator()
        parsed = uuid.UUID(generator.next())

        assert parsed.version == 1
        assert parsed.variant == uuid.RFC_4122

    def test_timestamps_strictly_increase(self) -> None:
        """Consecutive identifiers carry strictly increasing timestamps."""
        generator = TimeBasedNameGenerator(node=0x123456789ABC, clock_seq=42)
        stamps = [generator.generate().time for _ in range(1000)]

        assert all(a < b for a, b in zip(stamps, stamps[1:]))

    def test_explicit_node_and_clock_seq(self) -> None:
        """Fixed node and clock sequence end up in the identifier."""
        generator = TimeBasedNameGenerator(node=0x123456789ABC, clock_seq=0x1ABC)
        value = generator.generate()

        assert value.node == 0x123456789ABC
        assert value.clock_seq == 0x1ABC

    def test_unique_across_threads(self) -> None:
        """Concurrent callers never receive the same name."""
        generator = TimeBasedNameGenerator()
        names: list[str] = []
        lock = threading.Lock()

        def draw() -> None:
            local = [generator.next() for _ in range(500)]
            with lock:
                names.extend(local)

        threads = [threading.Thread(target=draw) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(names) == 4000
        assert len(set(names)) == 4000

    def test_missing_entropy_source(self) -> None:
        """No random source means GeneratorExhaustion."""
        with patch(
            "graphbench.benchmark.names.secrets.randbits",
            side_effect=NotImplementedError("no entropy"),
        ):
            with pytest.raises(GeneratorExhaustion):
                TimeBasedNameGenerator()

    @pytest.mark.parametrize("kwargs", [{"node": 1 << 48}, {"clock_seq": 1 << 14}, {"node": -1}])
    def test_out_of_range_fields(self, kwargs: dict[str, int]) -> None:
        """Node and clock sequence must fit their bit widths."""
        with pytest.raises(ValueError):
            TimeBasedNameGenerator(**kwargs)


class TestReplayNameGenerator:
    """Test cases for the fixed-sequence generator."""

    def test_cycles_through_names(self) -> None:
        """Names repeat once the list is exhausted."""
        generator = ReplayNameGenerator(["alpha", "beta"])

        assert [generator.next() for _ in range(5)] == ["alpha", "beta", "alpha", "beta", "alpha"]

    def test_empty_list_is_rejected(self) -> None:
        """At least one name is required."""
        with pytest.raises(GeneratorExhaustion):
            ReplayNameGenerator([])
