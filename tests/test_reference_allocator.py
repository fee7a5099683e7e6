"""Tests for case reference allocation."""

import threading

import pytest

from civicline.domain.cases import format_reference, parse_reference_number
from civicline.domain.references import (
    AllocationError,
    InMemoryReferenceReserver,
    ReferenceAllocator,
)


class RacingReserver(InMemoryReferenceReserver):
    """Lets another caller win the first `losses` reservations."""

    def __init__(self, losses: int):
        super().__init__()
        self._losses = losses

    def reserve(self, reference):
        if self._losses > 0:
            self._losses -= 1
            super().reserve(reference)
            return False
        return super().reserve(reference)


class FullReserver:
    def current_max(self, prefix):
        return 0

    def reserve(self, reference):
        return False


class TestFormat:
    def test_zero_padded_to_eight_digits(self):
        assert format_reference("GRV", 1) == "GRV00000001"
        assert format_reference("APT", 12345678) == "APT12345678"

    def test_numbers_start_at_one(self):
        with pytest.raises(ValueError):
            format_reference("GRV", 0)

    def test_parse_number(self):
        assert parse_reference_number("GRV00000042", "GRV") == 42
        assert parse_reference_number("GRV00000042", "APT") is None
        assert parse_reference_number("GRV42", "GRV") is None


class TestAllocator:
    def test_sequential_per_prefix(self):
        allocator = ReferenceAllocator(InMemoryReferenceReserver())
        assert allocator.allocate("GRV") == "GRV00000001"
        assert allocator.allocate("GRV") == "GRV00000002"
        assert allocator.allocate("APT") == "APT00000001"

    def test_collision_skips_past_taken_numbers(self):
        reserver = RacingReserver(losses=2)
        reference = ReferenceAllocator(reserver).allocate("GRV")
        assert reference == "GRV00000003"

    def test_exhaustion_raises(self):
        allocator = ReferenceAllocator(FullReserver(), max_attempts=3)
        with pytest.raises(AllocationError):
            allocator.allocate("APT")

    def test_max_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            ReferenceAllocator(InMemoryReferenceReserver(), max_attempts=0)

    def test_concurrent_callers_get_distinct_references(self):
        allocator = ReferenceAllocator(InMemoryReferenceReserver(), max_attempts=50)
        barrier = threading.Barrier(10)
        references = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            for _ in range(5):
                ref = allocator.allocate("GRV")
                with lock:
                    references.append(ref)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(references) == 50
        assert len(set(references)) == 50
