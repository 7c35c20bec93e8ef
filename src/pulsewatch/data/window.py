"""
Bounded sliding-window storage for metric streams.

Each metric kind gets its own fixed-capacity ring buffer. The store is shared
between the ingestion path and the scoring path, so every access goes through
one lock.
"""

import threading
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .models import MetricKind, Sample, SampleValue, WINDOW_CAPACITY


class MetricWindow:
    """
    Fixed-capacity FIFO ring buffer.

    Backed by a preallocated array with a write cursor and a count, so
    appending to a full window overwrites the oldest slot in O(1).
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._slots: List[Any] = [None] * capacity
        self._cursor = 0  # next slot to write
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def is_full(self) -> bool:
        return self._count == self.capacity

    def append(self, item: Any) -> None:
        self._slots[self._cursor] = item
        self._cursor = (self._cursor + 1) % self.capacity
        if self._count < self.capacity:
            self._count += 1

    def snapshot(self) -> Tuple[Any, ...]:
        """Items ordered oldest to newest."""
        start = (self._cursor - self._count) % self.capacity
        return tuple(self._slots[(start + i) % self.capacity] for i in range(self._count))

    def latest(self) -> Optional[Any]:
        if self._count == 0:
            return None
        return self._slots[(self._cursor - 1) % self.capacity]

    def clear(self) -> None:
        self._slots = [None] * self.capacity
        self._cursor = 0
        self._count = 0


class MetricStore:
    """
    Per-metric sample history.

    Snapshots are copies: they stay valid after later appends but do not
    track them.
    """

    def __init__(self, capacities: Mapping[MetricKind, int] = WINDOW_CAPACITY):
        self._windows: Dict[MetricKind, MetricWindow] = {
            kind: MetricWindow(capacities[kind]) for kind in MetricKind
        }
        self._lock = threading.Lock()

    def capacity(self, kind: MetricKind) -> int:
        return self._windows[kind].capacity

    def append(self, kind: MetricKind, sample: Sample) -> None:
        if sample.kind is not kind:
            raise ValueError(f"{sample.kind.name} sample cannot go in the {kind.name} window")
        with self._lock:
            self._windows[kind].append(sample)

    def add(self, sample: Sample) -> None:
        self.append(sample.kind, sample)

    def snapshot(self, kind: MetricKind) -> Tuple[Sample, ...]:
        with self._lock:
            return self._windows[kind].snapshot()

    def latest(self, kind: MetricKind) -> Optional[Sample]:
        """Most recent sample, or None if nothing has arrived yet."""
        with self._lock:
            return self._windows[kind].latest()

    def values(self, kind: MetricKind) -> List[SampleValue]:
        """Sample values only, oldest first (chart series)."""
        return [sample.value for sample in self.snapshot(kind)]

    def size(self, kind: MetricKind) -> int:
        with self._lock:
            return len(self._windows[kind])

    def clear(self) -> None:
        with self._lock:
            for window in self._windows.values():
                window.clear()
