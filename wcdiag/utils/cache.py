from typing import Dict, Optional, Generic, TypeVar
from datetime import datetime
from threading import Lock
from dataclasses import dataclass, field
import logging

T = TypeVar("T")


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    """A published value tagged with the generation that produced it."""
    value: T
    generation: int
    published_at: datetime = field(default_factory=datetime.now)


class SnapshotStore(Generic[T]):
    """
    Holder for a shared value that is replaced wholesale, never edited.

    Readers always get either the previous or the new complete value.
    """

    def __init__(self, name: str, initial: Optional[T] = None):
        self.logger = logging.getLogger(__name__)
        self.name = name
        self._lock = Lock()
        self._generation = 0
        self._snapshot: Optional[Snapshot[T]] = (
            Snapshot(value=initial, generation=0) if initial is not None else None
        )
        self._stale = initial is None
        self._stats = {"publishes": 0, "invalidations": 0, "reads": 0}

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_stale(self) -> bool:
        return self._stale

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    def next_generation(self) -> int:
        """Reserve the generation number for a snapshot about to be built."""
        with self._lock:
            self._generation += 1
            return self._generation

    def publish(self, value: T, generation: Optional[int] = None) -> Snapshot[T]:
        """Atomically replace the current value."""
        with self._lock:
            if generation is None:
                self._generation += 1
                generation = self._generation
            elif self._snapshot is not None and generation < self._snapshot.generation:
                # An older build finished late; keep the newer value
                self.logger.debug(
                    f"Discarding {self.name} generation {generation}, "
                    f"current is {self._snapshot.generation}"
                )
                return self._snapshot
            self._snapshot = Snapshot(value=value, generation=generation)
            self._stale = False
            self._stats["publishes"] += 1

        self.logger.debug(f"Published {self.name} generation {generation}")
        return self._snapshot

    def current(self) -> Optional[T]:
        """Return the last published value, stale or not."""
        self._stats["reads"] += 1
        snapshot = self._snapshot
        return snapshot.value if snapshot else None

    def snapshot(self) -> Optional[Snapshot[T]]:
        return self._snapshot

    def invalidate(self) -> None:
        """Mark the value stale; it stays readable until the next publish."""
        with self._lock:
            self._stale = True
            self._stats["invalidations"] += 1
        self.logger.debug(f"Invalidated {self.name}")
