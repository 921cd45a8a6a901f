from __future__ import annotations


class SnapshotGuard:
    """Generation counter deciding which in-flight computation may publish.

    Each computation calls :meth:`start` before its first suspension point and
    checks :meth:`is_current` right before publishing. The highest generation
    wins; older results are dropped. Callers that tag a snapshot when it is
    created pass that tag to :meth:`start`, so a computation that starts late
    cannot overtake a newer snapshot.
    """

    __slots__ = ("_current",)

    def __init__(self) -> None:
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def start(self, generation: int | None = None) -> int:
        if generation is None:
            generation = self._current + 1
        self._current = max(self._current, generation)
        return generation

    def is_current(self, generation: int) -> bool:
        return generation == self._current
