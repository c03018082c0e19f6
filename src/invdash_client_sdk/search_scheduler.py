from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class _PendingSearch:
    term: str
    due_at: float
    generation: int


class SearchScheduler(Generic[T]):
    """Debounced, coalescing, last-writer-wins search driver.

    ``submit`` only records the latest term and when it becomes due; ``poll``
    (called from the UI loop or a timer tick) runs the fetch once the delay has
    elapsed. Every ``submit``/``cancel`` bumps a generation counter, and results
    belonging to an older generation are thrown away, so a slow response can
    never overwrite the results of a newer term or repopulate a closed dialog.
    """

    def __init__(
        self,
        fetch: Callable[[str], Sequence[T]],
        *,
        delay_ms: int = 350,
        min_length: int = 1,
        now: Callable[[], float] | None = None,
    ) -> None:
        self._fetch = fetch
        self.delay_seconds = max(0, delay_ms) / 1000
        self.min_length = max(1, min_length)
        self._now = now or time.monotonic
        self._generation = 0
        self._pending: _PendingSearch | None = None
        self.term = ""
        self.results: list[T] = []

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_pending(self) -> bool:
        return self._pending is not None

    def submit(self, term: str) -> None:
        normalized = (term or "").strip()
        self._generation += 1
        self.term = normalized
        if len(normalized) < self.min_length:
            self._pending = None
            self.results = []
            return
        self._pending = _PendingSearch(normalized, self._now() + self.delay_seconds, self._generation)

    def cancel(self) -> None:
        self._generation += 1
        self._pending = None

    def reset(self) -> None:
        self.cancel()
        self.term = ""
        self.results = []

    def poll(self) -> bool:
        """Run the pending search if it is due. Returns True when fresh results were stored."""
        pending = self._pending
        if pending is None or self._now() < pending.due_at:
            return False
        return self._run(pending)

    def flush(self) -> bool:
        """Run the pending search immediately, ignoring the remaining delay."""
        if self._pending is None:
            return False
        return self._run(self._pending)

    def _run(self, pending: _PendingSearch) -> bool:
        self._pending = None
        try:
            results = list(self._fetch(pending.term))
        except Exception:
            if pending.generation != self._generation:
                return False
            raise
        if pending.generation != self._generation:
            return False
        self.results = results
        return True
