from __future__ import annotations

from dataclasses import dataclass, field
from itertools import count
from typing import Callable


PHASE = "phase"
WORD_CHOICE = "word_choice"
ROUND = "round"
HINT = "hint"
COUNTDOWN = "countdown"
STROKES = "strokes"
BALLOTS = "ballots"

_seq = count()


@dataclass
class Timer:
    category: str
    due_ms: int
    callback: Callable[[], None]
    repeat_ms: int | None = None
    seq: int = field(default_factory=lambda: next(_seq))


class RoomTimers:
    """Cancellable callbacks owned by a single room, at most one per category.

    Nothing here runs on its own: the owner calls ``pop_due`` from inside the
    room's lock, so timer callbacks and message handlers never interleave.
    """

    def __init__(self) -> None:
        self._timers: dict[str, Timer] = {}

    def schedule(
        self,
        category: str,
        now_ms: int,
        delay_ms: int,
        callback: Callable[[], None],
        repeat_ms: int | None = None,
    ) -> Timer:
        timer = Timer(category=category, due_ms=now_ms + max(0, delay_ms), callback=callback, repeat_ms=repeat_ms)
        self._timers[category] = timer
        return timer

    def cancel(self, category: str) -> bool:
        return self._timers.pop(category, None) is not None

    def cancel_all(self) -> None:
        self._timers.clear()

    def active(self, category: str) -> bool:
        return category in self._timers

    def due_at(self, category: str) -> int | None:
        timer = self._timers.get(category)
        return timer.due_ms if timer else None

    def categories(self) -> list[str]:
        return sorted(self._timers)

    def next_due(self) -> int | None:
        if not self._timers:
            return None
        return min(t.due_ms for t in self._timers.values())

    def pop_due(self, now_ms: int) -> Timer | None:
        """Take the earliest timer due at ``now_ms``.

        Repeating timers are rearmed from their own due time, not from
        ``now_ms``, so a late poll still yields every missed tick in order.
        """
        due = [t for t in self._timers.values() if t.due_ms <= now_ms]
        if not due:
            return None
        timer = min(due, key=lambda t: (t.due_ms, t.seq))
        if timer.repeat_ms:
            self._timers[timer.category] = Timer(
                category=timer.category,
                due_ms=timer.due_ms + timer.repeat_ms,
                callback=timer.callback,
                repeat_ms=timer.repeat_ms,
            )
        else:
            del self._timers[timer.category]
        return timer
