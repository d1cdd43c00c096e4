"""Round score accumulation and final ranking.

Points earned while a round is running are held in ``RoundScores`` and only
added to player totals by ``commit`` at round end, so the committed
scoreboard never moves mid-round.
"""

from __future__ import annotations

from typing import Iterable, Protocol


class Scored(Protocol):
    id: str
    score: int


class RoundScores:
    def __init__(self) -> None:
        self._pending: dict[str, int] = {}

    def add(self, player_id: str, points: int) -> int:
        if points < 0:
            raise ValueError("round points cannot be negative")
        total = self._pending.get(player_id, 0) + points
        self._pending[player_id] = total
        return total

    def pending(self, player_id: str) -> int:
        return self._pending.get(player_id, 0)

    def discard(self, player_id: str) -> None:
        self._pending.pop(player_id, None)

    def reset(self) -> None:
        self._pending.clear()

    def snapshot(self) -> dict[str, int]:
        return dict(self._pending)

    def commit(self, players: Iterable[Scored]) -> dict[str, int]:
        """Add pending points to each player's total; return the per-player deltas."""
        deltas: dict[str, int] = {}
        for p in players:
            delta = self._pending.get(p.id, 0)
            p.score += delta
            deltas[p.id] = delta
        self._pending.clear()
        return deltas


def rank(players: Iterable[Scored]) -> list[tuple[int, Scored]]:
    """Stable sort by score, descending. Equal scores share a rank (1, 1, 3)."""
    ordered = sorted(players, key=lambda p: p.score, reverse=True)
    ranked: list[tuple[int, Scored]] = []
    prev_score = None
    prev_rank = 0
    for index, p in enumerate(ordered, start=1):
        if p.score != prev_score:
            prev_rank = index
            prev_score = p.score
        ranked.append((prev_rank, p))
    return ranked
