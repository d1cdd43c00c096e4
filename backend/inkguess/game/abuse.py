from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from enum import Enum


INSTANT_MS = 300
SLOW_MS = 500
RATE_WINDOW_MS = 4000
RATE_LIMIT = 6
BURST_LENGTH = 3
RESET_MS = 5000
MAX_WARNINGS = 3

BALLOT_TTL_MS = 30_000


class SpamAction(str, Enum):
    OK = "ok"
    WARN = "warn"
    KICK = "kick"


@dataclass(frozen=True)
class SpamVerdict:
    action: SpamAction
    warnings: int


class SpamGuard:
    """Per-connection chat flood detector.

    A burst is a run of messages each arriving within ``INSTANT_MS`` of the
    previous one; the message opening the run counts towards its length.
    """

    def __init__(self) -> None:
        self.warnings = 0
        self._last_ms: int | None = None
        self._last_spam_ms: int | None = None
        self._burst = 0
        self._window: deque[int] = deque()

    def check(self, now_ms: int) -> SpamVerdict:
        gap = None if self._last_ms is None else now_ms - self._last_ms
        self._last_ms = now_ms

        if self._last_spam_ms is not None and now_ms - self._last_spam_ms >= RESET_MS:
            self.warnings = 0
            self._last_spam_ms = None

        self._window.append(now_ms)
        while self._window and now_ms - self._window[0] >= RATE_WINDOW_MS:
            self._window.popleft()

        instant = gap is not None and gap <= INSTANT_MS
        slow = gap is not None and INSTANT_MS < gap <= SLOW_MS
        rate = len(self._window) >= RATE_LIMIT
        self._burst = self._burst + 1 if instant else 1

        if instant or slow or rate:
            self._last_spam_ms = now_ms

        if self.warnings == 0:
            if self._burst >= BURST_LENGTH or rate:
                self.warnings = 1
                return SpamVerdict(SpamAction.WARN, self.warnings)
            return SpamVerdict(SpamAction.OK, 0)

        if not (instant or slow):
            return SpamVerdict(SpamAction.OK, self.warnings)
        if self.warnings >= MAX_WARNINGS:
            return SpamVerdict(SpamAction.KICK, self.warnings)
        self.warnings += 1
        return SpamVerdict(SpamAction.WARN, self.warnings)


def required_votes(player_count: int) -> int:
    if player_count >= 8:
        return 5
    if player_count <= 3:
        return 2
    return math.ceil(0.6 * player_count)


class VoteKickTracker:
    def __init__(self, ttl_ms: int = BALLOT_TTL_MS) -> None:
        self.ttl_ms = ttl_ms
        self._ballots: dict[tuple[str, str], int] = {}

    def prune(self, now_ms: int) -> int:
        expired = [k for k, cast_at in self._ballots.items() if now_ms - cast_at >= self.ttl_ms]
        for k in expired:
            del self._ballots[k]
        return len(expired)

    def cast(self, voter_id: str, target_id: str, now_ms: int) -> int | None:
        """Record a ballot; returns the target's live vote count, or None for a repeat vote."""
        self.prune(now_ms)
        key = (voter_id, target_id)
        if key in self._ballots:
            return None
        self._ballots[key] = now_ms
        return self.count(target_id)

    def count(self, target_id: str) -> int:
        return sum(1 for (_, t) in self._ballots if t == target_id)

    def forget(self, player_id: str) -> None:
        for k in [k for k in self._ballots if player_id in k]:
            del self._ballots[k]

    def next_expiry(self) -> int | None:
        if not self._ballots:
            return None
        return min(self._ballots.values()) + self.ttl_ms

    def __len__(self) -> int:
        return len(self._ballots)
