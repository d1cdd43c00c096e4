from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from threading import RLock
from typing import Any

from .abuse import SpamGuard, VoteKickTracker
from .rewards import RewardLedger
from .scoring import RoundScores
from .strokes import StrokeBuffer
from .timers import RoomTimers


class RoomKind(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class RoomState(str, Enum):
    LOBBY = "lobby"
    ROUND_START = "round_start"
    WORD_CHOICE = "word_choice"
    DRAWING = "drawing"
    ROUND_END = "round_end"
    GAME_END = "game_end"


class WordMode(int, Enum):
    NORMAL = 0
    HIDDEN = 1
    COMBINATION = 2


class EndReason(str, Enum):
    ALL_GUESSED = "all_guessed"
    TIME_UP = "time_up"
    DRAWER_LEFT = "drawer_left"


class LeaveReason(str, Enum):
    LEFT = "left"
    KICKED = "kicked"
    BANNED = "banned"
    SPAM = "spam"
    VOTEKICK = "votekick"


@dataclass(frozen=True)
class RoomSettings:
    language: int = 0
    max_slots: int = 8
    draw_time: int = 80
    total_rounds: int = 3
    words_per_choice: int = 3
    hint_count: int = 2
    word_mode: WordMode = WordMode.NORMAL
    custom_words_only: bool = False

    def to_dict(self) -> dict:
        return {
            "language": self.language,
            "maxSlots": self.max_slots,
            "drawTimeSeconds": self.draw_time,
            "totalRounds": self.total_rounds,
            "wordsPerChoice": self.words_per_choice,
            "hintCount": self.hint_count,
            "wordMode": int(self.word_mode),
            "customWordsOnly": self.custom_words_only,
        }


PUBLIC_SETTINGS = RoomSettings(
    max_slots=8,
    draw_time=80,
    total_rounds=8,
    words_per_choice=3,
    hint_count=2,
)

PRIVATE_SETTINGS = RoomSettings()


# wire key -> (attribute, min, max)
SETTING_LIMITS: dict[str, tuple[str, int, int]] = {
    "language": ("language", 0, 99),
    "maxSlots": ("max_slots", 2, 20),
    "drawTimeSeconds": ("draw_time", 15, 240),
    "totalRounds": ("total_rounds", 1, 20),
    "wordsPerChoice": ("words_per_choice", 1, 5),
    "hintCount": ("hint_count", 0, 5),
    "wordMode": ("word_mode", 0, 2),
    "customWordsOnly": ("custom_words_only", 0, 1),
}


def apply_setting(settings: RoomSettings, key: str, value: Any) -> RoomSettings | None:
    """Return a copy of ``settings`` with one wire key changed, or None if invalid."""
    limits = SETTING_LIMITS.get(key)
    if limits is None:
        return None
    attr, low, high = limits

    if isinstance(value, bool):
        value = int(value)
    if not isinstance(value, int):
        try:
            value = int(str(value).strip())
        except ValueError:
            return None
    if value < low or value > high:
        return None

    if attr == "word_mode":
        return replace(settings, word_mode=WordMode(value))
    if attr == "custom_words_only":
        return replace(settings, custom_words_only=bool(value))
    return replace(settings, **{attr: value})


@dataclass
class Player:
    id: str
    name: str
    avatar: list[int] = field(default_factory=list)
    score: int = 0
    guessed: bool = False
    is_admin: bool = False
    payout_address: str | None = None
    client_key: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "avatar": list(self.avatar),
            "score": self.score,
            "guessed": self.guessed,
            "isAdmin": self.is_admin,
        }


@dataclass
class Room:
    id: str
    kind: RoomKind
    settings: RoomSettings
    invite_code: str | None = None
    owner_id: str | None = None
    players: list[Player] = field(default_factory=list)
    state: RoomState = RoomState.LOBBY
    current_round: int = 0
    drawer_id: str | None = None
    word: str = ""
    word_choices: list[str] = field(default_factory=list)
    combination_pick: int | None = None
    revealed: set[int] = field(default_factory=set)
    hint_limit: int = 0
    hint_checkpoints: list[int] = field(default_factory=list)
    remaining: int = 0
    round_deadline_ms: int | None = None
    guess_count: int = 0
    clamped: bool = False
    ratings: dict[str, bool] = field(default_factory=dict)
    phase_data: dict = field(default_factory=dict)
    custom_words: list[str] = field(default_factory=list)
    strokes: StrokeBuffer = field(default_factory=StrokeBuffer)
    round_scores: RoundScores = field(default_factory=RoundScores)
    prize_pool: float = 0.0
    prize_pool_frozen: bool = False
    carryover: float = 0.0
    rewards: RewardLedger | None = None
    timers: RoomTimers = field(default_factory=RoomTimers)
    ballots: VoteKickTracker = field(default_factory=VoteKickTracker)
    spam: dict[str, SpamGuard] = field(default_factory=dict)
    bans: set[str] = field(default_factory=set)
    cooldowns: dict[str, int] = field(default_factory=dict)
    closed: bool = False
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)

    @property
    def is_public(self) -> bool:
        return self.kind is RoomKind.PUBLIC

    def player(self, player_id: str | None) -> Player | None:
        if player_id is None:
            return None
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def has_player(self, player_id: str | None) -> bool:
        return self.player(player_id) is not None

    def is_full(self) -> bool:
        return len(self.players) >= self.settings.max_slots

    def guessers(self) -> list[Player]:
        return [p for p in self.players if p.id != self.drawer_id]

    def scoreboard(self) -> list[dict]:
        return [{"id": p.id, "score": p.score} for p in self.players]
