from __future__ import annotations

from typing import Any

# Outbound event names.
ROOM_SNAPSHOT = "room:snapshot"
PLAYER_JOINED = "room:player_joined"
PLAYER_LEFT = "room:player_left"
PLAYER_PROFILE = "room:profile"
OWNER_CHANGED = "room:owner"
SETTINGS_CHANGED = "room:settings"
ROOM_ERROR = "room:error"
ROOM_KICKED = "room:kicked"
ROOM_CLOSED = "room:closed"

GAME_STATE = "game:state"
GAME_TICK = "game:tick"
GAME_HINT = "game:hint"
GAME_ERROR = "game:error"
GAME_RATE = "game:rate"
GAME_RANKINGS = "game:rankings"

DRAW_BATCH = "draw:batch"
DRAW_CLEAR = "draw:clear"
DRAW_UNDO = "draw:undo"

GUESS_CORRECT = "guess:correct"
GUESS_CLOSE = "guess:close"

CHAT_MESSAGE = "chat:message"
CHAT_SPAM = "chat:spam"

VOTE_PROGRESS = "vote:progress"

REWARD_CLAIMED = "reward:claimed"
REWARD_ERROR = "reward:error"


class Outbox:
    """Where the game service sends everything it wants clients to see.

    ``to`` is either a room id (all members) or a player sid. The base class
    drops everything; the Socket.IO adapter lives in ``realtime.events``.
    """

    def emit(self, event: str, payload: Any = None, to: str | None = None, skip_sid: str | None = None) -> None:
        pass

    def enter(self, sid: str, room_id: str) -> None:
        pass

    def leave(self, sid: str, room_id: str) -> None:
        pass

    def disconnect(self, sid: str) -> None:
        pass
