from __future__ import annotations

import logging
import secrets
import string
import uuid
from dataclasses import replace
from threading import RLock

from .models import PRIVATE_SETTINGS, PUBLIC_SETTINGS, Room, RoomKind, RoomSettings, RoomState
from .strokes import StrokeBuffer


logger = logging.getLogger(__name__)

INVITE_ALPHABET = string.ascii_letters + string.digits
INVITE_LENGTH = 8


def is_invite_code(text: str) -> bool:
    return len(text) == INVITE_LENGTH and all(ch in INVITE_ALPHABET for ch in text)


class RoomRegistry:
    """Rooms plus the cross-room lookup tables.

    Everything here is guarded by the registry's own lock, which is never held
    while taking a room lock (room locks may be held while calling in here).
    """

    def __init__(self, canvas_width: int = 800, canvas_height: int = 600, public_prize_pool: float = 0.0) -> None:
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}
        self._invite_codes: dict[str, str] = {}
        self._public_pool: dict[int, list[str]] = {}
        self._wallets: dict[str, str] = {}
        self._sessions: dict[str, str] = {}
        self._carryover: dict[int, float] = {}
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height
        self.public_prize_pool = public_prize_pool

    def _new_room(self, kind: RoomKind, settings: RoomSettings, prefix: str = "") -> Room:
        room_id = prefix + uuid.uuid4().hex
        while room_id in self._rooms:
            room_id = prefix + uuid.uuid4().hex
        room = Room(
            id=room_id,
            kind=kind,
            settings=settings,
            strokes=StrokeBuffer(self.canvas_width, self.canvas_height),
        )
        self._rooms[room_id] = room
        return room

    def _new_invite_code(self) -> str:
        code = "".join(secrets.choice(INVITE_ALPHABET) for _ in range(INVITE_LENGTH))
        while code in self._invite_codes:
            code = "".join(secrets.choice(INVITE_ALPHABET) for _ in range(INVITE_LENGTH))
        return code

    def create_private_room(self, owner_id: str | None, settings: RoomSettings | None = None) -> Room:
        with self._lock:
            room = self._new_room(RoomKind.PRIVATE, settings or PRIVATE_SETTINGS)
            room.owner_id = owner_id
            room.invite_code = self._new_invite_code()
            self._invite_codes[room.invite_code] = room.id
            logger.info("private room created id=%s code=%s", room.id, room.invite_code)
            return room

    def create_public_room(self, language: int = 0) -> Room:
        with self._lock:
            room = self._new_room(RoomKind.PUBLIC, replace(PUBLIC_SETTINGS, language=language), prefix="PUBLIC-")
            room.prize_pool = self.public_prize_pool
            self._public_pool.setdefault(language, []).append(room.id)
            logger.info("public room created id=%s lang=%s", room.id, language)
            return room

    def find_or_create_public_room(self, language: int = 0, exclude: set[str] | None = None) -> Room:
        with self._lock:
            for room_id in self._public_pool.get(language, []):
                if exclude and room_id in exclude:
                    continue
                room = self._rooms.get(room_id)
                if room is None or room.closed:
                    continue
                if room.state is RoomState.LOBBY and not room.is_full():
                    return room
            return self.create_public_room(language)

    def retire_public_room(self, room: Room) -> Room:
        """Take a started public room out of matchmaking and open a fresh one."""
        with self._lock:
            pool = self._public_pool.get(room.settings.language, [])
            if room.id in pool:
                pool.remove(room.id)
            return self.create_public_room(room.settings.language)

    def open_public_rooms(self) -> list[Room]:
        with self._lock:
            out = []
            for ids in self._public_pool.values():
                for room_id in ids:
                    room = self._rooms.get(room_id)
                    if room and room.state is RoomState.LOBBY and not room.is_full():
                        out.append(room)
            return out

    def add_carryover(self, language: int, amount: float) -> None:
        with self._lock:
            self._carryover[language] = self._carryover.get(language, 0.0) + amount

    def take_carryover(self, language: int) -> float:
        with self._lock:
            return self._carryover.pop(language, 0.0)

    def resolve_invite_code(self, code: str) -> str | None:
        with self._lock:
            return self._invite_codes.get(code)

    def get(self, room_id: str | None) -> Room | None:
        if not room_id:
            return None
        with self._lock:
            return self._rooms.get(room_id)

    def lookup(self, key: str) -> Room | None:
        """Find a room by id or invite code."""
        with self._lock:
            room = self._rooms.get(key)
            if room is None and is_invite_code(key):
                room = self._rooms.get(self._invite_codes.get(key, ""))
            return room

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def remove(self, room_id: str) -> bool:
        with self._lock:
            room = self._rooms.pop(room_id, None)
            if room is None:
                return False
            room.closed = True
            if room.invite_code:
                self._invite_codes.pop(room.invite_code, None)
            pool = self._public_pool.get(room.settings.language, [])
            if room_id in pool:
                pool.remove(room_id)
            for sid in [s for s, r in self._sessions.items() if r == room_id]:
                del self._sessions[sid]
            logger.info("room removed id=%s", room_id)
            return True

    def claim_wallet(self, address: str, sid: str) -> bool:
        with self._lock:
            holder = self._wallets.get(address)
            if holder is not None and holder != sid:
                return False
            self._wallets[address] = sid
            return True

    def release_wallet(self, address: str | None, sid: str) -> None:
        if not address:
            return
        with self._lock:
            if self._wallets.get(address) == sid:
                del self._wallets[address]

    def wallet_holder(self, address: str) -> str | None:
        with self._lock:
            return self._wallets.get(address)

    def bind_session(self, sid: str, room_id: str) -> None:
        with self._lock:
            self._sessions[sid] = room_id

    def unbind_session(self, sid: str, room_id: str | None = None) -> None:
        with self._lock:
            if room_id is None or self._sessions.get(sid) == room_id:
                self._sessions.pop(sid, None)

    def room_of(self, sid: str) -> Room | None:
        with self._lock:
            room_id = self._sessions.get(sid)
            return self._rooms.get(room_id) if room_id else None
