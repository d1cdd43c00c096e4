from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable

from ..config import Config
from . import events, timers
from .abuse import SpamAction, SpamGuard, required_votes
from .errors import ClaimError, JoinError
from .events import Outbox
from .guess import Verdict, drawer_share, evaluate, normalize, score
from .hints import hint_checkpoints, hint_limit, pick_hint, word_structure
from .models import (
    EndReason,
    LeaveReason,
    Player,
    Room,
    RoomKind,
    RoomState,
    WordMode,
    apply_setting,
)
from .registry import RoomRegistry, is_invite_code
from .rewards import DisabledPayouts, PayoutExecutor, Reward, RewardLedger, distribute, execute_claim, is_valid_address
from .scoring import rank
from .words import WordBank, parse_custom_words


logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 16
MAX_CHAT_LENGTH = 100
MAX_COMMANDS_PER_MESSAGE = 500
DEFAULT_AVATAR = [0, 0, 0, -1]

PHASE_TIMERS = (
    timers.PHASE,
    timers.WORD_CHOICE,
    timers.ROUND,
    timers.HINT,
    timers.COUNTDOWN,
    timers.STROKES,
)

MID_GAME = (RoomState.ROUND_START, RoomState.WORD_CHOICE, RoomState.DRAWING, RoomState.ROUND_END)


def now_ms() -> int:
    return int(time.time() * 1000)


def clean_name(name: Any) -> str | None:
    n = str(name or "").strip()
    if not n or len(n) > MAX_NAME_LENGTH:
        return None
    if "<" in n or ">" in n:
        return None
    if any(ord(ch) < 32 for ch in n):
        return None
    return n


def clean_avatar(raw: Any) -> list[int]:
    if not isinstance(raw, (list, tuple)) or not 1 <= len(raw) <= 4:
        return list(DEFAULT_AVATAR)
    out = []
    for v in raw:
        if isinstance(v, bool) or not isinstance(v, int) or not -1 <= v <= 99:
            return list(DEFAULT_AVATAR)
        out.append(v)
    return out


def log_leaderboard(result: dict) -> None:
    logger.info("public game finished room=%s players=%s", result.get("room_id"), len(result.get("players", [])))


class GameService:
    """Authoritative game state for every room.

    Each public method resolves the caller's room and runs entirely under
    that room's lock; timer callbacks are fired by ``tick`` under the same
    lock, so a room only ever sees one event at a time.
    """

    def __init__(
        self,
        registry: RoomRegistry | None = None,
        outbox: Outbox | None = None,
        config: type = Config,
        clock: Callable[[], int] = now_ms,
        words: WordBank | None = None,
        payouts: PayoutExecutor | None = None,
        leaderboard: Callable[[dict], None] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self.registry = registry or RoomRegistry(
            canvas_width=config.CANVAS_WIDTH,
            canvas_height=config.CANVAS_HEIGHT,
            public_prize_pool=config.PUBLIC_PRIZE_POOL,
        )
        self.outbox = outbox or Outbox()
        self.clock = clock
        self.words = words or WordBank()
        self.payouts = payouts or DisabledPayouts()
        self.leaderboard = leaderboard or log_leaderboard
        self.rng = rng or random.Random()

    # ---- outbound helpers ----

    def _emit_room(self, room: Room, event: str, payload: Any = None, skip_sid: str | None = None) -> None:
        self.outbox.emit(event, payload, to=room.id, skip_sid=skip_sid)

    def _emit_to(self, sid: str, event: str, payload: Any = None) -> None:
        self.outbox.emit(event, payload, to=sid)

    def _system_chat(self, room: Room, text: str) -> None:
        self._emit_room(room, events.CHAT_MESSAGE, {"from": None, "text": text})

    def _insiders(self, room: Room) -> list[Player]:
        return [p for p in room.players if p.id == room.drawer_id or p.guessed]

    def _state_data(self, room: Room, viewer: str | None) -> dict:
        state = room.state
        if state is RoomState.WORD_CHOICE:
            data = {"drawerId": room.drawer_id}
            if viewer is not None and viewer == room.drawer_id:
                data["words"] = list(room.word_choices)
                if room.combination_pick is not None:
                    data["picked"] = room.combination_pick
            return data
        if state is RoomState.DRAWING:
            data: dict = {"drawerId": room.drawer_id}
            viewer_p = room.player(viewer)
            if viewer == room.drawer_id or (viewer_p is not None and viewer_p.guessed):
                data["word"] = room.word
            elif room.settings.word_mode is WordMode.HIDDEN:
                data["structure"] = None
            else:
                data["structure"] = word_structure(room.word)
            data["hints"] = [[i, room.word[i]] for i in sorted(room.revealed)]
            return data
        return dict(room.phase_data)

    def _state_payload(self, room: Room, viewer: str | None) -> dict:
        return {"state": room.state.value, "time": room.remaining, "data": self._state_data(room, viewer)}

    def _broadcast_state(self, room: Room) -> None:
        if room.state in (RoomState.WORD_CHOICE, RoomState.DRAWING):
            for p in room.players:
                self._emit_to(p.id, events.GAME_STATE, self._state_payload(room, p.id))
        else:
            self._emit_room(room, events.GAME_STATE, self._state_payload(room, None))

    def snapshot(self, room: Room, viewer: str | None = None) -> dict:
        payload = {
            "me": viewer,
            "roomId": room.id,
            "kind": room.kind.value,
            "ownerId": room.owner_id,
            "players": [p.to_dict() for p in room.players],
            "round": room.current_round,
            "settings": room.settings.to_dict(),
            "state": self._state_payload(room, viewer),
            "strokes": room.strokes.replay() if room.state is RoomState.DRAWING else [],
            "prizePool": room.prize_pool,
        }
        if room.invite_code:
            payload["inviteCode"] = room.invite_code
        return payload

    def public_state(self, room: Room) -> dict:
        with room.lock:
            return {
                "roomId": room.id,
                "kind": room.kind.value,
                "inviteCode": room.invite_code,
                "state": room.state.value,
                "round": room.current_round,
                "players": len(room.players),
                "settings": room.settings.to_dict(),
                "prizePool": room.prize_pool,
                "prizePoolFrozen": room.prize_pool_frozen,
            }

    # ---- joining and leaving ----

    def _resolve_target(self, target: str) -> Room:
        room = self.registry.lookup(target)
        if room is not None:
            return room
        if len(target) == 8 and not is_invite_code(target):
            raise JoinError(JoinError.INVALID_CODE)
        raise JoinError(JoinError.ROOM_NOT_FOUND)

    def _check_access(self, room: Room, client_key: str) -> None:
        if client_key and client_key in room.bans:
            raise JoinError(JoinError.BANNED)
        until = room.cooldowns.get(client_key) if client_key else None
        if until is not None:
            if until > self.clock():
                raise JoinError(JoinError.ON_COOLDOWN)
            del room.cooldowns[client_key]
        if room.is_full():
            raise JoinError(JoinError.ROOM_FULL)

    def join(
        self,
        sid: str,
        name: Any,
        avatar: Any = None,
        target: str | None = None,
        create: bool = False,
        language: int = 0,
        payout_address: str | None = None,
        client_key: str = "",
        is_admin: bool = False,
    ) -> Room:
        clean = clean_name(name)
        if clean is None:
            raise JoinError(JoinError.INVALID_NAME)

        if self.registry.room_of(sid) is not None:
            self.leave(sid)

        address = payout_address if is_valid_address(payout_address) else None
        if payout_address and address is None:
            logger.info("ignoring malformed payout address sid=%s", sid)
        if address and not self.registry.claim_wallet(address, sid):
            raise JoinError(JoinError.WALLET_ACTIVE)

        if not self.words.has_language(language):
            language = self.words.default_language

        try:
            if create:
                room = self.registry.create_private_room(owner_id=None)
            elif target:
                room = self._resolve_target(target)
            else:
                room = self.registry.find_or_create_public_room(language)

            tried: set[str] = set()
            for _ in range(16):
                with room.lock:
                    if room.is_public and (room.closed or room.state is not RoomState.LOBBY or room.is_full()):
                        tried.add(room.id)
                        room = self.registry.find_or_create_public_room(room.settings.language, exclude=tried)
                        continue
                    if room.closed:
                        raise JoinError(JoinError.ROOM_NOT_FOUND)
                    self._check_access(room, client_key)
                    player = Player(
                        id=sid,
                        name=clean,
                        avatar=clean_avatar(avatar),
                        is_admin=is_admin,
                        payout_address=address,
                        client_key=client_key,
                    )
                    self._add_player(room, player)
                    return room
            raise JoinError(JoinError.ROOM_FULL)
        except JoinError:
            self.registry.release_wallet(address, sid)
            raise

    def _add_player(self, room: Room, player: Player) -> None:
        room.players.append(player)
        room.spam[player.id] = SpamGuard()
        if room.kind is RoomKind.PRIVATE and not room.has_player(room.owner_id):
            room.owner_id = player.id
        self.registry.bind_session(player.id, room.id)
        self.outbox.enter(player.id, room.id)
        logger.info("player joined room=%s sid=%s players=%d", room.id, player.id, len(room.players))

        self._emit_to(player.id, events.ROOM_SNAPSHOT, self.snapshot(room, player.id))
        self._emit_room(room, events.PLAYER_JOINED, player.to_dict(), skip_sid=player.id)

        if room.is_public and room.state is RoomState.LOBBY and len(room.players) == room.settings.max_slots:
            self.registry.retire_public_room(room)
            self._start_game(room)

    def leave(self, sid: str, reason: LeaveReason = LeaveReason.LEFT) -> bool:
        room = self.registry.room_of(sid)
        if room is None:
            return False
        with room.lock:
            return self._remove_player(room, sid, reason)

    def _remove_player(self, room: Room, sid: str, reason: LeaveReason) -> bool:
        player = room.player(sid)
        if player is None:
            return False

        was_owner = room.owner_id == sid
        was_drawer = room.drawer_id == sid

        room.players.remove(player)
        room.round_scores.discard(sid)
        room.ballots.forget(sid)
        room.spam.pop(sid, None)
        room.ratings.pop(sid, None)
        self.registry.release_wallet(player.payout_address, sid)
        self.registry.unbind_session(sid, room.id)
        self.outbox.leave(sid, room.id)
        logger.info("player left room=%s sid=%s reason=%s players=%d", room.id, sid, reason.value, len(room.players))

        self._emit_room(room, events.PLAYER_LEFT, {"id": sid, "reason": reason.value})
        if reason is LeaveReason.BANNED:
            self._system_chat(room, f"{player.name} has been banned!")
        elif reason is not LeaveReason.LEFT:
            self._system_chat(room, f"{player.name} has been kicked!")

        remaining = len(room.players)
        if remaining == 0:
            self._destroy(room)
            return True
        if room.is_public and remaining == 1:
            self._close_public(room)
            return True

        if was_owner and room.kind is RoomKind.PRIVATE:
            room.owner_id = room.players[0].id
            self._emit_room(room, events.OWNER_CHANGED, {"ownerId": room.owner_id})

        if remaining == 1:
            if room.state in MID_GAME:
                self._finish_early(room)
            return True

        if room.state is RoomState.WORD_CHOICE and was_drawer:
            room.timers.cancel(timers.WORD_CHOICE)
            self._begin_word_choice(room)
        elif room.state is RoomState.DRAWING:
            if was_drawer:
                self._end_round(room, EndReason.DRAWER_LEFT)
            elif self._all_guessed(room):
                self._end_round(room, EndReason.ALL_GUESSED)
        return True

    def _destroy(self, room: Room) -> None:
        room.timers.cancel_all()
        self.registry.remove(room.id)

    def _close_public(self, room: Room) -> None:
        """Public rooms never continue solo: send the last player home."""
        room.timers.cancel_all()
        room.state = RoomState.LOBBY
        room.drawer_id = None
        room.word = ""
        last = room.players[0]
        self._emit_to(last.id, events.ROOM_CLOSED, {"reason": "not_enough_players"})
        room.players.clear()
        self.registry.release_wallet(last.payout_address, last.id)
        self.registry.unbind_session(last.id, room.id)
        self.outbox.leave(last.id, room.id)
        self._destroy(room)

    # ---- game flow ----

    def _cancel_phase_timers(self, room: Room) -> None:
        for category in PHASE_TIMERS:
            room.timers.cancel(category)

    def _countdown(self, room: Room, category: str, seconds: int, on_done: Callable[[], None]) -> None:
        room.remaining = seconds
        if seconds <= 0:
            on_done()
            return

        def step() -> None:
            room.remaining -= 1
            self._emit_room(room, events.GAME_TICK, {"time": room.remaining})
            if room.remaining <= 0:
                room.timers.cancel(category)
                on_done()

        room.timers.schedule(category, self.clock(), 1000, step, repeat_ms=1000)

    def start_game(self, sid: str, custom_words: Any = None) -> bool:
        room = self.registry.room_of(sid)
        if room is None:
            return False
        with room.lock:
            if room.kind is not RoomKind.PRIVATE or room.owner_id != sid:
                self._emit_to(sid, events.GAME_ERROR, {"error": "only_owner"})
                return False
            if room.state is not RoomState.LOBBY:
                return False
            if len(room.players) < 2:
                self._emit_to(sid, events.GAME_ERROR, {"error": "not_enough_players"})
                return False
            if custom_words:
                words = parse_custom_words(custom_words)
                if len(words) >= self.config.MIN_CUSTOM_WORDS:
                    room.custom_words = words
                else:
                    logger.debug("custom words ignored room=%s count=%d", room.id, len(words))
            self._start_game(room)
            return True

    def _start_game(self, room: Room) -> None:
        for p in room.players:
            p.score = 0
            p.guessed = False
        room.current_round = 0
        room.round_scores.reset()
        room.rewards = None
        room.prize_pool_frozen = False
        if room.is_public:
            room.prize_pool += self.registry.take_carryover(room.settings.language)
        room.prize_pool += room.carryover
        room.carryover = 0.0
        logger.info("game started room=%s players=%d pool=%s", room.id, len(room.players), room.prize_pool)
        self._start_round(room)

    def _start_round(self, room: Room) -> None:
        self._cancel_phase_timers(room)
        room.current_round += 1
        room.state = RoomState.ROUND_START
        room.drawer_id = None
        room.word = ""
        room.word_choices = []
        room.combination_pick = None
        room.revealed.clear()
        room.hint_checkpoints = []
        room.strokes.clear()
        room.round_scores.reset()
        room.guess_count = 0
        room.clamped = False
        room.ratings.clear()
        for p in room.players:
            p.guessed = False
        room.phase_data = {"round": room.current_round, "scores": room.scoreboard()}
        room.remaining = self.config.ROUND_START_SEC
        self._broadcast_state(room)
        self._countdown(room, timers.PHASE, self.config.ROUND_START_SEC, lambda: self._begin_word_choice(room))

    def _begin_word_choice(self, room: Room) -> None:
        if len(room.players) < 2:
            self._finish_early(room)
            return
        drawer = room.players[(room.current_round - 1) % len(room.players)]
        count = room.settings.words_per_choice
        if room.settings.word_mode is WordMode.COMBINATION:
            count = max(2, count)

        room.state = RoomState.WORD_CHOICE
        room.drawer_id = drawer.id
        room.combination_pick = None
        room.word_choices = self.words.pick(
            room.settings.language,
            count,
            custom_words=room.custom_words,
            custom_only=room.settings.custom_words_only,
            min_custom=self.config.MIN_CUSTOM_WORDS,
            rng=self.rng,
        )
        room.phase_data = {}
        room.remaining = self.config.WORD_CHOICE_SEC
        logger.info("word choice room=%s round=%d drawer=%s", room.id, room.current_round, drawer.id)
        self._broadcast_state(room)
        self._countdown(room, timers.WORD_CHOICE, self.config.WORD_CHOICE_SEC, lambda: self._auto_choose(room))

    def _auto_choose(self, room: Room) -> None:
        if room.state is not RoomState.WORD_CHOICE or not room.word_choices:
            return
        if room.settings.word_mode is WordMode.COMBINATION and len(room.word_choices) >= 2:
            first = room.combination_pick if room.combination_pick is not None else 0
            second = next(i for i in range(len(room.word_choices)) if i != first)
            self._begin_drawing(room, f"{room.word_choices[first]} {room.word_choices[second]}")
        else:
            self._begin_drawing(room, room.word_choices[0])

    def choose_word(self, sid: str, choice: Any) -> bool:
        room = self.registry.room_of(sid)
        if room is None:
            return False
        with room.lock:
            if room.state is not RoomState.WORD_CHOICE or room.drawer_id != sid:
                return False
            indices = choice if isinstance(choice, (list, tuple)) else [choice]
            n = len(room.word_choices)
            if not indices or not all(isinstance(i, int) and not isinstance(i, bool) and 0 <= i < n for i in indices):
                return False

            if room.settings.word_mode is WordMode.COMBINATION and n >= 2:
                if len(indices) >= 2:
                    first, second = indices[0], indices[1]
                elif room.combination_pick is None:
                    room.combination_pick = indices[0]
                    self._emit_to(sid, events.GAME_STATE, self._state_payload(room, sid))
                    return True
                else:
                    first, second = room.combination_pick, indices[0]
                if first == second:
                    return False
                word = f"{room.word_choices[first]} {room.word_choices[second]}"
            else:
                word = room.word_choices[indices[0]]

            room.timers.cancel(timers.WORD_CHOICE)
            self._begin_drawing(room, word)
            return True

    def _begin_drawing(self, room: Room, word: str) -> None:
        now = self.clock()
        draw_time = room.settings.draw_time
        room.state = RoomState.DRAWING
        room.word = word
        room.word_choices = []
        room.combination_pick = None
        room.revealed.clear()
        room.strokes.clear()
        room.guess_count = 0
        room.remaining = draw_time
        room.round_deadline_ms = now + draw_time * 1000
        if room.settings.word_mode is WordMode.HIDDEN:
            room.hint_limit = 0
        else:
            room.hint_limit = hint_limit(word, room.settings.hint_count)
        if room.hint_limit:
            room.hint_checkpoints = [t for t in hint_checkpoints(room.settings.hint_count) if t <= draw_time]
        else:
            room.hint_checkpoints = []
        room.phase_data = {}
        logger.info("drawing room=%s round=%d drawer=%s", room.id, room.current_round, room.drawer_id)

        self._broadcast_state(room)
        room.timers.schedule(timers.ROUND, now, 1000, lambda: self._round_tick(room), repeat_ms=1000)
        flush_ms = max(1, self.config.STROKE_FLUSH_MS)
        room.timers.schedule(timers.STROKES, now, flush_ms, lambda: self._flush_strokes(room), repeat_ms=flush_ms)
        self._schedule_next_hint(room)

    def _round_tick(self, room: Room) -> None:
        if room.state is not RoomState.DRAWING:
            room.timers.cancel(timers.ROUND)
            return
        room.remaining -= 1
        self._emit_room(room, events.GAME_TICK, {"time": room.remaining})
        if room.remaining <= 0:
            self._end_round(room, EndReason.TIME_UP)

    def _schedule_next_hint(self, room: Room) -> None:
        room.timers.cancel(timers.HINT)
        if not room.hint_checkpoints or len(room.revealed) >= room.hint_limit:
            return
        now = self.clock()
        due = room.round_deadline_ms - room.hint_checkpoints[0] * 1000
        room.timers.schedule(timers.HINT, now, due - now, lambda: self._hint_due(room))

    def _hint_due(self, room: Room) -> None:
        if room.state is not RoomState.DRAWING:
            return
        if room.hint_checkpoints:
            room.hint_checkpoints.pop(0)
        self._reveal_hint(room)
        self._schedule_next_hint(room)

    def _reveal_hint(self, room: Room) -> None:
        if len(room.revealed) >= room.hint_limit:
            return
        index = pick_hint(room.word, room.revealed, self.rng)
        if index is None:
            return
        room.revealed.add(index)
        hint = [[index, room.word[index]]]
        for p in room.players:
            if p.id != room.drawer_id and not p.guessed:
                self._emit_to(p.id, events.GAME_HINT, hint)

    def _clamp_timer(self, room: Room) -> None:
        """First correct guess: cut the clock to the clamp and catch up skipped hints."""
        clamp = self.config.FIRST_GUESS_CLAMP_SEC
        now = self.clock()
        room.remaining = clamp
        room.round_deadline_ms = now + clamp * 1000
        room.clamped = True
        room.timers.schedule(timers.ROUND, now, 1000, lambda: self._round_tick(room), repeat_ms=1000)
        self._emit_room(room, events.GAME_TICK, {"time": room.remaining})
        while room.hint_checkpoints and room.hint_checkpoints[0] > clamp:
            room.hint_checkpoints.pop(0)
            self._reveal_hint(room)
        self._schedule_next_hint(room)

    def _flush_strokes(self, room: Room) -> None:
        if room.state is not RoomState.DRAWING:
            room.timers.cancel(timers.STROKES)
            return
        batch = room.strokes.take_batch()
        if batch:
            self._emit_room(room, events.DRAW_BATCH, {"commands": [c.to_dict() for c in batch]}, skip_sid=room.drawer_id)

    def _all_guessed(self, room: Room) -> bool:
        guessers = room.guessers()
        return bool(guessers) and all(p.guessed for p in guessers)

    def _end_round(self, room: Room, reason: EndReason) -> None:
        if room.state is not RoomState.DRAWING:
            return
        self._cancel_phase_timers(room)
        if room.strokes.has_pending():
            self._flush_strokes(room)
        deltas = room.round_scores.commit(room.players)
        word = room.word
        room.state = RoomState.ROUND_END
        room.drawer_id = None
        room.remaining = 0
        room.phase_data = {
            "word": word,
            "reason": reason.value,
            "scores": [{"id": p.id, "score": p.score, "delta": deltas.get(p.id, 0)} for p in room.players],
        }
        logger.info("round ended room=%s round=%d reason=%s", room.id, room.current_round, reason.value)
        self._broadcast_state(room)

        if room.current_round >= room.settings.total_rounds:
            self._end_game(room)
        else:
            self._countdown(room, timers.PHASE, self.config.ROUND_END_SEC, lambda: self._start_round(room))

    def _finish_early(self, room: Room) -> None:
        """Not enough players to go on: commit what was earned and show the rankings."""
        if room.state is RoomState.DRAWING:
            room.round_scores.commit(room.players)
        self._end_game(room)

    def _end_game(self, room: Room) -> None:
        self._cancel_phase_timers(room)
        room.state = RoomState.GAME_END
        room.drawer_id = None
        room.word = ""
        room.word_choices = []
        room.revealed.clear()
        room.round_scores.reset()
        room.prize_pool_frozen = True

        ranked = rank(room.players)
        amounts = distribute(room.prize_pool, [(place, p.id) for place, p in ranked])
        room.rewards = RewardLedger(room.id, room.prize_pool, amounts) if room.prize_pool > 0 else None
        rankings = [
            {"id": p.id, "name": p.name, "score": p.score, "rank": place, "reward": amounts.get(p.id, 0.0)}
            for place, p in ranked
        ]
        room.phase_data = {"rankings": rankings, "prizePool": room.prize_pool}
        room.remaining = self.config.GAME_END_SEC
        logger.info("game ended room=%s pool=%s", room.id, room.prize_pool)

        self._broadcast_state(room)
        self._emit_room(room, events.GAME_RANKINGS, {"rankings": rankings, "prizePool": room.prize_pool})
        if room.is_public:
            self._publish_leaderboard(room, rankings)
        self._countdown(room, timers.COUNTDOWN, self.config.GAME_END_SEC, lambda: self._after_game(room))

    def _publish_leaderboard(self, room: Room, rankings: list[dict]) -> None:
        result = {
            "room_id": room.id,
            "players": [{"id": r["id"], "name": r["name"], "score": r["score"], "delta": r["score"]} for r in rankings],
        }
        try:
            self.leaderboard(result)
        except Exception:
            logger.exception("leaderboard sink failed room=%s", room.id)

    def _after_game(self, room: Room) -> None:
        if room.state is not RoomState.GAME_END:
            return
        if room.kind is RoomKind.PRIVATE:
            self._reset_to_lobby(room)
            self._broadcast_state(room)

    def _reset_to_lobby(self, room: Room) -> None:
        self._cancel_phase_timers(room)
        room.state = RoomState.LOBBY
        room.current_round = 0
        room.drawer_id = None
        room.word = ""
        room.word_choices = []
        room.revealed.clear()
        room.hint_checkpoints = []
        room.strokes.clear()
        room.round_scores.reset()
        room.remaining = 0
        room.phase_data = {}
        for p in room.players:
            p.score = 0
            p.guessed = False
        if room.prize_pool_frozen:
            room.prize_pool = 0.0
            room.prize_pool_frozen = False
        logger.info("room reset to lobby room=%s", room.id)

    # ---- player actions ----

    def update_settings(self, sid: str, key: str, value: Any) -> bool:
        room = self.registry.room_of(sid)
        if room is None:
            return False
        with room.lock:
            if room.kind is not RoomKind.PRIVATE or room.owner_id != sid or room.state is not RoomState.LOBBY:
                return False
            updated = apply_setting(room.settings, key, value)
            if updated is None:
                return False
            if updated.max_slots < len(room.players):
                return False
            if not self.words.has_language(updated.language):
                return False
            room.settings = updated
            self._emit_room(
                room,
                events.SETTINGS_CHANGED,
                {"key": key, "value": updated.to_dict()[key], "settings": updated.to_dict()},
            )
            return True

    def update_profile(self, sid: str, name: Any = None, avatar: Any = None) -> bool:
        room = self.registry.room_of(sid)
        if room is None:
            return False
        with room.lock:
            player = room.player(sid)
            if player is None:
                return False
            if name is not None:
                clean = clean_name(name)
                if clean is None:
                    return False
                player.name = clean
            if avatar is not None:
                player.avatar = clean_avatar(avatar)
            self._emit_room(room, events.PLAYER_PROFILE, {"id": sid, "name": player.name, "avatar": player.avatar})
            return True

    def append_strokes(self, sid: str, commands: Any) -> int:
        room = self.registry.room_of(sid)
        if room is None or not isinstance(commands, list):
            return 0
        with room.lock:
            if room.state is not RoomState.DRAWING or room.drawer_id != sid:
                return 0
            accepted = 0
            for raw in commands[:MAX_COMMANDS_PER_MESSAGE]:
                if room.strokes.append(raw):
                    accepted += 1
            return accepted

    def undo(self, sid: str) -> bool:
        room = self.registry.room_of(sid)
        if room is None:
            return False
        with room.lock:
            if room.state is not RoomState.DRAWING or room.drawer_id != sid:
                return False
            length = room.strokes.undo()
            if length is None:
                self._emit_room(room, events.DRAW_CLEAR, {})
            else:
                self._emit_room(room, events.DRAW_UNDO, {"length": length})
            return True

    def clear_canvas(self, sid: str) -> bool:
        room = self.registry.room_of(sid)
        if room is None:
            return False
        with room.lock:
            if room.state is not RoomState.DRAWING or room.drawer_id != sid:
                return False
            room.strokes.clear()
            self._emit_room(room, events.DRAW_CLEAR, {})
            return True

    def _spam_ok(self, room: Room, player: Player) -> bool:
        guard = room.spam.setdefault(player.id, SpamGuard())
        verdict = guard.check(self.clock())
        if verdict.action is SpamAction.OK:
            return True
        if verdict.action is SpamAction.WARN:
            self._emit_to(player.id, events.CHAT_SPAM, {"warnings": verdict.warnings})
            return False
        logger.info("spam kick room=%s sid=%s", room.id, player.id)
        self._kick(room, player, LeaveReason.SPAM)
        return False

    def _relay_chat(self, room: Room, player: Player, text: str) -> None:
        message = {"from": player.id, "text": text}
        if room.state is RoomState.DRAWING and (player.id == room.drawer_id or player.guessed):
            for p in self._insiders(room):
                self._emit_to(p.id, events.CHAT_MESSAGE, message)
            return
        self._emit_room(room, events.CHAT_MESSAGE, message)

    def guess(self, sid: str, text: Any) -> Verdict | None:
        room = self.registry.room_of(sid)
        if room is None:
            return None
        text = str(text or "").strip()[:MAX_CHAT_LENGTH]
        if not text:
            return None
        with room.lock:
            player = room.player(sid)
            if player is None or not self._spam_ok(room, player):
                return None
            if room.state is not RoomState.DRAWING or sid == room.drawer_id or player.guessed:
                self._relay_chat(room, player, text)
                return None

            verdict = evaluate(text, room.word)
            if verdict is Verdict.EXACT:
                self._correct_guess(room, player)
            elif verdict is Verdict.CLOSE:
                self._emit_to(sid, events.GUESS_CLOSE, {"text": text})
            else:
                self._emit_room(room, events.CHAT_MESSAGE, {"from": sid, "text": text})
            return verdict

    def chat(self, sid: str, text: Any) -> bool:
        """Chat doubles as the guess box while a round is being drawn."""
        room = self.registry.room_of(sid)
        if room is None:
            return False
        if not room.has_player(sid):
            return False
        self.guess(sid, text)
        return True

    def _correct_guess(self, room: Room, player: Player) -> None:
        room.guess_count += 1
        position = room.guess_count
        points = score(room.remaining, room.settings.draw_time, len(normalize(room.word)), position)
        player.guessed = True
        room.round_scores.add(player.id, points)
        if room.drawer_id is not None and room.has_player(room.drawer_id):
            room.round_scores.add(room.drawer_id, drawer_share(points, position))
        logger.info("correct guess room=%s sid=%s position=%d points=%d", room.id, player.id, position, points)

        for p in room.players:
            payload = {"id": player.id, "score": player.score, "position": position}
            if p.id == room.drawer_id or p.guessed:
                payload["word"] = room.word
            if p.id == player.id:
                payload["points"] = points
            self._emit_to(p.id, events.GUESS_CORRECT, payload)

        if self._all_guessed(room):
            self._end_round(room, EndReason.ALL_GUESSED)
            return
        if position == 1 and room.remaining > self.config.FIRST_GUESS_CLAMP_SEC and len(room.players) >= 3:
            self._clamp_timer(room)

    def rate(self, sid: str, vote: Any) -> bool:
        room = self.registry.room_of(sid)
        if room is None:
            return False
        with room.lock:
            if room.state is not RoomState.DRAWING or sid == room.drawer_id or not room.has_player(sid):
                return False
            if sid in room.ratings:
                return False
            room.ratings[sid] = bool(vote)
            self._emit_room(room, events.GAME_RATE, {"id": sid, "vote": bool(vote)})
            return True

    # ---- moderation ----

    def _kick(self, room: Room, target: Player, reason: LeaveReason) -> None:
        key = target.client_key
        if key:
            if reason is LeaveReason.BANNED:
                room.bans.add(key)
            else:
                room.cooldowns[key] = self.clock() + self.config.KICK_COOLDOWN_SEC * 1000
        self._emit_to(target.id, events.ROOM_KICKED, {"reason": reason.value})
        self._remove_player(room, target.id, reason)
        self.outbox.disconnect(target.id)

    def kick(self, sid: str, target_id: str, ban: bool = False) -> bool:
        room = self.registry.room_of(sid)
        if room is None:
            return False
        with room.lock:
            actor = room.player(sid)
            target = room.player(target_id)
            if actor is None or target is None or target_id == sid:
                return False
            allowed = actor.is_admin or (room.kind is RoomKind.PRIVATE and room.owner_id == sid)
            if not allowed or (target.is_admin and not actor.is_admin):
                return False
            logger.info("%s room=%s by=%s target=%s", "ban" if ban else "kick", room.id, sid, target_id)
            self._kick(room, target, LeaveReason.BANNED if ban else LeaveReason.KICKED)
            return True

    def votekick(self, sid: str, target_id: str) -> bool:
        room = self.registry.room_of(sid)
        if room is None:
            return False
        with room.lock:
            voter = room.player(sid)
            target = room.player(target_id)
            if voter is None or target is None:
                return False
            if target_id == sid or target_id == room.owner_id or target.is_admin:
                return False
            count = room.ballots.cast(sid, target_id, self.clock())
            if count is None:
                return False
            required = required_votes(len(room.players))
            self._emit_room(
                room,
                events.VOTE_PROGRESS,
                {"voterId": sid, "targetId": target_id, "count": count, "required": required},
            )
            self._system_chat(room, f"{voter.name} is voting to kick {target.name} ({count}/{required})")
            if count >= required:
                room.ballots.forget(target_id)
                self._kick(room, target, LeaveReason.VOTEKICK)
            if not room.closed:
                self._schedule_ballot_expiry(room)
            return True

    def _schedule_ballot_expiry(self, room: Room) -> None:
        due = room.ballots.next_expiry()
        if due is None:
            room.timers.cancel(timers.BALLOTS)
            return
        now = self.clock()

        def expire() -> None:
            room.ballots.prune(self.clock())
            self._schedule_ballot_expiry(room)

        room.timers.schedule(timers.BALLOTS, now, due - now, expire)

    def mute(self, sid: str, target_id: str) -> bool:
        room = self.registry.room_of(sid)
        if room is None:
            return False
        with room.lock:
            return room.has_player(sid) and room.has_player(target_id) and sid != target_id

    def report(self, sid: str, target_id: str, reasons: Any = 0) -> bool:
        room = self.registry.room_of(sid)
        if room is None:
            return False
        with room.lock:
            if not room.has_player(sid) or not room.has_player(target_id) or sid == target_id:
                return False
            logger.info("report room=%s by=%s target=%s reasons=%s", room.id, sid, target_id, reasons)
            return True

    # ---- rewards ----

    def claim_reward(self, sid: str, address: str | None = None) -> Reward:
        try:
            room = self.registry.room_of(sid)
            if room is None:
                raise ClaimError(ClaimError.NO_REWARD)
            with room.lock:
                player = room.player(sid)
                ledger = room.rewards
                if player is None or ledger is None:
                    raise ClaimError(ClaimError.NO_REWARD)
                address = address or player.payout_address
                ledger.begin_claim(sid, address)
            reward = execute_claim(ledger, self.payouts, sid, address)
        except ClaimError as exc:
            self._emit_to(sid, events.REWARD_ERROR, exc.to_dict())
            raise
        self._emit_to(sid, events.REWARD_CLAIMED, {"amount": reward.amount, "txRef": reward.tx_ref})
        return reward

    def buyback(self, sid: str) -> float:
        try:
            room = self.registry.room_of(sid)
            if room is None:
                raise ClaimError(ClaimError.NO_REWARD)
            with room.lock:
                if room.rewards is None or not room.has_player(sid):
                    raise ClaimError(ClaimError.NO_REWARD)
                amount = room.rewards.buyback(sid)
                if room.is_public:
                    self.registry.add_carryover(room.settings.language, amount)
                else:
                    room.carryover += amount
        except ClaimError as exc:
            self._emit_to(sid, events.REWARD_ERROR, exc.to_dict())
            raise
        logger.info("buyback room=%s sid=%s amount=%s", room.id, sid, amount)
        self._emit_to(sid, events.REWARD_CLAIMED, {"amount": amount, "txRef": None, "buyback": True})
        return amount

    def set_prize_pool(self, room_id: str, amount: float) -> bool:
        room = self.registry.get(room_id)
        if room is None or amount < 0:
            return False
        with room.lock:
            if room.prize_pool_frozen:
                return False
            room.prize_pool = float(amount)
            return True

    # ---- timers ----

    def tick(self, room_id: str) -> int:
        """Fire every timer of the room that is due; returns how many fired."""
        room = self.registry.get(room_id)
        if room is None:
            return 0
        fired = 0
        with room.lock:
            now = self.clock()
            while not room.closed:
                timer = room.timers.pop_due(now)
                if timer is None:
                    break
                fired += 1
                try:
                    timer.callback()
                except Exception:
                    logger.exception("timer %s failed room=%s", timer.category, room.id)
        return fired
