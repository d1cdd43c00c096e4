from __future__ import annotations

import functools
import logging
from threading import Lock
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, emit

from ..game import events
from ..game.errors import ClaimError, JoinError
from ..game.service import GameService
from ..utils.ip import get_client_ip


logger = logging.getLogger(__name__)


def _target(payload: dict) -> str:
    return str(payload.get("targetId", "")).strip()


def register_socketio_handlers(socketio: SocketIO, service: GameService, config: dict) -> None:
    testing = bool(config.get("TESTING", False))
    interval = float(config.get("TICK_INTERVAL_SEC", 0.05))
    admin_token = config.get("ADMIN_TOKEN", "")
    trust_proxy = bool(config.get("TRUST_PROXY_HEADERS", False))

    room_tasks: set[str] = set()
    room_tasks_lock = Lock()

    def _ensure_room_task(room_id: str) -> None:
        if testing:
            return
        with room_tasks_lock:
            if room_id in room_tasks:
                return
            room_tasks.add(room_id)

        def _runner() -> None:
            try:
                while True:
                    room = service.registry.get(room_id)
                    if room is None or room.closed:
                        break
                    service.tick(room_id)
                    socketio.sleep(interval)
            finally:
                with room_tasks_lock:
                    room_tasks.discard(room_id)
                logger.debug("room runner stopped room=%s", room_id)

        socketio.start_background_task(_runner)

    def on(event: str) -> Callable:
        """Register a handler that receives ``data or {}`` and never leaks an exception."""

        def decorator(fn: Callable[[dict], Any]) -> Callable:
            @functools.wraps(fn)
            def handler(data=None):
                payload = data if isinstance(data, dict) else {}
                try:
                    return fn(payload)
                except Exception:
                    logger.exception("socket handler %s failed sid=%s", event, request.sid)
                    return {"ok": False, "error": "internal_error"}

            socketio.on(event)(handler)
            return handler

        return decorator

    def _not_in_room() -> dict:
        return {"ok": False, "error": "not_in_room"}

    def _result(ok: bool, error: str = "not_allowed") -> dict:
        return {"ok": True} if ok else {"ok": False, "error": error}

    @on("room:join")
    def room_join(payload):
        target = str(payload.get("roomId") or payload.get("code") or "").strip() or None
        player_key = str(payload.get("playerKey", "")).strip()
        client_key = player_key or get_client_ip(request, trust_proxy=trust_proxy) or ""
        token = str(payload.get("adminToken", "") or "")
        language = payload.get("language", 0)
        if isinstance(language, bool) or not isinstance(language, int):
            language = 0

        try:
            room = service.join(
                request.sid,
                payload.get("name", ""),
                avatar=payload.get("avatar"),
                target=target,
                create=bool(payload.get("create", False)),
                language=language,
                payout_address=payload.get("payoutAddress") or None,
                client_key=client_key,
                is_admin=bool(admin_token) and token == admin_token,
            )
        except JoinError as exc:
            emit(events.ROOM_ERROR, exc.to_dict())
            return {"ok": False, "error": exc.code}

        _ensure_room_task(room.id)
        return {"ok": True, "roomId": room.id, "inviteCode": room.invite_code}

    @on("room:leave")
    def room_leave(payload):
        return _result(service.leave(request.sid), "not_in_room")

    @socketio.on("disconnect")
    def on_disconnect(*args):
        try:
            service.leave(request.sid)
        except Exception:
            logger.exception("disconnect cleanup failed sid=%s", request.sid)

    @on("room:settings")
    def room_settings(payload):
        key = str(payload.get("key", ""))
        return _result(service.update_settings(request.sid, key, payload.get("value")), "invalid_setting")

    @on("profile:update")
    def profile_update(payload):
        if service.registry.room_of(request.sid) is None:
            return _not_in_room()
        ok = service.update_profile(request.sid, name=payload.get("name"), avatar=payload.get("avatar"))
        if not ok:
            emit(events.ROOM_ERROR, {"error": "invalid_payload"})
        return _result(ok, "invalid_payload")

    @on("room:kick")
    def room_kick(payload):
        return _result(service.kick(request.sid, _target(payload)))

    @on("room:ban")
    def room_ban(payload):
        return _result(service.kick(request.sid, _target(payload), ban=True))

    @on("room:votekick")
    def room_votekick(payload):
        return _result(service.votekick(request.sid, _target(payload)))

    @on("room:mute")
    def room_mute(payload):
        return _result(service.mute(request.sid, _target(payload)))

    @on("room:report")
    def room_report(payload):
        return _result(service.report(request.sid, _target(payload), payload.get("reasons", 0)))

    @on("game:start")
    def game_start(payload):
        if service.registry.room_of(request.sid) is None:
            return _not_in_room()
        return _result(service.start_game(request.sid, payload.get("customWords")))

    @on("game:choose_word")
    def game_choose_word(payload):
        choice = payload.get("index")
        if choice is None:
            choice = payload.get("indices")
        ok = service.choose_word(request.sid, choice)
        if not ok:
            emit(events.GAME_ERROR, {"error": "choose_not_allowed"})
        return _result(ok, "choose_not_allowed")

    @on("game:rate")
    def game_rate(payload):
        return _result(service.rate(request.sid, payload.get("vote")))

    @on("draw:append")
    def draw_append(payload):
        accepted = service.append_strokes(request.sid, payload.get("commands"))
        return {"ok": accepted > 0, "accepted": accepted}

    @on("draw:undo")
    def draw_undo(payload):
        return _result(service.undo(request.sid))

    @on("draw:clear")
    def draw_clear(payload):
        return _result(service.clear_canvas(request.sid))

    @on("guess:submit")
    def guess_submit(payload):
        verdict = service.guess(request.sid, payload.get("text", ""))
        return {"ok": True, "verdict": verdict.value if verdict else None}

    @on("chat:message")
    def chat_message(payload):
        return _result(service.chat(request.sid, payload.get("text", "")), "not_in_room")

    @on("reward:claim")
    def reward_claim(payload):
        try:
            reward = service.claim_reward(request.sid, payload.get("address") or None)
        except ClaimError as exc:
            return {"ok": False, "error": exc.code}
        return {"ok": True, "amount": reward.amount, "txRef": reward.tx_ref}

    @on("reward:buyback")
    def reward_buyback(payload):
        try:
            amount = service.buyback(request.sid)
        except ClaimError as exc:
            return {"ok": False, "error": exc.code}
        return {"ok": True, "amount": amount}
