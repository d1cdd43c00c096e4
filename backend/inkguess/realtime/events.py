from __future__ import annotations

from typing import Any

from flask_socketio import SocketIO

from ..game.events import Outbox

NAMESPACE = "/"


class SocketIOOutbox(Outbox):
    """Delivers game events through a Flask-SocketIO server.

    Uses the server-level API so it works both inside handlers and from the
    background room runners, where there is no request context.
    """

    def __init__(self, socketio: SocketIO) -> None:
        self.socketio = socketio

    def emit(self, event: str, payload: Any = None, to: str | None = None, skip_sid: str | None = None) -> None:
        self.socketio.emit(event, payload, to=to, skip_sid=skip_sid, namespace=NAMESPACE)

    def enter(self, sid: str, room_id: str) -> None:
        self.socketio.server.enter_room(sid, room_id, namespace=NAMESPACE)

    def leave(self, sid: str, room_id: str) -> None:
        self.socketio.server.leave_room(sid, room_id, namespace=NAMESPACE)

    def disconnect(self, sid: str) -> None:
        self.socketio.server.disconnect(sid, namespace=NAMESPACE)
