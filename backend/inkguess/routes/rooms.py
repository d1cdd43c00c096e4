from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..game.registry import is_invite_code
from ._service import get_service

bp = Blueprint("rooms", __name__)


@bp.post("/play")
def play():
    """Resolve where a client should connect: an invite code, or a public lobby."""
    service = get_service()
    data = request.get_json(silent=True) or {}

    code = str(data.get("code", "")).strip()
    if code:
        if not is_invite_code(code):
            return jsonify({"error": "invalid_code"}), 400
        room = service.registry.lookup(code)
        if room is None or room.closed:
            return jsonify({"error": "room_not_found"}), 404
        return jsonify(service.public_state(room))

    try:
        language = int(data.get("language", 0))
    except (TypeError, ValueError):
        language = 0
    if not service.words.has_language(language):
        language = service.words.default_language

    room = service.registry.find_or_create_public_room(language)
    return jsonify(service.public_state(room))


@bp.get("/rooms")
def list_rooms():
    service = get_service()
    rooms = [service.public_state(r) for r in service.registry.open_public_rooms()]
    return jsonify({"rooms": rooms})


@bp.get("/rooms/<key>")
def get_room(key: str):
    service = get_service()
    room = service.registry.lookup(key)
    if not room:
        return jsonify({"error": "room_not_found"}), 404
    return jsonify(service.public_state(room))
