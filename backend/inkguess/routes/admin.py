from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ._service import get_service

bp = Blueprint("admin", __name__)


def _authorized() -> bool:
    token = current_app.config.get("ADMIN_TOKEN", "")
    if not token:
        return False
    return request.headers.get("X-Admin-Token", "") == token


@bp.get("/admin/rooms")
def admin_rooms():
    if not _authorized():
        return jsonify({"error": "unauthorized"}), 401

    service = get_service()
    payload = []
    for room in service.registry.list_rooms():
        state = service.public_state(room)
        with room.lock:
            state["playerIds"] = [p.id for p in room.players]
        payload.append(state)
    return jsonify({"rooms": payload})


@bp.post("/admin/rooms/<room_id>/prize-pool")
def admin_prize_pool(room_id: str):
    if not _authorized():
        return jsonify({"error": "unauthorized"}), 401

    service = get_service()
    room = service.registry.get(room_id)
    if not room:
        return jsonify({"error": "room_not_found"}), 404

    data = request.get_json(silent=True) or {}
    amount = data.get("amount")
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount < 0:
        return jsonify({"error": "invalid_amount"}), 400

    if not service.set_prize_pool(room_id, amount):
        return jsonify({"error": "prize_pool_frozen"}), 409

    current_app.logger.info("prize pool set room=%s amount=%s", room_id, amount)
    return jsonify({"ok": True, "room": service.public_state(room)})
