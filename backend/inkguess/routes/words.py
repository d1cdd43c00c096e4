from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..game.words import pick_words
from ._service import get_service

bp = Blueprint("words", __name__)

MAX_COUNT = 10


@bp.get("/words")
def get_words():
    service = get_service()
    try:
        count = int(request.args.get("count", "3"))
    except ValueError:
        count = 3
    count = max(1, min(count, MAX_COUNT))

    try:
        language = int(request.args.get("lang", "0"))
    except ValueError:
        language = 0
    if not service.words.has_language(language):
        return jsonify({"error": "unknown_language", "languages": service.words.languages()}), 404

    return jsonify({"language": language, "words": pick_words(service.words.words(language), count, rng=service.rng)})
