from __future__ import annotations

import os
import sys
from pathlib import Path

from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.registry import RoomRegistry
from .game.service import GameService
from .realtime.events import SocketIOOutbox
from .realtime.handlers import register_socketio_handlers
from .routes.admin import bp as admin_bp
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp
from .routes.words import bp as words_bp


def _async_mode(testing: bool) -> str:
    env_async_mode = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()
    if env_async_mode:
        return env_async_mode
    # Default choice:
    # - tests and Windows: threading
    # - Python >= 3.13: threading (safer default)
    # - Otherwise: eventlet
    if testing or sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def create_app(config_class: type = Config, service: GameService | None = None) -> tuple[Flask, SocketIO]:
    dist_dir = Path(__file__).resolve().parents[2] / "frontend" / "dist"

    static_folder = str(dist_dir) if dist_dir.exists() else None
    static_url_path = "/" if dist_dir.exists() else None

    app = Flask(
        __name__,
        static_folder=static_folder,
        static_url_path=static_url_path,
    )
    app.config.from_object(config_class)

    if app.config.get("TRUST_PROXY_HEADERS", False) and not app.config.get("TESTING", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=_async_mode(app.config.get("TESTING", False)),
    )

    if service is None:
        registry = RoomRegistry(
            canvas_width=app.config["CANVAS_WIDTH"],
            canvas_height=app.config["CANVAS_HEIGHT"],
            public_prize_pool=app.config["PUBLIC_PRIZE_POOL"],
        )
        service = GameService(registry, config=config_class)
    service.outbox = SocketIOOutbox(socketio)
    app.extensions["inkguess"] = service

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")
    app.register_blueprint(words_bp, url_prefix="/api")
    app.register_blueprint(admin_bp, url_prefix="/api")

    register_socketio_handlers(socketio, service, app.config)
    app.logger.info("inkguess app created (async_mode=%s)", socketio.async_mode)

    if dist_dir.exists():
        @app.get("/")
        def index():
            return send_from_directory(dist_dir, "index.html")

        @app.get("/<path:path>")
        def static_proxy(path: str):
            file_path = dist_dir / path
            if file_path.exists() and file_path.is_file():
                return send_from_directory(dist_dir, path)
            return send_from_directory(dist_dir, "index.html")

    return app, socketio
