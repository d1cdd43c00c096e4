import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv


def _wants_eventlet() -> bool:
    env_async_mode = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()
    return (
        not sys.platform.startswith("win")
        and sys.version_info < (3, 13)
        and env_async_mode in ("", "eventlet")
    )


def main() -> None:
    load_dotenv(Path(__file__).resolve().parents[1] / ".env")

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Must run before Flask and socketio are imported.
    if _wants_eventlet():
        import eventlet

        eventlet.monkey_patch()

    try:
        from backend.inkguess.server import create_app
    except ImportError:  # pragma: no cover
        from inkguess.server import create_app

    app, socketio = create_app()
    logging.getLogger(__name__).info("listening on %s:%s", app.config["HOST"], app.config["PORT"])

    socketio.run(
        app,
        host=app.config["HOST"],
        port=app.config["PORT"],
        debug=app.config["SERVER_DEBUG"],
        allow_unsafe_werkzeug=app.config["ALLOW_UNSAFE_WERKZEUG"],
        use_reloader=app.config["USE_RELOADER"],
    )


if __name__ == "__main__":
    main()
