import logging
import os

from dotenv import load_dotenv

load_dotenv()
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())

try:
    from backend.inkguess.server import create_app
except ImportError:  # pragma: no cover
    from inkguess.server import create_app

app, socketio = create_app()
