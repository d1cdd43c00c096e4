import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")
    TESTING = False

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Admin API / in-game admin flag
    ADMIN_TOKEN = os.environ.get("ADMIN_TOKEN", "")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Game phases (seconds)
    ROUND_START_SEC = int(os.environ.get("ROUND_START_SEC", "3"))
    WORD_CHOICE_SEC = int(os.environ.get("WORD_CHOICE_SEC", "15"))
    ROUND_END_SEC = int(os.environ.get("ROUND_END_SEC", "3"))
    GAME_END_SEC = int(os.environ.get("GAME_END_SEC", "7"))
    FIRST_GUESS_CLAMP_SEC = int(os.environ.get("FIRST_GUESS_CLAMP_SEC", "32"))

    # Room timer runner poll interval
    TICK_INTERVAL_SEC = float(os.environ.get("TICK_INTERVAL_SEC", "0.05"))

    # Drawing
    STROKE_FLUSH_MS = int(os.environ.get("STROKE_FLUSH_MS", "50"))
    CANVAS_WIDTH = int(os.environ.get("CANVAS_WIDTH", "800"))
    CANVAS_HEIGHT = int(os.environ.get("CANVAS_HEIGHT", "600"))

    # Moderation
    KICK_COOLDOWN_SEC = int(os.environ.get("KICK_COOLDOWN_SEC", "60"))
    MIN_CUSTOM_WORDS = int(os.environ.get("MIN_CUSTOM_WORDS", "10"))

    # Rewards
    PUBLIC_PRIZE_POOL = float(os.environ.get("PUBLIC_PRIZE_POOL", "0"))

    # Dev server (backend/app.py)
    HOST = os.environ.get("HOST", "0.0.0.0")
    PORT = int(os.environ.get("PORT", "5000"))
    SERVER_DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"
    ALLOW_UNSAFE_WERKZEUG = os.environ.get("ALLOW_UNSAFE_WERKZEUG", "1") == "1"
    USE_RELOADER = os.environ.get("FLASK_USE_RELOADER", "0") == "1"
