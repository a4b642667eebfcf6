# arena/config.py
import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///arena.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # memory:// for a single dev process; redis://host:6379/0 when workers share rooms
    KV_URL = os.environ.get("REDIS_URL") or os.environ.get("KV_URL", "memory://")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    RATELIMIT_DEFAULT = "600 per hour; 120 per minute"
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_ENABLED = True

    GAME24_HEARTBEAT_TIMEOUT = int(os.environ.get("GAME24_HEARTBEAT_TIMEOUT", "30"))  # seconds
    GAME24_SWEEP_INTERVAL = int(os.environ.get("GAME24_SWEEP_INTERVAL", "10"))        # seconds
    GAME24_MAX_PLAYERS = 4
    GAME24_MIN_PLAYERS = 2
    GAME24_SOLUTION_LIMIT = 5
