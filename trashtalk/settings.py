from __future__ import annotations

from pydantic import BaseModel
import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y", "on")


class Settings(BaseModel):
    APP_NAME: str = "trashtalk-server"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Dev
    LOG_LEVEL: str = "INFO"

    # Snapshot persistence (Redis)
    REDIS_URL: str = "redis://localhost:6379/0"
    SNAPSHOT_ENABLED: bool = True
    PERSIST_INTERVAL_SEC: int = 30

    # Room lifetime
    GAME_EXPIRATION_SEC: int = 2 * 60 * 60
    CLEANUP_INTERVAL_SEC: int = 5 * 60
    RECONNECT_GRACE_SEC: int = 60

    # Per-connection throttle
    RATE_LIMIT_WINDOW_MS: int = 1000
    RATE_LIMIT_MAX: int = 10
    RATE_LIMIT_CLEANUP_SEC: int = 60

    # Judge may only pick once every submission has been shown
    PICK_REQUIRES_FULL_REVEAL: bool = True

    # Card packs / rules / round schedule; empty = bundled content
    CONTENT_DIR: str = ""

    # WebSocket origin policy (comma-separated)
    WS_ALLOWED_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000,null"
    # Dev helper: allow any private LAN IP on port 5173
    WS_ALLOW_LAN_ORIGINS: bool = True


def get_settings() -> Settings:
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "trashtalk-server"),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "3000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),

        REDIS_URL=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        SNAPSHOT_ENABLED=_flag("SNAPSHOT_ENABLED", "true"),
        PERSIST_INTERVAL_SEC=int(os.getenv("PERSIST_INTERVAL_SEC", "30")),

        GAME_EXPIRATION_SEC=int(os.getenv("GAME_EXPIRATION_SEC", "7200")),
        CLEANUP_INTERVAL_SEC=int(os.getenv("CLEANUP_INTERVAL_SEC", "300")),
        RECONNECT_GRACE_SEC=int(os.getenv("RECONNECT_GRACE_SEC", "60")),

        RATE_LIMIT_WINDOW_MS=int(os.getenv("RATE_LIMIT_WINDOW_MS", "1000")),
        RATE_LIMIT_MAX=int(os.getenv("RATE_LIMIT_MAX", "10")),
        RATE_LIMIT_CLEANUP_SEC=int(os.getenv("RATE_LIMIT_CLEANUP_SEC", "60")),

        PICK_REQUIRES_FULL_REVEAL=_flag("PICK_REQUIRES_FULL_REVEAL", "true"),

        CONTENT_DIR=os.getenv("CONTENT_DIR", ""),

        WS_ALLOWED_ORIGINS=os.getenv(
            "WS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,null",
        ),
        WS_ALLOW_LAN_ORIGINS=_flag("WS_ALLOW_LAN_ORIGINS", "true"),
    )
