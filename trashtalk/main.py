# trashtalk/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis
from redis.exceptions import RedisError

from trashtalk.content.loader import load_content
from trashtalk.domain.lifecycle.handlers import grace_expired_hook, room_expired_hook
from trashtalk.settings import Settings, get_settings
from trashtalk.store.room_repo import RoomRepo
from trashtalk.store.sessions import SessionRegistry
from trashtalk.store.snapshot_repo import RedisSnapshotRepo
from trashtalk.transport.admin import router as admin_router
from trashtalk.transport.packs import router as packs_router
from trashtalk.transport.ratelimit import RateLimiter
from trashtalk.transport.ws import router as ws_router
from trashtalk.transport.ws_manager import WSManager

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    allowed_origins = [o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()]
    if "null" not in allowed_origins:
        allowed_origins.append("null")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def _startup() -> None:
        app.state.content = load_content(settings.CONTENT_DIR or None)
        app.state.sessions = SessionRegistry()
        app.state.wsman = WSManager()
        app.state.ratelimiter = RateLimiter(
            window_ms=settings.RATE_LIMIT_WINDOW_MS,
            max_requests=settings.RATE_LIMIT_MAX,
        )

        app.state.redis = None
        snapshots = None
        if settings.SNAPSHOT_ENABLED:
            r = Redis.from_url(settings.REDIS_URL, decode_responses=False)
            app.state.redis = r
            snapshots = RedisSnapshotRepo(r, room_ttl_sec=settings.GAME_EXPIRATION_SEC)

        repo = RoomRepo(
            snapshots=snapshots,
            expiration_sec=settings.GAME_EXPIRATION_SEC,
            grace_sec=settings.RECONNECT_GRACE_SEC,
            on_room_expired=room_expired_hook(app),
            on_grace_expired=grace_expired_hook(app),
            deliver=app.state.wsman.deliver,
        )
        app.state.repo = repo
        await repo.load()

        async def _purge_rate_limits() -> None:
            app.state.ratelimiter.purge_stale(settings.RATE_LIMIT_CLEANUP_SEC)

        repo.start(
            persist_interval_sec=settings.PERSIST_INTERVAL_SEC,
            cleanup_interval_sec=settings.CLEANUP_INTERVAL_SEC,
        )
        repo.schedule_every("ratelimit", settings.RATE_LIMIT_CLEANUP_SEC, _purge_rate_limits)

        logger.info(
            "%s ready | %d packs | snapshots %s",
            settings.APP_NAME, len(app.state.content.packs), "on" if snapshots else "off",
        )

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await app.state.repo.shutdown()
        r = app.state.redis
        if r is not None:
            await r.close()

    @app.get("/health")
    async def health():
        repo = app.state.repo
        out = {"ok": True, "rooms": len(repo.list_all())}
        r = app.state.redis
        if r is not None:
            try:
                out["redis"] = str(await r.ping())
            except (RedisError, OSError) as e:
                out["redis"] = f"unavailable: {e}"
        return out

    app.include_router(ws_router)
    app.include_router(packs_router)
    app.include_router(admin_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    s = get_settings()
    uvicorn.run("trashtalk.main:app", host=s.HOST, port=s.PORT, log_level=s.LOG_LEVEL.lower())
