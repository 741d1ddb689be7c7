from __future__ import annotations

import asyncio
import contextlib
import logging

import uvicorn
from fastapi import FastAPI

from twentyq.api.deps import get_engine
from twentyq.api.routes import router
from twentyq.config import Settings, load_settings

settings = load_settings()

app = FastAPI(title="twentyq", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


async def sweep_finished_sessions(settings: Settings) -> None:
    """Periodically evict sessions that have been finished for longer than the TTL."""

    while True:
        await asyncio.sleep(settings.sweep_interval_sec)
        try:
            evicted = get_engine().evict_finished(ttl_sec=settings.finished_ttl_sec)
        except Exception:
            logger.exception("finished-session sweep failed")
            continue
        if evicted:
            logger.info("evicted %d finished session(s): %s", len(evicted), ", ".join(evicted))


@app.on_event("startup")
async def _startup() -> None:
    app.state.sweeper = None
    if settings.sweep_interval_sec > 0:
        app.state.sweeper = asyncio.create_task(sweep_finished_sessions(settings))


@app.on_event("shutdown")
async def _shutdown() -> None:
    task = getattr(app.state, "sweeper", None)
    if task is None:
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "twentyq", "version": "0.1.0"}


def run() -> None:
    logger.info("listening on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
