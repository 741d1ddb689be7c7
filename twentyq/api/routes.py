from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse
from pydantic import ValidationError

from twentyq.api.deps import get_engine
from twentyq.api.models import describe_validation_error, parse_client_message
from twentyq.engine import ConnectionClosed, SessionEngine
from twentyq.projection import error_message
from twentyq.websocket_hub import hub

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parents[1] / "static"

EMPTY_FRAME = "Invalid message: empty frame."
NOT_UTF8 = "Invalid message: frame is not valid UTF-8."

router = APIRouter()


async def _receive_frame(websocket: WebSocket) -> str | bytes | None:
    """Next text or binary frame; both carry the same JSON messages."""

    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    if message.get("text") is not None:
        return message["text"]
    return message.get("bytes") or None


async def _connection_closed(connection_id: str, engine: SessionEngine) -> None:
    # Mark unreachable first so the leaver is never addressed by its own close event.
    hub.disconnect(connection_id)
    result = engine.dispatch(connection_id, ConnectionClosed())
    await hub.deliver(result.deliveries)


@router.websocket("/")
async def game_ws(websocket: WebSocket, engine: SessionEngine = Depends(get_engine)) -> None:
    connection_id = await hub.connect(websocket)

    try:
        while True:
            raw = await _receive_frame(websocket)
            if raw is None:
                await hub.send(connection_id, error_message(EMPTY_FRAME))
                continue
            try:
                event = parse_client_message(raw)
            except UnicodeDecodeError:
                await hub.send(connection_id, error_message(NOT_UTF8))
                continue
            except ValidationError as e:
                await hub.send(connection_id, error_message(describe_validation_error(e)))
                continue

            result = engine.dispatch(connection_id, event)
            await hub.deliver(result.deliveries)
    except WebSocketDisconnect:
        await _connection_closed(connection_id, engine)
    except Exception:
        logger.exception("game socket %s failed", connection_id)
        await _connection_closed(connection_id, engine)
        raise


@router.get("/")
async def index() -> FileResponse:
    return FileResponse(STATIC_DIR / "index.html", media_type="text/html")


@router.get("/healthcheck")
async def healthcheck(engine: SessionEngine = Depends(get_engine)) -> dict[str, object]:
    return {"status": "ok", "sessions": len(engine.registry), "connections": len(hub)}
