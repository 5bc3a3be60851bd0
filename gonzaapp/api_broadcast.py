# gonzaapp/api_broadcast.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from gonzaapp.api_transacciones import read_json
from gonzaapp.services.broadcast import BroadcastMessage, broadcaster

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Broadcast"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/api/broadcast")
async def broadcast_stream(request: Request):
    label = request.headers.get("user-agent") or "unknown"
    return StreamingResponse(broadcaster.subscribe(label), media_type="text/event-stream",
                             headers=SSE_HEADERS)


@router.post("/api/broadcast")
async def broadcast_publish(request: Request):
    payload = await read_json(request)
    try:
        message = BroadcastMessage.model_validate(payload)
    except ValidationError:
        return JSONResponse({"success": False, "error": "Invalid message format"}, status_code=400)
    broadcaster.publish(message)
    return {"success": True, "clientCount": broadcaster.client_count}
