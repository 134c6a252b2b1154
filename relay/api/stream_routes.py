from __future__ import annotations
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from relay.core.config import Settings
from relay.core.session import StreamSession
from relay.dependencies import get_participant_id, get_registry, get_settings
from relay.infra.registry import Registry, RegistryFull
from relay.infra.sse import EventStreamResponse

router = APIRouter()
logger = logging.getLogger("api.stream")


@router.get("/sse")
async def open_stream(
    request: Request,
    participant_id: str = Depends(get_participant_id),
    registry: Registry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
):
    session = StreamSession(
        registry,
        participant_id,
        keepalive_interval=settings.KEEPALIVE_INTERVAL_SECONDS,
        is_disconnected=request.is_disconnected,
    )
    # registered before any byte is sent, so a full registry is still a 503
    try:
        session.open()
    except RegistryFull as e:
        logger.warning("rejecting stream: %s", e, extra={"event": "registry_full"})
        raise HTTPException(status_code=503, detail="Too many open streams")
    return EventStreamResponse(
        session.frames(),
        headers={settings.REQUEST_ID_HEADER: participant_id},
        on_close=session.release,
    )
