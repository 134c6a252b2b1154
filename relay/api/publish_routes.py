from __future__ import annotations
from typing import Optional
from fastapi import APIRouter, Depends, Form, Response
from relay.core.messages import Message
from relay.dependencies import get_participant_id, get_registry
from relay.infra.registry import Registry

router = APIRouter()


@router.post("/send")
async def send(
    content: str = Form(...),
    name: Optional[str] = Form(default=None),
    participant_id: str = Depends(get_participant_id),
    registry: Registry = Depends(get_registry),
):
    # No escaping or length checks: content is relayed as the caller sent it
    await registry.broadcast(Message(sender=name or participant_id, content=content))
    return Response(status_code=200)
