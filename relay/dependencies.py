import uuid
from fastapi import Request
from relay.core.config import Settings
from relay.core.logging import request_id_var
from relay.infra.registry import Registry


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> Registry:
    return request.app.state.registry


async def get_participant_id(request: Request) -> str:
    """Opaque per-connection id: the caller's request id header, else a fresh one."""
    header = request.app.state.settings.REQUEST_ID_HEADER
    rid = request.headers.get(header) or uuid.uuid4().hex
    request_id_var.set(rid)
    return rid
