# vaultnote/api/messages.py

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from vaultnote.core.errors import InvalidInput
from vaultnote.core.message import LifecycleEngine
from vaultnote.core.outcomes import PeekResult, RequiresPassword, Revealed, WrongPassword
from vaultnote.core.rate_limit import consume_limit, create_limit, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages")

# Same text for absent, expired and already read
MESSAGE_UNAVAILABLE = "Message does not exist, has expired or was already read"


class CreateMessageSchema(BaseModel):
    content: str
    password: Optional[str] = None
    ttl_hours: Optional[int] = None


class ConsumeMessageSchema(BaseModel):
    password: Optional[str] = None


def _utc_iso(value: datetime) -> str:
    # Stored timestamps are naive UTC
    return value.replace(tzinfo=timezone.utc).isoformat()


def get_lifecycle(request: Request) -> LifecycleEngine:
    return request.app.state.lifecycle


@router.post("", status_code=201)
@limiter.limit(create_limit)
def create_message(
    request: Request,
    payload: CreateMessageSchema,
    engine: LifecycleEngine = Depends(get_lifecycle),
):
    try:
        created = engine.create(payload.content, payload.password, payload.ttl_hours)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))

    base_url = str(request.base_url).rstrip("/")
    return {
        "token": created.token,
        "url": f"{base_url}{router.prefix}/{created.token}",
        "created_at": _utc_iso(created.created_at),
        "expire_at": _utc_iso(created.expire_at),
    }


@router.get("/{token}")
def peek_message(token: str, engine: LifecycleEngine = Depends(get_lifecycle)):
    outcome = engine.peek(token)
    if isinstance(outcome, PeekResult):
        return {"requires_password": outcome.requires_password}
    raise HTTPException(status_code=404, detail=MESSAGE_UNAVAILABLE)


@router.post("/{token}/consume")
@limiter.limit(consume_limit)
def consume_message(
    request: Request,
    token: str,
    payload: Optional[ConsumeMessageSchema] = None,
    engine: LifecycleEngine = Depends(get_lifecycle),
):
    password = payload.password if payload else None
    outcome = engine.consume(token, password)

    if isinstance(outcome, Revealed):
        return {"content": outcome.plaintext}
    if isinstance(outcome, RequiresPassword):
        return JSONResponse(
            status_code=401,
            content={"detail": "Password required", "requires_password": True},
        )
    if isinstance(outcome, WrongPassword):
        raise HTTPException(status_code=403, detail="Wrong password")
    raise HTTPException(status_code=404, detail=MESSAGE_UNAVAILABLE)
