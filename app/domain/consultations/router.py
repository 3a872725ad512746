"""Consultation router - FastAPI endpoints for rooms, messages and live updates"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...config import MESSAGE_RATE_LIMIT
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...realtime import event_stream, hub, room_topic
from .schemas import MarkReadResponse, MessageCreate, MessageResponse, RoomResponse, RoomSettingsUpdate
from .service import ConsultationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/consultations", tags=["Consultations"])

rate_limit_messages = create_rate_limiter(
    limit=MESSAGE_RATE_LIMIT, window_seconds=60, key_prefix="messages", per_user=True
)


def get_consultation_service(db: Session = Depends(get_db)) -> ConsultationService:
    """Dependency injection for ConsultationService"""
    return ConsultationService(db)


@router.get("/rooms", response_model=list[RoomResponse])
async def list_rooms(
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    return [RoomResponse.from_model(r) for r in service.list_rooms_for_user(current_user)]


@router.get("/rooms/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: str,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    return RoomResponse.from_model(service.get_room(room_id, current_user))


@router.get("/rooms/{room_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    room_id: str,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Room history in order; viewing it marks the other party's messages as read"""
    service.mark_as_read(room_id, current_user)
    return [MessageResponse.from_model(m) for m in service.list_messages(room_id, current_user)]


@router.post("/rooms/{room_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    room_id: str,
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    _: None = Depends(rate_limit_messages),
    service: ConsultationService = Depends(get_consultation_service),
):
    return MessageResponse.from_model(service.send_message(room_id, current_user, data.content))


@router.post("/rooms/{room_id}/read", response_model=MarkReadResponse)
async def mark_as_read(
    room_id: str,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    return MarkReadResponse(marked=service.mark_as_read(room_id, current_user))


@router.get("/rooms/{room_id}/unread")
async def unread_count(
    room_id: str,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    return {"roomId": room_id, "unread": service.unread_count(room_id, current_user)}


@router.patch("/rooms/{room_id}/settings", response_model=RoomResponse)
async def update_settings(
    room_id: str,
    data: RoomSettingsUpdate,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    settings = data.model_dump(exclude_none=True)
    return RoomResponse.from_model(service.update_settings(room_id, current_user, settings))


@router.get("/rooms/{room_id}/stream")
async def stream_messages(
    room_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Server-sent events: the room's history, then each new message as it arrives"""
    service.get_room(room_id, current_user)

    # Subscribe before reading history so nothing posted in between is missed
    subscription = hub.subscribe(room_topic(room_id))
    try:
        replay = [
            {"type": "message", "data": MessageResponse.from_model(m).model_dump(mode="json")}
            for m in service.iter_messages(room_id)
        ]
    except Exception:
        subscription.close()
        raise
    return StreamingResponse(
        event_stream(request, subscription, replay),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
