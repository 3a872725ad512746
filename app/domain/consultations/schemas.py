"""Consultation domain schemas - Pydantic models for rooms and messages"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import ConsultationRoom, Message, MessageType, RoomStatus, SenderType


class MessageCreate(BaseModel):
    content: str


class RoomSettingsUpdate(BaseModel):
    allowVideoCall: Optional[bool] = None
    allowFileSharing: Optional[bool] = None
    allowAppointmentBooking: Optional[bool] = None
    notificationsEnabled: Optional[bool] = None


class MessageResponse(BaseModel):
    id: int
    roomId: str
    type: MessageType
    content: str
    sender: str
    senderName: Optional[str] = None
    senderType: SenderType
    timestamp: datetime
    read: bool

    @classmethod
    def from_model(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            roomId=message.room_id,
            type=MessageType(message.type),
            content=message.content,
            sender=message.sender,
            senderName=message.sender_name,
            senderType=SenderType(message.sender_type),
            timestamp=message.timestamp,
            read=message.read,
        )


class RoomResponse(BaseModel):
    id: str
    subscriptionId: str
    clientId: int
    clientName: Optional[str] = None
    clientEmail: Optional[str] = None
    practitionerId: Optional[int] = None
    planTitle: Optional[str] = None
    planCategory: Optional[str] = None
    practitionerType: Optional[str] = None
    status: RoomStatus
    settings: dict[str, bool]
    lastActivity: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, room: ConsultationRoom) -> "RoomResponse":
        return cls(
            id=room.id,
            subscriptionId=room.subscription_id,
            clientId=room.client_id,
            clientName=room.client_name,
            clientEmail=room.client_email,
            practitionerId=room.practitioner_id,
            planTitle=room.plan_title,
            planCategory=room.plan_category,
            practitionerType=room.practitioner_type,
            status=RoomStatus(room.status),
            settings=room.settings or {},
            lastActivity=room.last_activity,
            created_at=room.created_at,
        )


class MarkReadResponse(BaseModel):
    marked: int
