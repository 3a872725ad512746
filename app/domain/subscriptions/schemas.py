"""Subscription domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from ...models import Subscription, SubscriptionStatus


class SubscriptionCreate(BaseModel):
    """Schema for subscribing to a program"""

    programId: str


class SetupRequest(BaseModel):
    """Client preferences collected by the setup wizard (health goals, schedule, ...)"""

    preferences: dict[str, Any] = {}


class AssignPractitionerRequest(BaseModel):
    practitionerId: int


class SubscriptionResponse(BaseModel):
    id: str
    userId: int
    planId: str
    planTitle: str
    planCategory: Optional[str] = None
    price: float
    durationLabel: Optional[str] = None
    practitionerType: Optional[str] = None
    features: list[str]
    status: SubscriptionStatus
    roomId: Optional[str] = None
    practitionerId: Optional[int] = None
    setupComplete: bool
    clientPreferences: Optional[dict[str, Any]] = None
    billingCycle: Optional[str] = None
    nextBillingDate: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, subscription: Subscription) -> "SubscriptionResponse":
        return cls(
            id=subscription.id,
            userId=subscription.user_id,
            planId=subscription.plan_id,
            planTitle=subscription.plan_title,
            planCategory=subscription.plan_category,
            price=subscription.price,
            durationLabel=subscription.duration_label,
            practitionerType=subscription.practitioner_type,
            features=subscription.features or [],
            status=SubscriptionStatus(subscription.status),
            roomId=subscription.room_id,
            practitionerId=subscription.practitioner_id,
            setupComplete=subscription.setup_complete,
            clientPreferences=subscription.client_preferences,
            billingCycle=subscription.billing_cycle,
            nextBillingDate=subscription.next_billing_date,
            created_at=subscription.created_at,
            updated_at=subscription.updated_at,
        )
