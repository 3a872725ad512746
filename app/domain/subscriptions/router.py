"""Subscription router - FastAPI endpoints for the subscription lifecycle"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin, get_current_user, get_verified_user
from ...database import get_db
from ...models import SubscriptionStatus, User
from .schemas import AssignPractitionerRequest, SetupRequest, SubscriptionCreate, SubscriptionResponse
from .service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    """Dependency injection for SubscriptionService"""
    return SubscriptionService(db)


@router.post("", response_model=SubscriptionResponse, status_code=201)
async def create_subscription(
    data: SubscriptionCreate,
    current_user: User = Depends(get_verified_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Subscribe the current user (email verified) to a program; setup must follow"""
    return SubscriptionResponse.from_model(service.create_subscription(current_user, data.programId))


@router.get("", response_model=list[SubscriptionResponse])
async def list_my_subscriptions(
    current_user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Client: own subscriptions. Practitioner: subscriptions assigned to them."""
    return [SubscriptionResponse.from_model(s) for s in service.list_for_actor(current_user)]


@router.get("/all", response_model=list[SubscriptionResponse])
async def list_all_subscriptions(
    status: Optional[SubscriptionStatus] = Query(None),
    _admin: User = Depends(get_current_admin),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return [SubscriptionResponse.from_model(s) for s in service.list_all(status)]


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: str,
    current_user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return SubscriptionResponse.from_model(service.get_subscription(subscription_id, current_user))


@router.post("/{subscription_id}/setup", response_model=SubscriptionResponse)
async def complete_setup(
    subscription_id: str,
    data: SetupRequest,
    current_user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Finish the setup wizard: opens the consultation room and activates the subscription"""
    return SubscriptionResponse.from_model(
        service.complete_setup(subscription_id, data.preferences, current_user)
    )


@router.post("/{subscription_id}/assign", response_model=SubscriptionResponse)
async def assign_practitioner(
    subscription_id: str,
    data: AssignPractitionerRequest,
    _admin: User = Depends(get_current_admin),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return SubscriptionResponse.from_model(service.assign_practitioner(subscription_id, data.practitionerId))


@router.post("/{subscription_id}/pause", response_model=SubscriptionResponse)
async def pause_subscription(
    subscription_id: str,
    current_user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return SubscriptionResponse.from_model(service.pause(subscription_id, current_user))


@router.post("/{subscription_id}/resume", response_model=SubscriptionResponse)
async def resume_subscription(
    subscription_id: str,
    current_user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return SubscriptionResponse.from_model(service.resume(subscription_id, current_user))


@router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: str,
    current_user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return SubscriptionResponse.from_model(service.cancel(subscription_id, current_user))


@router.post("/{subscription_id}/expire", response_model=SubscriptionResponse)
async def expire_subscription(
    subscription_id: str,
    _admin: User = Depends(get_current_admin),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return SubscriptionResponse.from_model(service.expire(subscription_id))
