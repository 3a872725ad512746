"""Catalog router - FastAPI endpoints for wellness programs"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import User
from ...realtime import CATALOG_TOPIC, event_stream, hub
from .schemas import ProgramCreate, ProgramResponse, ProgramUpdate, SetActiveRequest
from .service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/programs", tags=["Catalog"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


# ============================================================================
# PUBLIC CATALOG
# ============================================================================


@router.get("", response_model=list[ProgramResponse])
async def list_programs(service: CatalogService = Depends(get_catalog_service)):
    """Active programs, popular first"""
    return service.list_programs(active_only=True)


@router.get("/stream")
async def stream_catalog(request: Request):
    """Live catalog change events for open catalog views"""
    subscription = hub.subscribe(CATALOG_TOPIC)
    return StreamingResponse(event_stream(request, subscription), media_type="text/event-stream")


@router.get("/all", response_model=list[ProgramResponse])
async def list_all_programs(
    _admin: User = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    """Every program including inactive ones (admin)"""
    return service.list_programs(active_only=False)


@router.get("/{program_id}", response_model=ProgramResponse)
async def get_program(program_id: str, service: CatalogService = Depends(get_catalog_service)):
    return ProgramResponse.from_model(service.get_program(program_id))


# ============================================================================
# ADMIN WRITES
# ============================================================================


@router.post("", response_model=ProgramResponse, status_code=201)
async def create_program(
    data: ProgramCreate,
    _admin: User = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return ProgramResponse.from_model(service.create_program(data))


@router.patch("/{program_id}", response_model=ProgramResponse)
async def update_program(
    program_id: str,
    data: ProgramUpdate,
    _admin: User = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return ProgramResponse.from_model(service.update_program(program_id, data))


@router.post("/{program_id}/active", response_model=ProgramResponse)
async def set_program_active(
    program_id: str,
    data: SetActiveRequest,
    _admin: User = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return ProgramResponse.from_model(service.set_active(program_id, data.isActive))


@router.delete("/{program_id}")
async def delete_program(
    program_id: str,
    _admin: User = Depends(get_current_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.delete_program(program_id)
