"""Setup router - System initialization endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_admin, get_verified_user
from ...database import get_db
from ...models import User
from .service import SetupService

router = APIRouter(prefix="/setup", tags=["Setup"])


def get_setup_service(db: Session = Depends(get_db)) -> SetupService:
    return SetupService(db)


@router.get("/status")
async def setup_status(service: SetupService = Depends(get_setup_service)):
    return service.get_status()


@router.post("/initialize")
async def initialize_system(
    current_user: User = Depends(get_verified_user),
    service: SetupService = Depends(get_setup_service),
):
    return service.initialize_system(current_user)


@router.post("/reset")
async def reset_system(
    _admin: User = Depends(get_current_admin),
    service: SetupService = Depends(get_setup_service),
):
    return service.reset_system()
