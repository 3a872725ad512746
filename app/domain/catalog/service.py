"""Catalog service - Business logic for the wellness program catalog"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import get_catalog_cached, invalidate_catalog_cache, set_catalog_cached
from ...errors import NotFoundError, ValidationError
from ...models import Program
from ...realtime import CATALOG_TOPIC, hub
from .repository import ProgramRepository
from .schemas import ProgramCreate, ProgramResponse, ProgramUpdate

logger = logging.getLogger(__name__)

# Request field -> column
FIELD_MAP = {
    "title": "title",
    "category": "category",
    "description": "description",
    "price": "price",
    "originalPrice": "original_price",
    "durationLabel": "duration_label",
    "durationDetails": "duration_details",
    "sessionsIncluded": "sessions_included",
    "practitionerType": "practitioner_type",
    "features": "features",
    "benefits": "benefits",
    "rating": "rating",
    "isActive": "is_active",
    "popular": "popular",
}

# Columns an update may not set to null
REQUIRED_COLUMNS = {"title", "category", "price", "sessions_included", "features", "benefits", "is_active", "popular"}


def validate_program_values(
    title: Optional[str], price: float, original_price: Optional[float], sessions_included: int
) -> None:
    if not title or not title.strip():
        raise ValidationError("Program title is required")
    if price < 0:
        raise ValidationError("Price cannot be negative")
    if original_price is not None and original_price < price:
        raise ValidationError("Original price must be greater than or equal to the price")
    if sessions_included < 1:
        raise ValidationError("A program must include at least one session")


class CatalogService:
    """Service layer for catalog reads and admin writes"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProgramRepository()

    def list_programs(self, active_only: bool = True) -> list[dict]:
        """Serialized catalog, served from cache when possible"""
        cached = get_catalog_cached(active_only)
        if cached is not None:
            return cached

        programs = [
            ProgramResponse.from_model(p).model_dump(mode="json")
            for p in self.repo.list_programs(self.db, active_only)
        ]
        set_catalog_cached(active_only, programs)
        return programs

    def get_program(self, program_id: str) -> Program:
        program = self.repo.get_program(self.db, program_id)
        if not program:
            raise NotFoundError("Program not found")
        return program

    def create_program(self, data: ProgramCreate) -> Program:
        validate_program_values(data.title, data.price, data.originalPrice, data.sessionsIncluded)

        values = {FIELD_MAP[k]: v for k, v in data.model_dump().items()}
        values["title"] = data.title.strip()
        values["category"] = data.category.value

        program = self.repo.create_program(self.db, **values)
        logger.info(f"🆕 Created program {program.id} ({program.title})")
        self._catalog_changed("program_created", program)
        return program

    def update_program(self, program_id: str, data: ProgramUpdate) -> Program:
        program = self.get_program(program_id)
        updates = {FIELD_MAP[k]: v for k, v in data.model_dump(exclude_unset=True).items()}
        cleared = sorted(k for k in REQUIRED_COLUMNS if k in updates and updates[k] is None)
        if cleared:
            raise ValidationError(f"Cannot clear required fields: {', '.join(cleared)}")
        if "category" in updates:
            updates["category"] = data.category.value

        validate_program_values(
            updates.get("title", program.title),
            updates.get("price", program.price),
            updates.get("original_price", program.original_price),
            updates.get("sessions_included", program.sessions_included),
        )

        program = self.repo.update_program(self.db, program, **updates)
        logger.info(f"✏️ Updated program {program.id}: {sorted(updates)}")
        self._catalog_changed("program_updated", program)
        return program

    def set_active(self, program_id: str, is_active: bool) -> Program:
        program = self.get_program(program_id)
        program = self.repo.update_program(self.db, program, is_active=is_active)
        logger.info(f"🔁 Program {program.id} active={is_active}")
        self._catalog_changed("program_updated", program)
        return program

    def delete_program(self, program_id: str) -> dict:
        """Hard delete; subscriptions keep their own snapshot of the program"""
        program = self.get_program(program_id)
        self.repo.delete_program(self.db, program)
        logger.info(f"🗑️ Deleted program {program_id}")
        invalidate_catalog_cache()
        hub.publish(CATALOG_TOPIC, "program_deleted", {"programId": program_id})
        return {"message": "Program deleted", "programId": program_id}

    def _catalog_changed(self, event_type: str, program: Program) -> None:
        invalidate_catalog_cache()
        hub.publish(CATALOG_TOPIC, event_type, {"programId": program.id, "isActive": program.is_active})
