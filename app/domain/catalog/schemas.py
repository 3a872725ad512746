"""Catalog domain schemas - Pydantic models for wellness programs"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import Program, ProgramCategory

# Presentation is derived from the category, never from the program title
CATEGORY_STYLES = {
    ProgramCategory.PERSONAL: {
        "icon": "👩‍⚕️",
        "color": "#FF6B35",
        "gradient": "linear-gradient(135deg, #FF6B35 0%, #F7931E 100%)",
    },
    ProgramCategory.HOLISTIC: {
        "icon": "🧘‍♀️",
        "color": "#4ECDC4",
        "gradient": "linear-gradient(135deg, #4ECDC4 0%, #44A08D 100%)",
    },
    ProgramCategory.WOMEN_HEALTH: {
        "icon": "🌸",
        "color": "#E74C3C",
        "gradient": "linear-gradient(135deg, #E74C3C 0%, #C0392B 100%)",
    },
    ProgramCategory.GROUP: {
        "icon": "👥",
        "color": "#95A5A6",
        "gradient": "linear-gradient(135deg, #95A5A6 0%, #7F8C8D 100%)",
    },
}


class CategoryStyle(BaseModel):
    icon: str
    color: str
    gradient: str


class ProgramCreate(BaseModel):
    """Schema for creating a catalog entry"""

    title: str
    category: ProgramCategory = ProgramCategory.PERSONAL
    description: Optional[str] = None
    price: float
    originalPrice: Optional[float] = None
    durationLabel: Optional[str] = None  # e.g. "3 months"
    durationDetails: Optional[str] = None
    sessionsIncluded: int = 1
    practitionerType: Optional[str] = None
    features: list[str] = []
    benefits: list[str] = []
    rating: float = 4.5
    isActive: bool = True
    popular: bool = False


class ProgramUpdate(BaseModel):
    """Partial update; omitted fields keep their value"""

    title: Optional[str] = None
    category: Optional[ProgramCategory] = None
    description: Optional[str] = None
    price: Optional[float] = None
    originalPrice: Optional[float] = None
    durationLabel: Optional[str] = None
    durationDetails: Optional[str] = None
    sessionsIncluded: Optional[int] = None
    practitionerType: Optional[str] = None
    features: Optional[list[str]] = None
    benefits: Optional[list[str]] = None
    rating: Optional[float] = None
    isActive: Optional[bool] = None
    popular: Optional[bool] = None


class SetActiveRequest(BaseModel):
    isActive: bool


class ProgramResponse(BaseModel):
    id: str
    title: str
    category: ProgramCategory
    style: CategoryStyle
    description: Optional[str] = None
    price: float
    originalPrice: Optional[float] = None
    durationLabel: Optional[str] = None
    durationDetails: Optional[str] = None
    sessionsIncluded: int
    practitionerType: Optional[str] = None
    features: list[str]
    benefits: list[str]
    rating: Optional[float] = None
    isActive: bool
    popular: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, program: Program) -> "ProgramResponse":
        category = ProgramCategory(program.category)
        return cls(
            id=program.id,
            title=program.title,
            category=category,
            style=CategoryStyle(**CATEGORY_STYLES[category]),
            description=program.description,
            price=program.price,
            originalPrice=program.original_price,
            durationLabel=program.duration_label,
            durationDetails=program.duration_details,
            sessionsIncluded=program.sessions_included,
            practitionerType=program.practitioner_type,
            features=program.features or [],
            benefits=program.benefits or [],
            rating=program.rating,
            isActive=program.is_active,
            popular=program.popular,
            created_at=program.created_at,
        )
