"""Specialty schemas."""

from pydantic import BaseModel


class SpecialtyResponse(BaseModel):
    """Active specialty as shown to patients."""

    id: int
    name: str
    description: str | None = None
    duration_minutes: int
    price: float

    model_config = {"from_attributes": True}


class SpecialtyListResponse(BaseModel):
    """List of active specialties."""

    items: list[SpecialtyResponse]
