"""Non-working day schemas."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field


class BlockType(str, Enum):
    """Shape of a block."""

    SINGLE = "single"
    RANGE = "range"


class NonWorkingDayCreate(BaseModel):
    """Block a single date."""

    date: date
    reason: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)


class NonWorkingRangeCreate(BaseModel):
    """Block an inclusive date range."""

    start_date: date
    end_date: date
    reason: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)


class NonWorkingDayResponse(BaseModel):
    """Stored block."""

    id: int
    start_date: date
    end_date: date
    reason: str
    description: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @property
    def type(self) -> BlockType:
        """Single day or range."""
        return BlockType.SINGLE if self.start_date == self.end_date else BlockType.RANGE


class NonWorkingDayCreatedResponse(BaseModel):
    """Result of blocking a single date."""

    message: str
    non_working_day: NonWorkingDayResponse
    cancelled_appointments: int


class NonWorkingRangeCreatedResponse(BaseModel):
    """Result of blocking a date range."""

    message: str
    non_working_day: NonWorkingDayResponse
    total_days: int
    cancelled_appointments: int
    blocked_dates: list[date]


class NonWorkingDayListResponse(BaseModel):
    """Stored blocks."""

    items: list[NonWorkingDayResponse]


class BlockedDate(BaseModel):
    """One blocked calendar date, expanded from its block."""

    date: date
    block_id: int
    reason: str
    description: str | None = None
    type: BlockType


class BlockedDateListResponse(BaseModel):
    """Expanded blocked dates for calendar display."""

    blocked_dates: list[BlockedDate]
