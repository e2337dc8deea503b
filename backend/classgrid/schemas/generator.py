from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from classgrid.schemas.conflict import Conflict
from classgrid.schemas.slots import TimeRange, validate_day_value


class GenerateTimetableRequest(BaseModel):
    semester_id: str = Field(min_length=1, max_length=36)
    time_slots: list[TimeRange] = Field(min_length=1, max_length=48)
    days_of_week: list[int] = Field(min_length=1, max_length=7)
    requested_by: str | None = Field(default=None, max_length=100)

    @field_validator("days_of_week")
    @classmethod
    def validate_days(cls, value: list[int]) -> list[int]:
        seen: list[int] = []
        for day in value:
            validate_day_value(day)
            if day not in seen:
                seen.append(day)
        return seen


class GenerationResult(BaseModel):
    success: bool = False
    sessions_created: int = 0
    conflicts: list[Conflict] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    skipped_courses: list[str] = Field(default_factory=list)
