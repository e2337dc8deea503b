from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from classgrid.models.timetable_session import SessionStatus
from classgrid.schemas.conflict import Conflict
from classgrid.schemas.slots import validate_day_value, validate_time_value


class SessionPlacement(BaseModel):
    course_id: str = Field(min_length=1, max_length=36)
    lecturer_id: str = Field(min_length=1, max_length=36)
    venue_id: str = Field(min_length=1, max_length=36)
    semester_id: str = Field(min_length=1, max_length=36)
    day_of_week: int
    start_time: str
    end_time: str

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: int) -> int:
        return validate_day_value(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return validate_time_value(value)

    @model_validator(mode="after")
    def validate_order(self) -> "SessionPlacement":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SessionCreate(SessionPlacement):
    pass


class SessionUpdate(SessionPlacement):
    pass


class SessionOut(SessionPlacement):
    id: str
    status: SessionStatus
    version: int
    published_at: datetime | None = None

    model_config = {"from_attributes": True}


class ConflictCheckRequest(SessionPlacement):
    exclude_session_id: str | None = Field(default=None, max_length=36)


class ConflictCheckResponse(BaseModel):
    conflicts: list[Conflict] = Field(default_factory=list)
