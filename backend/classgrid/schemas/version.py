from datetime import datetime

from pydantic import BaseModel, Field


class PublishRequest(BaseModel):
    semester_id: str = Field(min_length=1, max_length=36)
    notes: str | None = Field(default=None, max_length=2000)
    published_by: str | None = Field(default=None, max_length=100)


class PublishResult(BaseModel):
    semester_id: str
    version: int
    sessions_published: int


class RollbackRequest(BaseModel):
    semester_id: str = Field(min_length=1, max_length=36)
    version: int = Field(ge=1)
    requested_by: str | None = Field(default=None, max_length=100)


class RollbackResult(BaseModel):
    semester_id: str
    version: int
    sessions_restored: int


class TimetableVersionOut(BaseModel):
    id: str
    semester_id: str
    version: int
    published_at: datetime
    published_by: str | None
    notes: str | None
    sessions_published: int
    is_active: bool = False

    model_config = {"from_attributes": True}
