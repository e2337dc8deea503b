from enum import Enum

from pydantic import BaseModel


class ConflictType(str, Enum):
    VENUE = "VENUE"
    LECTURER = "LECTURER"
    STUDENT = "STUDENT"


class Conflict(BaseModel):
    type: ConflictType
    message: str
    conflicting_session_id: str
