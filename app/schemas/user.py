import enum

from pydantic import BaseModel, Field


class Role(str, enum.Enum):
    student = "student"
    teacher = "teacher"
    admin = "admin"
    experience_manager = "experience_manager"
    # Machine identity of the grading pipeline
    service = "service"


class AuthUser(BaseModel):
    """Caller identity as asserted by the platform's auth service."""

    user_id: str = Field(min_length=1, max_length=64)
    school_id: str = Field(min_length=1, max_length=64)
    username: str = Field(default="", max_length=255)
    role: Role = Role.student

    model_config = {"frozen": True}
