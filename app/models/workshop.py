"""Read model of the workshop/test lifecycle.

These tables are owned and written by the content workflow; the progression
engine only reads them to find the approved tests of a workshop and the
scores of submitted attempts.
"""
import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    Index,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class ContentStatus(str, enum.Enum):
    draft = "draft"
    in_review = "in_review"
    approved = "approved"
    rejected = "rejected"


class Workshop(Base):
    __tablename__ = "workshops"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    school_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[ContentStatus] = mapped_column(
        Enum(ContentStatus, name="content_status_enum"),
        nullable=False,
        default=ContentStatus.draft,
    )


class WorkshopTest(Base):
    __tablename__ = "tests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    workshop_id: Mapped[str] = mapped_column(String(64), nullable=False)
    school_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[ContentStatus] = mapped_column(
        Enum(ContentStatus, name="content_status_enum"),
        nullable=False,
        default=ContentStatus.draft,
    )
    # Sum of question points
    max_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    __table_args__ = (
        Index("ix_tests_workshop_school_status", "workshop_id", "school_id", "status"),
    )


class WorkshopTestAttempt(Base):
    __tablename__ = "test_attempts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    school_id: Mapped[str] = mapped_column(String(64), nullable=False)
    test_id: Mapped[str] = mapped_column(String(64), nullable=False)
    workshop_id: Mapped[str] = mapped_column(String(64), nullable=False)
    student_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    total_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    is_submitted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_test_attempts_workshop_student", "workshop_id", "student_user_id"),
    )
