import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, attribute_keyed_dict, mapped_column, relationship

from app.database import Base


class StudentProgress(Base):
    """Per-student progression aggregate.

    Child collections are dictionaries keyed by their natural id, backed by
    unique constraints, so a test, workshop or medal appears at most once.
    Writes are version checked (``version``) to detect concurrent updates.
    """

    __tablename__ = "student_progress"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    school_id: Mapped[str] = mapped_column(String(64), nullable=False)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tests_completed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    workshops_completed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    perfect_scores_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    avatar: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships (load explicitly with selectinload)
    test_completions: Mapped[dict[str, "TestCompletion"]] = relationship(
        "TestCompletion",
        collection_class=attribute_keyed_dict("test_id"),
        cascade="all, delete-orphan",
        lazy="raise",
    )
    workshop_completions: Mapped[dict[str, "WorkshopCompletion"]] = relationship(
        "WorkshopCompletion",
        collection_class=attribute_keyed_dict("workshop_id"),
        cascade="all, delete-orphan",
        lazy="raise",
    )
    medals: Mapped[dict[str, "EarnedMedal"]] = relationship(
        "EarnedMedal",
        collection_class=attribute_keyed_dict("medal_id"),
        cascade="all, delete-orphan",
        lazy="raise",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_student_progress_school_xp", "school_id", "total_xp"),
    )


class TestCompletion(Base):
    __tablename__ = "test_completions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    progress_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("student_progress.id", ondelete="CASCADE"), nullable=False
    )
    test_id: Mapped[str] = mapped_column(String(64), nullable=False)
    workshop_id: Mapped[str] = mapped_column(String(64), nullable=False)
    best_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    max_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    # XP already granted for this test; baseline for best-score reconciliation
    xp_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    last_attempt_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("progress_id", "test_id", name="uq_test_completion_progress_test"),
    )


class WorkshopCompletion(Base):
    __tablename__ = "workshop_completions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    progress_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("student_progress.id", ondelete="CASCADE"), nullable=False
    )
    workshop_id: Mapped[str] = mapped_column(String(64), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    max_possible_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(
            "progress_id", "workshop_id", name="uq_workshop_completion_progress_workshop"
        ),
    )


class EarnedMedal(Base):
    __tablename__ = "earned_medals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    progress_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("student_progress.id", ondelete="CASCADE"), nullable=False
    )
    medal_id: Mapped[str] = mapped_column(String(64), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    xp_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("progress_id", "medal_id", name="uq_earned_medal_progress_medal"),
    )
