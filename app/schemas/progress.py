from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from app.schemas.gamification import (
    LevelInfoResponse,
    MedalResponse,
    UnlockedAvatarOptionsResponse,
)


class TestCompletionRequest(BaseModel):
    test_id: str = Field(min_length=1, max_length=64)
    workshop_id: str = Field(min_length=1, max_length=64)
    score: float = Field(ge=0)
    max_score: float = Field(ge=0)

    @model_validator(mode="after")
    def score_within_max(self) -> "TestCompletionRequest":
        if self.score > self.max_score:
            raise ValueError("score must not exceed max_score")
        return self


class GradedSubmissionRequest(TestCompletionRequest):
    """A graded test attempt reported on behalf of a student."""

    user_id: str = Field(min_length=1, max_length=64)
    username: str = Field(default="", max_length=255)


class TestCompletionResponse(BaseModel):
    test_id: str
    workshop_id: str
    best_score: float
    max_score: float
    xp_earned: int
    first_completed_at: datetime
    last_attempt_at: datetime
    attempt_count: int

    model_config = {"from_attributes": True}


class WorkshopCompletionResponse(BaseModel):
    workshop_id: str
    completed_at: datetime
    total_score: float
    max_possible_score: float

    model_config = {"from_attributes": True}


class EarnedMedalResponse(BaseModel):
    medal_id: str
    earned_at: datetime
    xp_awarded: int

    model_config = {"from_attributes": True}


class TestCompletionResult(BaseModel):
    test_id: str
    xp_awarded: int
    test_xp_awarded: int
    is_perfect: bool
    is_new_best: bool
    best_score: float
    attempt_count: int
    workshop_completed: bool
    new_medals: list[MedalResponse]
    total_xp: int
    level: LevelInfoResponse
    current_streak: int


class ProgressResponse(BaseModel):
    user_id: str
    school_id: str
    username: str
    total_xp: int
    level: int
    xp_progress: int
    xp_needed: int
    xp_percentage: int
    tests_completed_count: int
    workshops_completed_count: int
    perfect_scores_count: int
    current_streak: int
    longest_streak: int
    last_activity_at: datetime | None
    avatar: dict[str, str]
    tests_completed: list[TestCompletionResponse]
    workshops_completed: list[WorkshopCompletionResponse]
    medals: list[EarnedMedalResponse]
    ranking_position: int
    total_students: int
    available_workshops: int
    completion_percentage: int
    avatar_options: UnlockedAvatarOptionsResponse


class RankingEntry(BaseModel):
    position: int
    user_id: str
    username: str
    total_xp: int
    level: int
    workshops_completed: int
    tests_completed: int
    medal_count: int
    avatar: dict[str, str]
    is_me: bool = False


class RankingResponse(BaseModel):
    entries: list[RankingEntry]
    my_position: int | None = None


class AvatarUpdateRequest(BaseModel):
    avatar: dict[str, str | None]
