import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.models.gamification import ConditionOperator, ConditionType, IconType

# Upper bound on the level curve; calculate_level walks it level by level
MAX_LEVEL_CAP = 1000


# --- Value objects ---

class XpRules(BaseModel):
    test_base_xp: int = Field(default=0, ge=0)
    test_point_multiplier: float = Field(default=1.0, ge=0)
    test_perfect_bonus: int = Field(default=20, ge=0)
    workshop_completion_xp: int = Field(default=50, ge=0)
    daily_streak_xp: int = Field(default=5, ge=0)
    weekly_streak_bonus: int = Field(default=50, ge=0)
    monthly_streak_bonus: int = Field(default=200, ge=0)

    model_config = {"frozen": True}


class LevelConfig(BaseModel):
    base_xp_per_level: int = Field(default=100, gt=0)
    level_multiplier: float = Field(default=1.2, ge=1)
    max_level: int = Field(default=50, gt=0, le=MAX_LEVEL_CAP)

    model_config = {"frozen": True}


class XpRulesUpdate(BaseModel):
    test_base_xp: int | None = Field(default=None, ge=0)
    test_point_multiplier: float | None = Field(default=None, ge=0)
    test_perfect_bonus: int | None = Field(default=None, ge=0)
    workshop_completion_xp: int | None = Field(default=None, ge=0)
    daily_streak_xp: int | None = Field(default=None, ge=0)
    weekly_streak_bonus: int | None = Field(default=None, ge=0)
    monthly_streak_bonus: int | None = Field(default=None, ge=0)


class LevelConfigUpdate(BaseModel):
    base_xp_per_level: int | None = Field(default=None, gt=0)
    level_multiplier: float | None = Field(default=None, ge=1)
    max_level: int | None = Field(default=None, gt=0, le=MAX_LEVEL_CAP)


class LevelInfoResponse(BaseModel):
    level: int
    xp_progress: int
    xp_needed: int
    xp_percentage: int


# --- Medals ---

class MedalUpsertRequest(BaseModel):
    medal_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=2000)
    icon: str = Field(min_length=1)
    icon_type: IconType = IconType.emoji
    icon_color: str | None = Field(default=None, max_length=32)
    bg_color: str | None = Field(default=None, max_length=32)
    xp_reward: int = Field(default=0, ge=0)
    condition_type: ConditionType
    condition_value: int = Field(ge=0)
    condition_operator: ConditionOperator = ConditionOperator.gte
    is_active: bool = True
    sort_order: int | None = None


class MedalResponse(BaseModel):
    medal_id: str
    name: str
    description: str
    icon: str
    icon_type: IconType
    icon_color: str | None
    bg_color: str | None
    xp_reward: int
    condition_type: ConditionType
    condition_value: int
    condition_operator: ConditionOperator
    is_active: bool
    sort_order: int

    model_config = {"from_attributes": True}


class ReorderMedalsRequest(BaseModel):
    medal_ids: list[str] = Field(min_length=1)

    @field_validator("medal_ids")
    @classmethod
    def no_duplicates(cls, value: list[str]) -> list[str]:
        if len(set(value)) != len(value):
            raise ValueError("medal_ids must not contain duplicates")
        return value


class MedalStatusResponse(MedalResponse):
    earned: bool
    earned_at: datetime | None = None
    progress: int
    target: int


# --- Avatar catalog (legacy flat list) ---

class AvatarOptionUpsertRequest(BaseModel):
    option_id: str = Field(min_length=1, max_length=64)
    category: str = Field(min_length=1, max_length=64)
    value: str = Field(min_length=1, max_length=255)
    display_name: str = Field(min_length=1, max_length=255)
    preview_url: str | None = Field(default=None, max_length=512)
    required_xp: int = Field(default=0, ge=0)
    required_level: int = Field(default=0, ge=0)
    is_active: bool = True
    sort_order: int | None = None


class AvatarOptionResponse(BaseModel):
    option_id: str
    category: str
    value: str
    display_name: str
    preview_url: str | None
    required_xp: int
    required_level: int
    is_active: bool
    sort_order: int

    model_config = {"from_attributes": True}


class UnlockedAvatarOptionsResponse(BaseModel):
    unlocked: dict[str, list[AvatarOptionResponse]]
    locked: dict[str, list[AvatarOptionResponse]]


# --- Avatar styles (normalized per-style config) ---

class StyleOptionConfigUpsertRequest(BaseModel):
    category: str = Field(min_length=1, max_length=64)
    option_value: str = Field(min_length=1, max_length=255)
    display_name: str = Field(min_length=1, max_length=255)
    preview_url: str | None = Field(default=None, max_length=512)
    required_xp: int = Field(default=0, ge=0)
    required_level: int = Field(default=0, ge=0)
    is_active: bool = True
    sort_order: int = 0


class StyleOptionConfigBulkRequest(BaseModel):
    entries: list[StyleOptionConfigUpsertRequest] = Field(min_length=1, max_length=500)

    @field_validator("entries")
    @classmethod
    def unique_keys(
        cls, value: list[StyleOptionConfigUpsertRequest],
    ) -> list[StyleOptionConfigUpsertRequest]:
        keys = [(e.category, e.option_value) for e in value]
        if len(set(keys)) != len(keys):
            raise ValueError("entries must not repeat a category/option_value pair")
        return value


class StyleOptionConfigResponse(BaseModel):
    id: uuid.UUID
    school_id: str
    style_id: str
    category: str
    option_value: str
    display_name: str
    preview_url: str | None
    required_xp: int
    required_level: int
    is_active: bool
    sort_order: int
    last_modified_by: str | None

    model_config = {"from_attributes": True}


class AvatarStyleResponse(BaseModel):
    style_id: str
    display_name: str
    description: str | None
    creator: str | None
    api_url: str
    sort_order: int

    model_config = {"from_attributes": True}


class StyleUnlockResponse(AvatarStyleResponse):
    required_xp: int
    required_level: int
    is_unlocked: bool
    source: str


class StyleOptionUnlock(BaseModel):
    value: str
    display_name: str
    required_xp: int
    required_level: int
    is_unlocked: bool
    source: str


class StyleCategoryOptions(BaseModel):
    name: str
    display_name: str
    type: str
    is_color: bool
    options: list[StyleOptionUnlock]


class StyleOptionsResponse(BaseModel):
    style_id: str
    display_name: str
    api_url: str
    required_xp: int
    required_level: int
    is_unlocked: bool
    source: str
    categories: list[StyleCategoryOptions]


# --- Config / admin ---

class GamificationConfigResponse(BaseModel):
    school_id: str
    xp_rules: XpRules
    level_config: LevelConfig
    medals: list[MedalResponse]
    avatar_options: list[AvatarOptionResponse]
    is_active: bool
    last_modified_by: str | None


class SchoolStatsResponse(BaseModel):
    total_students: int
    active_students: int
    total_xp: int
    average_xp: float
    tests_completed: int
    workshops_completed: int
    medals_awarded: dict[str, int]
