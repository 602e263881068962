from app.models.gamification import (
    AvatarOption,
    AvatarStyle,
    ConditionOperator,
    ConditionType,
    GamificationConfig,
    IconType,
    MedalDefinition,
    StyleOptionConfig,
)
from app.models.progress import (
    EarnedMedal,
    StudentProgress,
    TestCompletion,
    WorkshopCompletion,
)
from app.models.workshop import (
    ContentStatus,
    Workshop,
    WorkshopTest,
    WorkshopTestAttempt,
)

__all__ = [
    "AvatarOption",
    "AvatarStyle",
    "ConditionOperator",
    "ConditionType",
    "GamificationConfig",
    "IconType",
    "MedalDefinition",
    "StyleOptionConfig",
    "EarnedMedal",
    "StudentProgress",
    "TestCompletion",
    "WorkshopCompletion",
    "ContentStatus",
    "Workshop",
    "WorkshopTest",
    "WorkshopTestAttempt",
]
