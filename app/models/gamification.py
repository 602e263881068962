import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class ConditionType(str, enum.Enum):
    tests_completed = "tests_completed"
    workshops_completed = "workshops_completed"
    perfect_scores = "perfect_scores"
    streak_days = "streak_days"
    ranking_position = "ranking_position"
    total_xp = "total_xp"
    level_reached = "level_reached"


class ConditionOperator(str, enum.Enum):
    gte = "gte"
    lte = "lte"
    eq = "eq"


class IconType(str, enum.Enum):
    emoji = "emoji"
    lucide = "lucide"
    svg = "svg"


class GamificationConfig(Base):
    """Per-school gamification settings.

    XP rules and the level curve are small value objects kept as JSON; the
    medal catalog and the legacy avatar catalog are child rows ordered by
    ``sort_order``.
    """

    __tablename__ = "gamification_configs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    school_id: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    xp_rules: Mapped[dict] = mapped_column(JSON, nullable=False)
    level_config: Mapped[dict] = mapped_column(JSON, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_modified_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    medals: Mapped[list["MedalDefinition"]] = relationship(
        "MedalDefinition",
        back_populates="config",
        cascade="all, delete-orphan",
        order_by="MedalDefinition.sort_order",
        lazy="selectin",
    )
    avatar_options: Mapped[list["AvatarOption"]] = relationship(
        "AvatarOption",
        back_populates="config",
        cascade="all, delete-orphan",
        order_by="AvatarOption.sort_order",
        lazy="selectin",
    )


class MedalDefinition(Base):
    __tablename__ = "medal_definitions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    config_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("gamification_configs.id", ondelete="CASCADE"), nullable=False
    )
    medal_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon: Mapped[str] = mapped_column(Text, nullable=False)
    icon_type: Mapped[IconType] = mapped_column(
        Enum(IconType, name="medal_icon_type_enum"),
        nullable=False,
        default=IconType.emoji,
    )
    icon_color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    bg_color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    condition_type: Mapped[ConditionType] = mapped_column(
        Enum(ConditionType, name="medal_condition_type_enum"),
        nullable=False,
    )
    condition_value: Mapped[int] = mapped_column(Integer, nullable=False)
    condition_operator: Mapped[ConditionOperator] = mapped_column(
        Enum(ConditionOperator, name="medal_condition_operator_enum"),
        nullable=False,
        default=ConditionOperator.gte,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    config: Mapped["GamificationConfig"] = relationship(
        "GamificationConfig", back_populates="medals"
    )

    __table_args__ = (
        UniqueConstraint("config_id", "medal_id", name="uq_medal_definition_config_medal"),
    )


class AvatarOption(Base):
    """Legacy flat avatar catalog entry (one list per school)."""

    __tablename__ = "avatar_options"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    config_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("gamification_configs.id", ondelete="CASCADE"), nullable=False
    )
    option_id: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    preview_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    required_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    required_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    config: Mapped["GamificationConfig"] = relationship(
        "GamificationConfig", back_populates="avatar_options"
    )

    __table_args__ = (
        UniqueConstraint("config_id", "option_id", name="uq_avatar_option_config_option"),
    )


class StyleOptionConfig(Base):
    """Normalized unlock requirement for one option of one avatar style."""

    __tablename__ = "style_option_configs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    school_id: Mapped[str] = mapped_column(String(64), nullable=False)
    style_id: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    option_value: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    preview_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    required_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    required_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_modified_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "school_id", "style_id", "category", "option_value",
            name="uq_style_option_config_key",
        ),
        Index("ix_style_option_configs_school_style", "school_id", "style_id", "category"),
    )


class AvatarStyle(Base):
    """A rendering family of avatars and the option catalog it offers."""

    __tablename__ = "avatar_styles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    style_id: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    creator: Mapped[str | None] = mapped_column(String(255), nullable=True)
    api_url: Mapped[str] = mapped_column(String(512), nullable=False)
    # [{"name", "display_name", "type", "is_color", "options": [{"value", "display_name"}]}]
    categories: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
