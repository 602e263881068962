from app.models.gamification import ConditionOperator, ConditionType
from app.schemas.gamification import LevelConfig, XpRules

# Defaults applied when a school has no configuration yet
DEFAULT_XP_RULES = XpRules()
DEFAULT_LEVEL_CONFIG = LevelConfig()

# Default avatar assigned to a new student
DEFAULT_AVATAR: dict[str, str] = {
    "style": "avataaars",
    "skinColor": "f8d9c4",
    "backgroundColor": "b6e3f4",
}

# Avatar keys whose value means "remove this key"
AVATAR_UNSET_VALUES: frozenset[str] = frozenset({"", "none"})

DEFAULT_MEDALS: list[dict] = [
    # tests_completed
    {"medal_id": "first_test", "name": "First Step", "description": "Complete your first test", "icon": "🎯", "xp_reward": 25, "condition_type": ConditionType.tests_completed, "condition_value": 1},
    {"medal_id": "tests_10", "name": "Active Learner", "description": "Complete 10 tests", "icon": "📝", "xp_reward": 50, "condition_type": ConditionType.tests_completed, "condition_value": 10},
    {"medal_id": "tests_50", "name": "Scholar", "description": "Complete 50 tests", "icon": "📚", "xp_reward": 150, "condition_type": ConditionType.tests_completed, "condition_value": 50},
    # workshops_completed
    {"medal_id": "workshop_1", "name": "Explorer", "description": "Complete your first workshop", "icon": "🗺️", "xp_reward": 50, "condition_type": ConditionType.workshops_completed, "condition_value": 1},
    {"medal_id": "workshop_5", "name": "Adventurer", "description": "Complete 5 workshops", "icon": "⭐", "xp_reward": 100, "condition_type": ConditionType.workshops_completed, "condition_value": 5},
    {"medal_id": "workshop_10", "name": "Dedicated", "description": "Complete 10 workshops", "icon": "🌟", "xp_reward": 200, "condition_type": ConditionType.workshops_completed, "condition_value": 10},
    {"medal_id": "workshop_25", "name": "Master", "description": "Complete 25 workshops", "icon": "👑", "xp_reward": 500, "condition_type": ConditionType.workshops_completed, "condition_value": 25},
    # perfect_scores
    {"medal_id": "perfect_1", "name": "Perfection", "description": "Score 100% on a test", "icon": "💎", "xp_reward": 30, "condition_type": ConditionType.perfect_scores, "condition_value": 1},
    {"medal_id": "perfect_10", "name": "Genius", "description": "Score 100% on 10 tests", "icon": "🧠", "xp_reward": 150, "condition_type": ConditionType.perfect_scores, "condition_value": 10},
    # streak_days
    {"medal_id": "streak_7", "name": "Consistent", "description": "Stay active 7 days in a row", "icon": "🔥", "xp_reward": 100, "condition_type": ConditionType.streak_days, "condition_value": 7},
    {"medal_id": "streak_30", "name": "Unstoppable", "description": "Stay active 30 days in a row", "icon": "💪", "xp_reward": 300, "condition_type": ConditionType.streak_days, "condition_value": 30},
    # ranking_position
    {"medal_id": "top_10", "name": "Elite", "description": "Reach the top 10", "icon": "🏅", "xp_reward": 100, "condition_type": ConditionType.ranking_position, "condition_value": 10, "condition_operator": ConditionOperator.lte},
    {"medal_id": "top_3", "name": "Podium", "description": "Reach the top 3", "icon": "🥉", "xp_reward": 200, "condition_type": ConditionType.ranking_position, "condition_value": 3, "condition_operator": ConditionOperator.lte},
    {"medal_id": "first_place", "name": "Champion", "description": "Reach first place", "icon": "🏆", "xp_reward": 500, "condition_type": ConditionType.ranking_position, "condition_value": 1, "condition_operator": ConditionOperator.eq},
]

DEFAULT_AVATAR_OPTIONS: list[dict] = [
    # Styles
    {"option_id": "style_avataaars", "category": "style", "value": "avataaars", "display_name": "Avataaars", "required_xp": 0, "required_level": 0},
    {"option_id": "style_lorelei", "category": "style", "value": "lorelei", "display_name": "Lorelei", "required_xp": 500, "required_level": 5},
    {"option_id": "style_notionists", "category": "style", "value": "notionists", "display_name": "Notionists", "required_xp": 1000, "required_level": 10},
    {"option_id": "style_open_peeps", "category": "style", "value": "open-peeps", "display_name": "Open Peeps", "required_xp": 2000, "required_level": 15},
    {"option_id": "style_pixel_art", "category": "style", "value": "pixel-art", "display_name": "Pixel Art", "required_xp": 3000, "required_level": 20},
    # Skin colors
    {"option_id": "skin_light", "category": "skinColor", "value": "f8d9c4", "display_name": "Light", "required_xp": 0, "required_level": 0},
    {"option_id": "skin_medium", "category": "skinColor", "value": "d4a574", "display_name": "Medium", "required_xp": 0, "required_level": 0},
    {"option_id": "skin_tan", "category": "skinColor", "value": "c68642", "display_name": "Tan", "required_xp": 0, "required_level": 0},
    {"option_id": "skin_dark", "category": "skinColor", "value": "8d5524", "display_name": "Dark", "required_xp": 0, "required_level": 0},
    # Background colors
    {"option_id": "bg_blue", "category": "backgroundColor", "value": "b6e3f4", "display_name": "Blue", "required_xp": 0, "required_level": 0},
    {"option_id": "bg_green", "category": "backgroundColor", "value": "c0f4c4", "display_name": "Green", "required_xp": 0, "required_level": 0},
    {"option_id": "bg_purple", "category": "backgroundColor", "value": "d1c4f4", "display_name": "Purple", "required_xp": 100, "required_level": 2},
    {"option_id": "bg_pink", "category": "backgroundColor", "value": "f4c4d4", "display_name": "Pink", "required_xp": 100, "required_level": 2},
    {"option_id": "bg_yellow", "category": "backgroundColor", "value": "f4e9c4", "display_name": "Yellow", "required_xp": 200, "required_level": 3},
    # Eyes
    {"option_id": "eyes_default", "category": "eyes", "value": "default", "display_name": "Default", "required_xp": 0, "required_level": 0},
    {"option_id": "eyes_happy", "category": "eyes", "value": "happy", "display_name": "Happy", "required_xp": 0, "required_level": 0},
    {"option_id": "eyes_wink", "category": "eyes", "value": "wink", "display_name": "Wink", "required_xp": 50, "required_level": 1},
    {"option_id": "eyes_surprised", "category": "eyes", "value": "surprised", "display_name": "Surprised", "required_xp": 100, "required_level": 2},
    {"option_id": "eyes_hearts", "category": "eyes", "value": "hearts", "display_name": "Hearts", "required_xp": 500, "required_level": 5},
    # Mouth
    {"option_id": "mouth_smile", "category": "mouth", "value": "smile", "display_name": "Smile", "required_xp": 0, "required_level": 0},
    {"option_id": "mouth_default", "category": "mouth", "value": "default", "display_name": "Default", "required_xp": 0, "required_level": 0},
    {"option_id": "mouth_twinkle", "category": "mouth", "value": "twinkle", "display_name": "Twinkle", "required_xp": 100, "required_level": 2},
    {"option_id": "mouth_tongue", "category": "mouth", "value": "tongue", "display_name": "Tongue", "required_xp": 200, "required_level": 3},
    # Accessories
    {"option_id": "acc_round", "category": "accessories", "value": "round", "display_name": "Round Glasses", "required_xp": 100, "required_level": 2},
    {"option_id": "acc_prescription", "category": "accessories", "value": "prescription02", "display_name": "Square Glasses", "required_xp": 200, "required_level": 3},
    {"option_id": "acc_sunglasses", "category": "accessories", "value": "sunglasses", "display_name": "Sunglasses", "required_xp": 500, "required_level": 5},
    # Hair
    {"option_id": "top_short", "category": "top", "value": "shortHairShortFlat", "display_name": "Short", "required_xp": 0, "required_level": 0},
    {"option_id": "top_long", "category": "top", "value": "longHairStraight", "display_name": "Long", "required_xp": 0, "required_level": 0},
    {"option_id": "top_curly", "category": "top", "value": "longHairCurly", "display_name": "Curly", "required_xp": 100, "required_level": 2},
    {"option_id": "top_bun", "category": "top", "value": "longHairBun", "display_name": "Bun", "required_xp": 200, "required_level": 3},
    {"option_id": "top_dreads", "category": "top", "value": "shortHairDreads01", "display_name": "Dreads", "required_xp": 300, "required_level": 4},
]

DICEBEAR_API_URL = "https://api.dicebear.com/9.x/{style_id}/svg"


def _category(name: str, display_name: str, values: list[tuple[str, str]], is_color: bool = False) -> dict:
    return {
        "name": name,
        "display_name": display_name,
        "type": "color" if is_color else "array",
        "is_color": is_color,
        "options": [{"value": v, "display_name": d} for v, d in values],
    }


_SKIN_COLORS = [("f8d9c4", "Light"), ("d4a574", "Medium"), ("c68642", "Tan"), ("8d5524", "Dark")]
_BACKGROUNDS = [("b6e3f4", "Blue"), ("c0f4c4", "Green"), ("d1c4f4", "Purple"), ("f4c4d4", "Pink"), ("f4e9c4", "Yellow")]

DEFAULT_AVATAR_STYLES: list[dict] = [
    {
        "style_id": "avataaars",
        "display_name": "Avataaars",
        "creator": "Pablo Stanley",
        "categories": [
            _category("skinColor", "Skin color", _SKIN_COLORS, is_color=True),
            _category("backgroundColor", "Background", _BACKGROUNDS, is_color=True),
            _category("top", "Hair", [
                ("shortHairShortFlat", "Short"), ("longHairStraight", "Long"),
                ("longHairCurly", "Curly"), ("longHairBun", "Bun"), ("shortHairDreads01", "Dreads"),
            ]),
            _category("eyes", "Eyes", [
                ("default", "Default"), ("happy", "Happy"), ("wink", "Wink"),
                ("surprised", "Surprised"), ("hearts", "Hearts"),
            ]),
            _category("mouth", "Mouth", [
                ("smile", "Smile"), ("default", "Default"), ("twinkle", "Twinkle"), ("tongue", "Tongue"),
            ]),
            _category("accessories", "Accessories", [
                ("round", "Round Glasses"), ("prescription02", "Square Glasses"), ("sunglasses", "Sunglasses"),
            ]),
        ],
    },
    {
        "style_id": "lorelei",
        "display_name": "Lorelei",
        "creator": "Lisa Wischofsky",
        "categories": [
            _category("backgroundColor", "Background", _BACKGROUNDS, is_color=True),
            _category("hair", "Hair", [("variant01", "Variant 01"), ("variant02", "Variant 02"), ("variant03", "Variant 03")]),
            _category("eyes", "Eyes", [("variant01", "Variant 01"), ("variant02", "Variant 02")]),
        ],
    },
    {
        "style_id": "notionists",
        "display_name": "Notionists",
        "creator": "Zoish",
        "categories": [
            _category("backgroundColor", "Background", _BACKGROUNDS, is_color=True),
            _category("hair", "Hair", [("variant01", "Variant 01"), ("variant02", "Variant 02")]),
        ],
    },
    {
        "style_id": "open-peeps",
        "display_name": "Open Peeps",
        "creator": "Pablo Stanley",
        "categories": [
            _category("skinColor", "Skin color", _SKIN_COLORS, is_color=True),
            _category("face", "Face", [("smile", "Smile"), ("calm", "Calm"), ("cute", "Cute")]),
        ],
    },
    {
        "style_id": "pixel-art",
        "display_name": "Pixel Art",
        "creator": "DiceBear",
        "categories": [
            _category("skinColor", "Skin color", _SKIN_COLORS, is_color=True),
            _category("hair", "Hair", [("short01", "Short 01"), ("long01", "Long 01")]),
        ],
    },
]
