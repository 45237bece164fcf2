"""Configuration loading and management."""

from skill_stack.config.loader import (
    find_config_files,
    load_config,
    load_unit_records,
    merge_configs,
)
from skill_stack.config.schema import (
    CategoryConfig,
    GroupRule,
    ProfileConfig,
    ProjectConfig,
    RecommendRule,
    RelationshipRules,
    RequireRule,
    SettingsConfig,
    SlotConfig,
    TemplateConfig,
    UnitRecord,
)

__all__ = [
    # Loader functions
    "find_config_files",
    "load_config",
    "load_unit_records",
    "merge_configs",
    # Schema classes
    "CategoryConfig",
    "GroupRule",
    "ProfileConfig",
    "ProjectConfig",
    "RecommendRule",
    "RelationshipRules",
    "RequireRule",
    "SettingsConfig",
    "SlotConfig",
    "TemplateConfig",
    "UnitRecord",
]
