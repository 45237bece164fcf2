"""Configuration loader with merge logic and precedence handling."""

import copy
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from skill_stack.config.defaults import DEFAULT_CONFIG
from skill_stack.config.schema import ProjectConfig, UnitRecord
from skill_stack.core.errors import HashComputationFailure
from skill_stack.utils.hashing import hash_content
from skill_stack.utils.paths import expand_path, resolve_against

PROJECT_CONFIG_NAME = "stack.yaml"
USER_CONFIG_PATH = "~/.config/skill-stack/stack.yaml"


def find_config_files() -> list[Path]:
    """Find configuration files in standard locations.

    Searches for configuration files in order of precedence (lowest to highest):
    1. Project config (./stack.yaml in current directory)
    2. User config (~/.config/skill-stack/stack.yaml)

    Returns:
        List of Path objects for existing config files, ordered from lowest
        to highest precedence (so later configs override earlier ones)
    """
    config_files = []

    project_config = Path.cwd() / PROJECT_CONFIG_NAME
    if project_config.exists():
        config_files.append(project_config)

    user_config = expand_path(USER_CONFIG_PATH)
    if user_config.exists():
        config_files.append(user_config)

    return config_files


def load_yaml_file(file_path: Path) -> dict[str, Any]:
    """Load and parse a YAML configuration file.

    Args:
        file_path: Path to the YAML file

    Returns:
        Dictionary containing the parsed YAML content

    Raises:
        yaml.YAMLError: If the file contains invalid YAML
        FileNotFoundError: If the file doesn't exist
    """
    with open(file_path, "r", encoding="utf-8") as f:
        content = yaml.safe_load(f)
        return content if content is not None else {}


def merge_configs(configs: list[dict[str, Any]]) -> dict[str, Any]:
    """Deep merge multiple configuration dictionaries.

    Merges configs from lowest to highest precedence, where later configs
    override earlier ones. For nested dictionaries, performs a recursive
    deep merge. For lists, the later config completely replaces the earlier one.

    Args:
        configs: List of configuration dictionaries in order from lowest to
                highest precedence

    Returns:
        Merged configuration dictionary
    """
    if not configs:
        return {}

    result: dict[str, Any] = {}

    for config in configs:
        result = _deep_merge(result, config)

    return result


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two dictionaries, with override taking precedence."""
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            # Lists and scalars replace the lower-precedence value
            result[key] = copy.deepcopy(value)

    return result


def apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides to configuration.

    Supports the following environment variables:
    - SKILL_STACK_OUTPUT_DIR: Override settings.output_dir
    - SKILL_STACK_STATE_DIR: Override settings.state_dir
    - SKILL_STACK_SEPARATOR: Override settings.separator

    Args:
        config: Configuration dictionary to apply overrides to

    Returns:
        Configuration dictionary with environment overrides applied
    """
    result = copy.deepcopy(config)
    settings = result.setdefault("settings", {})

    if output_dir := os.getenv("SKILL_STACK_OUTPUT_DIR"):
        settings["output_dir"] = output_dir

    if state_dir := os.getenv("SKILL_STACK_STATE_DIR"):
        settings["state_dir"] = state_dir

    if separator := os.getenv("SKILL_STACK_SEPARATOR"):
        # Allow escaped newlines from the shell
        settings["separator"] = separator.encode("utf-8").decode("unicode_escape")

    return result


def load_config(config_path: Optional[Path] = None) -> ProjectConfig:
    """Load and merge configuration from all sources.

    Configuration precedence (lowest to highest):
    1. Built-in defaults
    2. Project config (./stack.yaml)
    3. User config (~/.config/skill-stack/stack.yaml)
    4. Explicitly provided config_path (if given)
    5. Environment variables

    Args:
        config_path: Optional explicit path to a config file

    Returns:
        Validated ProjectConfig instance

    Raises:
        ValidationError: If the merged configuration is invalid
        yaml.YAMLError: If a config file contains invalid YAML
        FileNotFoundError: If config_path is provided but doesn't exist
    """
    configs_to_merge = [copy.deepcopy(DEFAULT_CONFIG)]

    for config_file in find_config_files():
        if config_path is not None and config_file.resolve() == Path(config_path).resolve():
            continue
        try:
            configs_to_merge.append(load_yaml_file(config_file))
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Error loading {config_file}: {e}") from e

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        configs_to_merge.append(load_yaml_file(config_path))

    merged_config = merge_configs(configs_to_merge)
    merged_config = apply_env_overrides(merged_config)

    return ProjectConfig(**merged_config)


def load_unit_records(config: ProjectConfig, base_dir: Path) -> list[UnitRecord]:
    """Materialize unit bodies and content hashes for every unit in the config.

    Bodies given as ``body_path`` are read relative to ``base_dir``. Units
    without an explicit ``content_hash`` get one computed from their body.

    Args:
        config: Loaded project configuration
        base_dir: Directory that relative body paths are resolved against

    Returns:
        Unit records with ``body`` and ``content_hash`` populated

    Raises:
        HashComputationFailure: If a body file cannot be read
    """
    records = []

    for unit in config.units:
        body = unit.body
        if unit.body_path is not None:
            body_file = resolve_against(base_dir, unit.body_path)
            try:
                body = body_file.read_text(encoding="utf-8")
            except OSError as e:
                raise HashComputationFailure(f"unit '{unit.id}' ({body_file})", e) from e
        body = body or ""

        content_hash = unit.content_hash or hash_content(body)
        records.append(unit.model_copy(update={"body": body, "content_hash": content_hash}))

    return records
