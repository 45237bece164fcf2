"""Tests for configuration loading and merging logic."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from skill_stack.config.loader import (
    apply_env_overrides,
    find_config_files,
    load_config,
    load_unit_records,
    load_yaml_file,
    merge_configs,
)
from skill_stack.config.schema import ProjectConfig
from skill_stack.core.errors import HashComputationFailure
from skill_stack.utils.hashing import hash_content


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Run with an empty working directory and HOME."""
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.chdir(work_dir)
    monkeypatch.setenv("HOME", str(home_dir))
    for var in ("SKILL_STACK_OUTPUT_DIR", "SKILL_STACK_STATE_DIR", "SKILL_STACK_SEPARATOR"):
        monkeypatch.delenv(var, raising=False)
    return {"work_dir": work_dir, "home_dir": home_dir}


class TestLoadYamlFile:
    """Test YAML file loading."""

    def test_load_valid_yaml(self, tmp_path):
        """Test loading a valid YAML file."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"version": "1.0", "settings": {"output_dir": "out"}}))

        result = load_yaml_file(config_file)
        assert result["version"] == "1.0"
        assert result["settings"]["output_dir"] == "out"

    def test_load_empty_yaml(self, tmp_path):
        """Test loading an empty YAML file."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert load_yaml_file(config_file) == {}

    def test_load_invalid_yaml(self, tmp_path):
        """Test loading invalid YAML raises error."""
        config_file = tmp_path / "invalid.yaml"
        config_file.write_text("invalid: yaml: content: [")

        with pytest.raises(yaml.YAMLError):
            load_yaml_file(config_file)


class TestMergeConfigs:
    """Test configuration merging logic."""

    def test_merge_empty_list(self):
        """Test merging empty config list."""
        assert merge_configs([]) == {}

    def test_merge_nested_dicts(self):
        """Test deep merging of nested dictionaries."""
        config1 = {"settings": {"output_dir": "a", "state_dir": "s"}}
        config2 = {"settings": {"output_dir": "b"}}

        result = merge_configs([config1, config2])
        assert result["settings"]["output_dir"] == "b"
        assert result["settings"]["state_dir"] == "s"

    def test_merge_list_replacement(self):
        """Test that lists are replaced, not merged."""
        config1 = {"units": [{"id": "a"}, {"id": "b"}]}
        config2 = {"units": [{"id": "c"}]}

        result = merge_configs([config1, config2])
        assert result["units"] == [{"id": "c"}]

    def test_merge_does_not_mutate_inputs(self):
        """Test that merging leaves the input dictionaries untouched."""
        base = {"settings": {"output_dir": "a"}}
        merge_configs([base, {"settings": {"output_dir": "b"}}])

        assert base == {"settings": {"output_dir": "a"}}


class TestApplyEnvOverrides:
    """Test environment variable overrides."""

    def test_no_env_vars(self, isolated_env):
        """Test that config is unchanged when no env vars are set."""
        config = {"settings": {"output_dir": "out"}}

        result = apply_env_overrides(config)
        assert result["settings"]["output_dir"] == "out"

    def test_output_and_state_dir_override(self, isolated_env, monkeypatch):
        """Test SKILL_STACK_OUTPUT_DIR and SKILL_STACK_STATE_DIR overrides."""
        monkeypatch.setenv("SKILL_STACK_OUTPUT_DIR", "/env/out")
        monkeypatch.setenv("SKILL_STACK_STATE_DIR", "/env/state")

        result = apply_env_overrides({"settings": {"output_dir": "out"}})
        assert result["settings"]["output_dir"] == "/env/out"
        assert result["settings"]["state_dir"] == "/env/state"

    def test_separator_override_unescapes_newlines(self, isolated_env, monkeypatch):
        """Test SKILL_STACK_SEPARATOR accepts escaped newlines."""
        monkeypatch.setenv("SKILL_STACK_SEPARATOR", "\\n***\\n")

        result = apply_env_overrides({})
        assert result["settings"]["separator"] == "\n***\n"

    def test_does_not_mutate_input(self, isolated_env, monkeypatch):
        """Test that the original config dict is not modified."""
        monkeypatch.setenv("SKILL_STACK_OUTPUT_DIR", "/env/out")
        config = {"settings": {"output_dir": "out"}}

        apply_env_overrides(config)
        assert config["settings"]["output_dir"] == "out"


class TestFindConfigFiles:
    """Test config file discovery."""

    def test_no_config_files(self, isolated_env):
        """Test discovery when no config files exist."""
        assert find_config_files() == []

    def test_project_then_user_config(self, isolated_env):
        """Test that project config comes before user config."""
        project = isolated_env["work_dir"] / "stack.yaml"
        project.write_text("version: '1.0'")
        user_dir = isolated_env["home_dir"] / ".config" / "skill-stack"
        user_dir.mkdir(parents=True)
        (user_dir / "stack.yaml").write_text("version: '1.0'")

        files = find_config_files()
        assert len(files) == 2
        assert files[0] == project


class TestLoadConfig:
    """Test full configuration loading."""

    def test_defaults_only(self, isolated_env):
        """Test loading with no config files yields defaults."""
        config = load_config()

        assert isinstance(config, ProjectConfig)
        assert config.settings.output_dir == ".claude/agents"
        assert config.settings.separator == "\n\n---\n\n"
        assert config.units == []

    def test_explicit_config_path(self, isolated_env, project_dir):
        """Test loading an explicit config file."""
        config = load_config(project_dir / "stack.yaml")

        assert [u.id for u in config.units] == ["react", "vue", "redux", "vitest", "jest"]
        assert config.settings.output_dir == "out"
        assert config.profiles["web"].templates == ["frontend-developer", "tester"]

    def test_env_overrides_explicit_config(self, isolated_env, project_dir, monkeypatch):
        """Test environment variables take precedence over files."""
        monkeypatch.setenv("SKILL_STACK_OUTPUT_DIR", "/env/out")

        config = load_config(project_dir / "stack.yaml")
        assert config.settings.output_dir == "/env/out"

    def test_missing_explicit_config(self, isolated_env):
        """Test that a missing explicit config raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(Path("does-not-exist.yaml"))

    def test_invalid_config_raises_validation_error(self, isolated_env, tmp_path):
        """Test that an invalid config raises ValidationError."""
        config_file = tmp_path / "bad.yaml"
        config_file.write_text(yaml.dump({"version": "2.0"}))

        with pytest.raises(ValidationError):
            load_config(config_file)


class TestLoadUnitRecords:
    """Test materializing unit bodies and content hashes."""

    def test_reads_body_path_relative_to_base_dir(self, isolated_env, project_dir):
        """Test that body_path is read relative to the project directory."""
        config = load_config(project_dir / "stack.yaml")
        records = {r.id: r for r in load_unit_records(config, project_dir)}

        assert records["react"].body == "# React\n\nUse hooks."
        assert records["vue"].body == "# Vue"

    def test_computes_missing_content_hash(self, isolated_env, project_dir):
        """Test that units without content_hash get one from their body."""
        config = load_config(project_dir / "stack.yaml")
        records = {r.id: r for r in load_unit_records(config, project_dir)}

        assert records["vue"].content_hash == hash_content("# Vue")

    def test_keeps_supplied_content_hash(self):
        """Test that a supplied content hash is not recomputed."""
        config = ProjectConfig(
            version="1.0",
            units=[{"id": "a", "category": "c", "body": "x", "content_hash": "abc123"}],
        )

        records = load_unit_records(config, Path("."))
        assert records[0].content_hash == "abc123"

    def test_missing_body_file_is_hash_failure(self, tmp_path):
        """Test that an unreadable body file raises HashComputationFailure."""
        config = ProjectConfig(
            version="1.0",
            units=[{"id": "a", "category": "c", "body_path": "missing.md"}],
        )

        with pytest.raises(HashComputationFailure) as exc_info:
            load_unit_records(config, tmp_path)
        assert "'a'" in str(exc_info.value)
