"""Tests for the stack compiler."""

import pytest

from skill_stack.compose.compiler import (
    artifact_identity,
    build_context,
    compile_profile,
    initial_selection,
    load_selection,
)
from skill_stack.config.schema import ProjectConfig
from skill_stack.core.errors import ConflictDetected, InvalidSelectionPassedToComposer
from skill_stack.core.registry import ManifestRegistry
from skill_stack.core.selections import SelectionStore


@pytest.fixture
def context(project_dir, project_config_dict):
    """Stack context for the sample project."""
    return build_context(ProjectConfig(**project_config_dict), project_dir)


@pytest.fixture
def registry(context):
    registry = ManifestRegistry(context.state_dir)
    registry.load()
    return registry


class TestBuildContext:
    """Test building the stack context."""

    def test_paths_resolved_against_project(self, context, project_dir):
        """Test that relative settings paths are resolved against the project."""
        assert context.output_dir == (project_dir / "out").resolve()
        assert context.state_dir == (project_dir / "state").resolve()

    def test_catalog_and_templates(self, context):
        """Test that units, edges and templates are built."""
        assert len(context.catalog) == 5
        assert context.catalog.get("react").body == "# React\n\nUse hooks."
        assert [t.name for t in context.templates_for("web")] == ["frontend-developer", "tester"]


class TestSelections:
    """Test profile selection loading."""

    def test_initial_selection_resolves_requirements(self, context):
        """Test that the configured selection goes through the resolver."""
        assert initial_selection(context, "web") == frozenset({"react", "redux"})

    def test_initial_selection_conflict(self, project_dir, project_config_dict):
        """Test that a conflicting configured selection is rejected."""
        project_config_dict["profiles"]["web"]["selection"] = ["vitest", "jest"]
        context = build_context(ProjectConfig(**project_config_dict), project_dir)

        with pytest.raises(ConflictDetected):
            initial_selection(context, "web")

    def test_initial_selection_exclusive_pair(self, project_dir, project_config_dict):
        """Test that two configured units of an exclusive category are rejected."""
        project_config_dict["profiles"]["web"]["selection"] = ["react", "vue"]
        context = build_context(ProjectConfig(**project_config_dict), project_dir)

        with pytest.raises(ConflictDetected) as exc_info:
            initial_selection(context, "web")

        error = exc_info.value
        assert {error.unit_a, error.unit_b} == {"react", "vue"}
        assert "exclusive" in error.message

    def test_initial_selection_exclusive_requirement(self, project_dir, project_config_dict):
        """Test that a configured unit cannot displace another one's requirement."""
        project_config_dict["profiles"]["web"]["selection"] = ["redux", "vue"]
        context = build_context(ProjectConfig(**project_config_dict), project_dir)

        with pytest.raises(ConflictDetected) as exc_info:
            initial_selection(context, "web")

        assert set(exc_info.value.unit_ids) == {"react", "vue"}

    def test_load_selection_prefers_persisted(self, context):
        """Test that a persisted selection overrides the configured one."""
        store = SelectionStore(context.state_dir)
        store.load()
        assert load_selection(context, store, "web") == frozenset({"react", "redux"})

        store.set("web", ["r", "vitest"])
        assert load_selection(context, store, "web") == frozenset({"react", "vitest"})


class TestCompileProfile:
    """Test compiling a profile to disk."""

    def test_writes_every_template(self, context, registry, project_dir):
        """Test that each template is written to <output>/<profile>/<template>.md."""
        outcomes = compile_profile(context, "web", {"react", "redux"}, registry)

        assert [o.identity for o in outcomes] == ["web/frontend-developer", "web/tester"]
        assert all(o.changed and o.written for o in outcomes)

        developer = project_dir / "out" / "web" / "frontend-developer.md"
        assert developer.read_text() == (
            "# Frontend Developer\n"
            "\n"
            "<!-- slot: framework -->\n"
            "# React\n\nUse hooks.\n\n---\n\n# Redux\n"
            "<!-- /slot: framework -->\n"
            "\n"
            "<!-- slot: testing -->\n"
            "<!-- /slot: testing -->\n"
        )
        assert registry.get(artifact_identity("web", "tester")).version == 1

    def test_second_compile_is_idempotent(self, context, registry, project_dir):
        """Test that recompiling an unchanged selection writes nothing."""
        compile_profile(context, "web", {"react", "redux"}, registry)
        developer = project_dir / "out" / "web" / "frontend-developer.md"
        mtime = developer.stat().st_mtime_ns

        outcomes = compile_profile(context, "web", {"react", "redux"}, registry)

        assert not any(o.changed or o.written for o in outcomes)
        assert developer.stat().st_mtime_ns == mtime
        assert registry.get("web/frontend-developer").version == 1

    def test_changed_selection_bumps_versions(self, context, registry):
        """Test that a selection change gives every template a new version."""
        compile_profile(context, "web", {"react"}, registry)

        outcomes = compile_profile(context, "web", {"react", "redux"}, registry)

        # The composed hash covers the whole selection, not only slotted units
        assert all(o.changed for o in outcomes)
        assert registry.get("web/frontend-developer").version == 2
        assert registry.get("web/tester").version == 2
        assert registry.get("web/tester").selected_unit_ids == ("react", "redux")

    def test_missing_file_is_rewritten(self, context, registry, project_dir):
        """Test that a deleted artifact is restored without a version bump."""
        compile_profile(context, "web", {"react"}, registry)
        tester = project_dir / "out" / "web" / "tester.md"
        tester.unlink()

        outcomes = {o.identity: o for o in compile_profile(context, "web", {"react"}, registry)}

        assert tester.exists()
        assert outcomes["web/tester"].written
        assert not outcomes["web/tester"].changed
        assert registry.get("web/tester").version == 1

    def test_dry_run_writes_nothing(self, context, registry, project_dir):
        """Test that a dry run neither writes files nor records manifests."""
        outcomes = compile_profile(context, "web", {"react"}, registry, dry_run=True)

        assert all(o.changed and not o.written for o in outcomes)
        assert not (project_dir / "out").exists()
        assert registry.identities() == []

    def test_output_dir_override(self, context, registry, tmp_path):
        """Test writing to an explicit output directory."""
        compile_profile(context, "web", {"react"}, registry, output_dir=tmp_path / "elsewhere")

        assert (tmp_path / "elsewhere" / "web" / "tester.md").exists()

    def test_invalid_selection(self, context, registry):
        """Test that an invalid selection never reaches disk."""
        with pytest.raises(InvalidSelectionPassedToComposer):
            compile_profile(context, "web", {"redux"}, registry)

        assert registry.identities() == []
