"""Tests for templates and the composition engine."""

import pytest

from skill_stack.compose.engine import CompositionEngine
from skill_stack.compose.template import RoleTemplate, Slot
from skill_stack.config.schema import SlotConfig, TemplateConfig
from skill_stack.core.catalog import UnitCatalog
from skill_stack.core.errors import HashComputationFailure, InvalidSelectionPassedToComposer
from skill_stack.core.graph import RelationshipGraph

from conftest import make_record


@pytest.fixture
def template():
    """A developer template with two slots and a preamble."""
    return RoleTemplate(
        name="dev",
        preamble="# Dev",
        slots=(
            Slot("framework", categories=frozenset({"framework", "state"})),
            Slot("testing", categories=frozenset({"testing"})),
        ),
    )


@pytest.fixture
def engine(frontend_graph):
    return CompositionEngine(frontend_graph)


class TestRoleTemplate:
    """Test template construction and identity."""

    def test_from_config_uses_default_separator(self):
        """Test that a template without separator inherits the default."""
        config = TemplateConfig(name="t", slots=[SlotConfig(name="s", units=["react"])])
        template = RoleTemplate.from_config(config, default_separator="\n\n***\n\n")

        assert template.separator == "\n\n***\n\n"
        assert template.slots[0].unit_ids == frozenset({"react"})

    def test_identity_changes_with_definition(self, template):
        """Test that any change to the template changes its identity."""
        changed = RoleTemplate(name="dev", preamble="# Developer", slots=template.slots)

        assert template.identity.startswith("dev@")
        assert template.identity != changed.identity

    def test_wildcard_slot_accepts_everything(self, frontend_catalog):
        """Test that '*' matches every category."""
        slot = Slot("all", categories=frozenset({"*"}))

        assert slot.accepts(frontend_catalog.get("react"))
        assert slot.accepts(frontend_catalog.get("msw"))

    def test_slot_accepts_by_unit_id(self, frontend_catalog):
        """Test that a slot can name units explicitly."""
        slot = Slot("extras", unit_ids=frozenset({"msw"}))

        assert slot.accepts(frontend_catalog.get("msw"))
        assert not slot.accepts(frontend_catalog.get("msw-setup"))


class TestCompose:
    """Test composing selections into templates."""

    def test_compose_content(self, engine, template):
        """Test the exact composed output."""
        artifact = engine.compose({"vitest", "redux", "react"}, template)

        assert artifact.text == (
            "# Dev\n"
            "\n"
            "<!-- slot: framework -->\n"
            "# react\n\nGuidance for react."
            "\n\n---\n\n"
            "# redux\n\nGuidance for redux.\n"
            "<!-- /slot: framework -->\n"
            "\n"
            "<!-- slot: testing -->\n"
            "# vitest\n\nGuidance for vitest.\n"
            "<!-- /slot: testing -->\n"
        )
        assert artifact.selected_unit_ids == ("react", "redux", "vitest")
        assert artifact.version is None

    def test_empty_slot_keeps_markers(self, engine, template):
        """Test that a slot with no matching units still renders its markers."""
        artifact = engine.compose({"vue"}, template)

        assert "<!-- slot: testing -->\n<!-- /slot: testing -->" in artifact.text

    def test_selection_order_does_not_matter(self, engine, template):
        """Test that composition is deterministic."""
        first = engine.compose(["vitest", "react", "redux"], template)
        second = engine.compose(["redux", "vitest", "react"], template)

        assert first.content == second.content
        assert first.composed_hash == second.composed_hash

    def test_aliases_accepted(self, engine, template):
        """Test that aliases in the selection are resolved."""
        artifact = engine.compose({"r"}, template)

        assert artifact.selected_unit_ids == ("react",)

    def test_invalid_selection_rejected(self, engine, template):
        """Test that an invalid selection is refused."""
        with pytest.raises(InvalidSelectionPassedToComposer) as exc_info:
            engine.compose({"react", "vue"}, template)

        assert exc_info.value.unit_ids == ("react", "vue")

    def test_missing_requirement_rejected(self, engine, template):
        """Test that a selection missing a requirement is refused."""
        with pytest.raises(InvalidSelectionPassedToComposer):
            engine.compose({"redux"}, template)

    def test_hash_changes_with_template(self, engine, template):
        """Test that the composed hash covers the template identity."""
        other = RoleTemplate(name="dev", preamble="# Other", slots=template.slots)

        assert (
            engine.compose({"react"}, template).composed_hash
            != engine.compose({"react"}, other).composed_hash
        )

    def test_hash_changes_with_unit_content(self, template):
        """Test that the composed hash covers unit content hashes."""
        before = CompositionEngine(
            RelationshipGraph(UnitCatalog.from_records([make_record("react", "framework")]))
        )
        after = CompositionEngine(
            RelationshipGraph(
                UnitCatalog.from_records([make_record("react", "framework", body="# React v2")])
            )
        )

        assert (
            before.compose({"react"}, template).composed_hash
            != after.compose({"react"}, template).composed_hash
        )

    def test_missing_content_hash(self, template):
        """Test that a unit without a content hash cannot be composed."""
        catalog = UnitCatalog.from_records([make_record("react", "framework", content_hash="")])
        engine = CompositionEngine(RelationshipGraph(catalog))

        with pytest.raises(HashComputationFailure):
            engine.compose({"react"}, template)
