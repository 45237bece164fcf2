#!/usr/bin/env python3
"""Example demonstrating selection resolving and composition."""

from skill_stack.compose.engine import CompositionEngine
from skill_stack.compose.template import RoleTemplate, Slot
from skill_stack.config.schema import (
    CategoryConfig,
    GroupRule,
    RelationshipRules,
    UnitRecord,
)
from skill_stack.core.catalog import UnitCatalog
from skill_stack.core.errors import ConflictDetected
from skill_stack.core.graph import RelationshipGraph
from skill_stack.core.resolver import SelectionResolver
from skill_stack.utils.hashing import hash_content


def unit(unit_id: str, category: str, **kwargs) -> UnitRecord:
    body = f"# {unit_id}\n\nGuidance for {unit_id}."
    return UnitRecord(
        id=unit_id, category=category, body=body, content_hash=hash_content(body), **kwargs
    )


def build_resolver() -> SelectionResolver:
    catalog = UnitCatalog.from_records(
        [
            unit("react", "framework"),
            unit("vue", "framework"),
            unit("redux", "state", requires=["react"]),
            unit("vitest", "testing"),
            unit("jest", "testing"),
        ],
        categories={"framework": CategoryConfig(exclusive=True)},
        rules=RelationshipRules(
            conflicts=[GroupRule(units=["vitest", "jest"], reason="Pick one test runner")]
        ),
    )
    return SelectionResolver(RelationshipGraph(catalog))


def example_add_with_requirements(resolver: SelectionResolver) -> frozenset[str]:
    """Example: Adding a unit pulls in what it requires."""
    result = resolver.add(frozenset(), "redux")
    for effect in result.side_effects:
        print(f"  {effect.describe()}")
    print(f"  Selection: {sorted(result.selection)}")
    return result.selection


def example_substitution(resolver: SelectionResolver, selection: frozenset[str]) -> None:
    """Example: Exclusive categories substitute instead of failing."""
    result = resolver.add(selection, "vue")
    for effect in result.side_effects:
        print(f"  {effect.describe()}")
    print(f"  Selection: {sorted(result.selection)}")


def example_conflict(resolver: SelectionResolver) -> None:
    """Example: Conflicting units are rejected."""
    try:
        resolver.add(frozenset({"vitest"}), "jest")
    except ConflictDetected as e:
        print(f"  Rejected: {e.message}")


def example_compose(resolver: SelectionResolver, selection: frozenset[str]) -> None:
    """Example: Compose a selection into a template."""
    template = RoleTemplate(
        name="frontend-developer",
        preamble="# Frontend Developer",
        slots=(
            Slot("framework", categories=frozenset({"framework", "state"})),
            Slot("testing", categories=frozenset({"testing"})),
        ),
    )
    artifact = CompositionEngine(resolver.graph).compose(selection, template)
    print(artifact.text)
    print(f"  Composed hash: {artifact.composed_hash[:12]}")


if __name__ == "__main__":
    print("Selection Resolver Usage Examples")
    print("=" * 50)
    print()

    resolver = build_resolver()

    print("1. Add a unit with requirements")
    selection = example_add_with_requirements(resolver)
    print()

    print("2. Substitute within an exclusive category")
    example_substitution(resolver, selection)
    print()

    print("3. Conflicting units")
    example_conflict(resolver)
    print()

    print("4. Compose the selection")
    example_compose(resolver, selection)
