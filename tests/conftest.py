"""Shared pytest fixtures for skill-stack tests."""

import pytest
import yaml

from skill_stack.config.schema import (
    CategoryConfig,
    GroupRule,
    RecommendRule,
    RelationshipRules,
    UnitRecord,
)
from skill_stack.core.catalog import UnitCatalog
from skill_stack.core.graph import RelationshipGraph
from skill_stack.core.resolver import SelectionResolver
from skill_stack.utils.hashing import hash_content


def make_record(unit_id: str, category: str, **kwargs) -> UnitRecord:
    """Build a unit record with a body and content hash derived from its id."""
    body = kwargs.pop("body", f"# {unit_id}\n\nGuidance for {unit_id}.")
    return UnitRecord(
        id=unit_id,
        category=category,
        body=body,
        content_hash=kwargs.pop("content_hash", hash_content(body)),
        **kwargs,
    )


@pytest.fixture
def frontend_records():
    """Unit records for a small frontend stack."""
    return [
        make_record("react", "framework"),
        make_record("vue", "framework"),
        make_record("redux", "state", requires=["react"]),
        make_record("zustand", "state", requires=["react"], recommends=["vitest"]),
        make_record("pinia", "state", requires=["vue"]),
        make_record("vitest", "testing"),
        make_record("jest", "testing"),
        make_record("msw-setup", "mocking", provides_setup_for=["msw"]),
        make_record("msw", "mocking"),
        make_record("tailwind", "styling"),
        make_record("scss-modules", "styling"),
    ]


@pytest.fixture
def frontend_categories():
    """Category table for the frontend stack."""
    return {
        "framework": CategoryConfig(description="UI framework", exclusive=True),
        "state": CategoryConfig(description="State management"),
        "testing": CategoryConfig(description="Testing"),
    }


@pytest.fixture
def frontend_rules():
    """Matrix-level rules for the frontend stack."""
    return RelationshipRules(
        conflicts=[GroupRule(units=["vitest", "jest"], reason="Pick one test runner")],
        discourages=[
            GroupRule(units=["tailwind", "scss-modules"], reason="Two styling approaches")
        ],
        recommends=[
            RecommendRule(when="react", suggest=["tailwind"], reason="Utility-first styling")
        ],
    )


@pytest.fixture
def frontend_catalog(frontend_records, frontend_categories, frontend_rules):
    """Catalog built from the frontend stack."""
    return UnitCatalog.from_records(
        frontend_records,
        categories=frontend_categories,
        rules=frontend_rules,
        aliases={"r": "react"},
    )


@pytest.fixture
def frontend_graph(frontend_catalog):
    """Relationship graph over the frontend catalog."""
    return RelationshipGraph(frontend_catalog)


@pytest.fixture
def resolver(frontend_graph):
    """Selection resolver over the frontend graph."""
    return SelectionResolver(frontend_graph)


@pytest.fixture
def project_config_dict():
    """A complete project configuration as a dictionary."""
    return {
        "version": "1.0",
        "settings": {
            "output_dir": "out",
            "state_dir": "state",
        },
        "categories": {
            "framework": {"description": "UI framework", "exclusive": True},
            "state": {"description": "State management"},
            "testing": {"description": "Testing"},
        },
        "units": [
            {"id": "react", "category": "framework", "body_path": "units/react.md"},
            {"id": "vue", "category": "framework", "body": "# Vue"},
            {"id": "redux", "category": "state", "requires": ["react"], "body": "# Redux"},
            {"id": "vitest", "category": "testing", "body": "# Vitest"},
            {"id": "jest", "category": "testing", "conflicts": ["vitest"], "body": "# Jest"},
        ],
        "aliases": {"r": "react"},
        "templates": [
            {
                "name": "frontend-developer",
                "preamble": "# Frontend Developer",
                "slots": [
                    {"name": "framework", "categories": ["framework", "state"]},
                    {"name": "testing", "categories": ["testing"]},
                ],
            },
            {
                "name": "tester",
                "slots": [{"name": "testing", "categories": ["testing"]}],
            },
        ],
        "profiles": {
            "web": {
                "templates": ["frontend-developer", "tester"],
                "selection": ["redux"],
            },
        },
    }


@pytest.fixture
def project_dir(tmp_path, project_config_dict):
    """A project directory with stack.yaml and a unit body file."""
    project = tmp_path / "project"
    (project / "units").mkdir(parents=True)
    (project / "units" / "react.md").write_text("# React\n\nUse hooks.")
    (project / "stack.yaml").write_text(yaml.dump(project_config_dict, sort_keys=False))
    return project
