"""Core unit and relationship models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class EdgeKind(str, Enum):
    """Kinds of relationship edges between units."""

    REQUIRES = "requires"
    CONFLICTS = "conflicts"
    RECOMMENDS = "recommends"
    DISCOURAGES = "discourages"
    SETUP_DEPENDENCY = "setup_dependency"


@dataclass(frozen=True)
class RelationshipEdge:
    """A directed, typed edge ``from_unit -> to_unit``.

    Conflict edges are stored in both directions.
    """

    from_unit: str
    to_unit: str
    kind: EdgeKind
    reason: str = "Defined in unit metadata"


@dataclass(frozen=True)
class Category:
    """A grouping of units."""

    id: str
    exclusive: bool = False
    description: Optional[str] = None


@dataclass(frozen=True)
class Unit:
    """A named content block (a skill)."""

    id: str
    category: str
    body: str
    content_hash: str
    name: str = ""
    description: Optional[str] = None
    requires: frozenset[str] = field(default_factory=frozenset)
    conflicts: frozenset[str] = field(default_factory=frozenset)
    recommends: frozenset[str] = field(default_factory=frozenset)
    discourages: frozenset[str] = field(default_factory=frozenset)
    requires_setup: frozenset[str] = field(default_factory=frozenset)
    provides_setup_for: frozenset[str] = field(default_factory=frozenset)

    @property
    def display_name(self) -> str:
        """Name shown to users, derived from the id when not declared."""
        return self.name or display_name_from_id(self.id)

    @property
    def sort_key(self) -> tuple[str, str]:
        """Total order used for deterministic composition."""
        return (self.category, self.id)


def display_name_from_id(unit_id: str) -> str:
    """Derive a display name from a unit id.

    e.g. ``"frontend/state-zustand"`` -> ``"State Zustand"``
    """
    last = unit_id.rstrip("/").split("/")[-1] or unit_id
    return " ".join(word.capitalize() for word in last.split("-") if word)
