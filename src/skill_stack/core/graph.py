"""Relationship graph over a unit catalog.

The graph indexes the catalog's edges per kind and precomputes the
transitive closure of the dependency relation (``requires`` plus
``setup_dependency``) so that "what does X ultimately need" and "who
ultimately needs X" are dictionary lookups.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Optional

from skill_stack.core.catalog import UnitCatalog
from skill_stack.core.errors import CycleDetected
from skill_stack.core.unit import EdgeKind, RelationshipEdge

DEPENDENCY_KINDS = (EdgeKind.REQUIRES, EdgeKind.SETUP_DEPENDENCY)


class _Color(Enum):
    WHITE = 0
    GRAY = 1
    BLACK = 2


@dataclass(frozen=True)
class ValidationIssue:
    """A single validation error or warning about a selection."""

    type: str
    message: str
    unit_ids: tuple[str, ...]


@dataclass
class ValidationReport:
    """Result of validating a selection against the graph."""

    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


class RelationshipGraph:
    """Adjacency lookups per edge kind over an immutable catalog."""

    def __init__(self, catalog: UnitCatalog):
        """Build the graph.

        Args:
            catalog: The catalog to index

        Raises:
            CycleDetected: If the dependency relation contains a cycle
        """
        self.catalog = catalog

        forward: dict[EdgeKind, dict[str, set[str]]] = {kind: {} for kind in EdgeKind}
        backward: dict[EdgeKind, dict[str, set[str]]] = {kind: {} for kind in EdgeKind}
        reasons: dict[tuple[EdgeKind, str, str], str] = {}

        for edge in catalog.edges:
            forward[edge.kind].setdefault(edge.from_unit, set()).add(edge.to_unit)
            backward[edge.kind].setdefault(edge.to_unit, set()).add(edge.from_unit)
            reasons[(edge.kind, edge.from_unit, edge.to_unit)] = edge.reason

        self._forward = {
            kind: {uid: frozenset(ts) for uid, ts in adj.items()} for kind, adj in forward.items()
        }
        self._backward = {
            kind: {uid: frozenset(ss) for uid, ss in adj.items()} for kind, adj in backward.items()
        }
        self._reasons = MappingProxyType(reasons)

        order = self._topological_order()
        self._requirements = MappingProxyType(self._compute_closure(order))

        dependents: dict[str, set[str]] = {unit.id: set() for unit in catalog}
        for unit_id, needed in self._requirements.items():
            for required_id in needed:
                dependents[required_id].add(unit_id)
        self._dependents = MappingProxyType(
            {uid: frozenset(ds) for uid, ds in dependents.items()}
        )

    def _dependencies(self, unit_id: str) -> list[str]:
        """Direct dependencies of a unit, in id order."""
        found: set[str] = set()
        for kind in DEPENDENCY_KINDS:
            found |= self._forward[kind].get(unit_id, frozenset())
        return sorted(found)

    def _topological_order(self) -> list[str]:
        """Order units so every unit comes after its dependencies.

        Uses a three-colour depth-first traversal; reaching a GRAY node means
        the current path loops back on itself.

        Raises:
            CycleDetected: With the cycle path, first unit repeated at the end
        """
        color = {unit.id: _Color.WHITE for unit in self.catalog}
        order: list[str] = []

        for root in sorted(color):
            if color[root] is not _Color.WHITE:
                continue

            path = [root]
            color[root] = _Color.GRAY
            stack = [iter(self._dependencies(root))]

            while stack:
                child = next(stack[-1], None)
                if child is None:
                    finished = path.pop()
                    color[finished] = _Color.BLACK
                    order.append(finished)
                    stack.pop()
                    continue

                if color[child] is _Color.GRAY:
                    start = path.index(child)
                    raise CycleDetected(path[start:] + [child])
                if color[child] is _Color.WHITE:
                    color[child] = _Color.GRAY
                    path.append(child)
                    stack.append(iter(self._dependencies(child)))

        return order

    def _compute_closure(self, order: list[str]) -> dict[str, frozenset[str]]:
        closure: dict[str, frozenset[str]] = {}
        for unit_id in order:
            needed: set[str] = set()
            for dependency in self._dependencies(unit_id):
                needed.add(dependency)
                needed |= closure[dependency]
            closure[unit_id] = frozenset(needed)
        return closure

    def targets(self, kind: EdgeKind, unit_id: str) -> frozenset[str]:
        """Units ``unit_id`` points at through edges of ``kind``."""
        return self._forward[kind].get(unit_id, frozenset())

    def sources(self, kind: EdgeKind, unit_id: str) -> frozenset[str]:
        """Units pointing at ``unit_id`` through edges of ``kind``."""
        return self._backward[kind].get(unit_id, frozenset())

    def edges(self, kind: Optional[EdgeKind] = None) -> list[RelationshipEdge]:
        """All edges, optionally filtered by kind."""
        return [e for e in self.catalog.edges if kind is None or e.kind == kind]

    def reason(self, kind: EdgeKind, from_unit: str, to_unit: str) -> Optional[str]:
        """Reason attached to an edge, or None if no such edge exists."""
        return self._reasons.get((kind, from_unit, to_unit))

    def conflicts_with(self, unit_a: str, unit_b: str) -> bool:
        """Whether two units are joined by a conflict edge."""
        return unit_b in self.targets(EdgeKind.CONFLICTS, unit_a)

    def requirements_of(self, unit_id: str) -> frozenset[str]:
        """Everything ``unit_id`` transitively needs (requirements and setup)."""
        return self._requirements.get(unit_id, frozenset())

    def dependents_of(self, unit_id: str) -> frozenset[str]:
        """Every unit that transitively needs ``unit_id``."""
        return self._dependents.get(unit_id, frozenset())

    def validate(self, selection: Iterable[str]) -> ValidationReport:
        """Check a selection against every relationship in the graph.

        Errors make the selection invalid: conflicts, more than one unit in an
        exclusive category, missing requirements or setup units, unknown ids.
        Warnings are advisory: unmet recommendations, discouraged pairs and
        setup units with no unit using them.

        Args:
            selection: Unit ids (aliases are resolved)

        Returns:
            ValidationReport with errors and warnings
        """
        report = ValidationReport()
        selected: set[str] = set()

        for ref in sorted(selection):
            unit_id = self.catalog.resolve_alias(ref)
            if unit_id not in self.catalog:
                report.errors.append(
                    ValidationIssue("unknown_unit", f"Unknown unit '{ref}'", (ref,))
                )
            else:
                selected.add(unit_id)

        ordered = sorted(selected)

        for i, unit_a in enumerate(ordered):
            for unit_b in ordered[i + 1:]:
                if self.conflicts_with(unit_a, unit_b):
                    reason = self.reason(EdgeKind.CONFLICTS, unit_a, unit_b)
                    report.errors.append(
                        ValidationIssue(
                            "conflict",
                            f"'{unit_a}' conflicts with '{unit_b}': {reason}",
                            (unit_a, unit_b),
                        )
                    )

        by_category: dict[str, list[str]] = {}
        for unit_id in ordered:
            by_category.setdefault(self.catalog.get(unit_id).category, []).append(unit_id)
        for category, members in sorted(by_category.items()):
            if len(members) > 1 and self.catalog.is_exclusive(category):
                report.errors.append(
                    ValidationIssue(
                        "category_exclusive",
                        f"Category '{category}' only allows one selection, "
                        f"but multiple selected: {', '.join(members)}",
                        tuple(members),
                    )
                )

        for unit_id in ordered:
            missing = sorted(self.targets(EdgeKind.REQUIRES, unit_id) - selected)
            if missing:
                report.errors.append(
                    ValidationIssue(
                        "missing_requirement",
                        f"'{unit_id}' requires: {', '.join(missing)}",
                        (unit_id, *missing),
                    )
                )
            missing_setup = sorted(self.targets(EdgeKind.SETUP_DEPENDENCY, unit_id) - selected)
            if missing_setup:
                report.errors.append(
                    ValidationIssue(
                        "missing_setup",
                        f"'{unit_id}' requires setup from: {', '.join(missing_setup)}",
                        (unit_id, *missing_setup),
                    )
                )

        for unit_id in ordered:
            for recommended in sorted(self.targets(EdgeKind.RECOMMENDS, unit_id) - selected):
                # A recommendation that would conflict with the selection is not worth raising
                if any(self.conflicts_with(recommended, other) for other in selected):
                    continue
                reason = self.reason(EdgeKind.RECOMMENDS, unit_id, recommended)
                report.warnings.append(
                    ValidationIssue(
                        "missing_recommendation",
                        f"'{unit_id}' recommends '{recommended}': {reason}",
                        (unit_id, recommended),
                    )
                )
            for discouraged in sorted(self.targets(EdgeKind.DISCOURAGES, unit_id) & selected):
                reason = self.reason(EdgeKind.DISCOURAGES, unit_id, discouraged)
                report.warnings.append(
                    ValidationIssue(
                        "discouraged_pair",
                        f"'{unit_id}' discourages '{discouraged}': {reason}",
                        (unit_id, discouraged),
                    )
                )
            users = self.sources(EdgeKind.SETUP_DEPENDENCY, unit_id)
            if users and not users & selected:
                report.warnings.append(
                    ValidationIssue(
                        "unused_setup",
                        f"Setup unit '{unit_id}' selected but no unit uses it: "
                        f"{', '.join(sorted(users))}",
                        (unit_id, *sorted(users)),
                    )
                )

        return report
