"""Selection resolver.

This module computes the effect of adding or removing a unit:
- Pulls in the transitive requirements of an added unit
- Rejects additions that conflict with any selected unit
- Substitutes units of exclusive categories instead of rejecting them
- Asks for confirmation before removing units that depend on a removed one
- Surfaces recommends/discourages relationships as non-blocking hints

The resolver never mutates its inputs. Every operation returns a new
selection that the caller may apply or discard.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import AbstractSet, Iterable, Optional

from skill_stack.core.errors import ConflictDetected, StackError, UnknownUnitReference
from skill_stack.core.graph import RelationshipGraph
from skill_stack.core.unit import EdgeKind

Selection = frozenset[str]


class SideEffectKind(str, Enum):
    """What happened to a unit as a consequence of an operation."""

    ADDED = "added"
    REPLACED = "replaced"
    REMOVED = "removed"
    RECOMMENDED = "recommended"
    DISCOURAGED = "discouraged"


ADVISORY_KINDS = frozenset({SideEffectKind.RECOMMENDED, SideEffectKind.DISCOURAGED})


@dataclass(frozen=True)
class SideEffect:
    """A change (or hint) about a unit the caller did not ask for directly.

    Attributes:
        kind: What happened
        unit_id: The unit affected (or suggested/discouraged)
        cause: The unit whose addition/removal triggered it
        reason: Human-readable reason, when the relationship carries one
    """

    kind: SideEffectKind
    unit_id: str
    cause: str
    reason: Optional[str] = None

    @property
    def advisory(self) -> bool:
        """Hints never change the selection."""
        return self.kind in ADVISORY_KINDS

    def describe(self) -> str:
        """One-line description for display."""
        if self.kind == SideEffectKind.ADDED:
            text = f"'{self.unit_id}' added (required by '{self.cause}')"
        elif self.kind == SideEffectKind.REPLACED:
            text = f"'{self.unit_id}' replaced by '{self.cause}'"
        elif self.kind == SideEffectKind.REMOVED:
            text = f"'{self.unit_id}' removed (depends on '{self.cause}')"
        elif self.kind == SideEffectKind.RECOMMENDED:
            text = f"'{self.unit_id}' is recommended by '{self.cause}'"
        else:
            text = f"'{self.unit_id}' is discouraged alongside '{self.cause}'"
        if self.reason and self.advisory:
            text = f"{text}: {self.reason}"
        return text


@dataclass(frozen=True)
class CascadeRequired:
    """Removing ``unit_id`` would also remove ``dependents``.

    Not an error: a pending decision the caller resolves by re-invoking the
    removal with ``confirm=True`` or by dropping the request.
    """

    unit_id: str
    dependents: tuple[str, ...]

    def describe(self) -> str:
        return (
            f"Removing '{self.unit_id}' also removes units that depend on it: "
            f"{', '.join(self.dependents)}"
        )


class SelectionAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class SelectionOp:
    """A requested change to a selection."""

    action: SelectionAction
    unit_id: str
    confirm: bool = False


class ResolveStatus(str, Enum):
    OK = "ok"
    CASCADE_REQUIRED = "cascade_required"
    FAILED = "failed"


@dataclass
class ResolveResult:
    """Outcome of a resolver operation.

    Attributes:
        selection: The resulting selection (unchanged on cascade or failure)
        side_effects: Implicit changes and advisory hints
        cascade: Set when a removal needs explicit confirmation
        error: Set when the operation was rejected
    """

    selection: Selection
    side_effects: list[SideEffect] = field(default_factory=list)
    cascade: Optional[CascadeRequired] = None
    error: Optional[StackError] = None

    @property
    def status(self) -> ResolveStatus:
        if self.error is not None:
            return ResolveStatus.FAILED
        if self.cascade is not None:
            return ResolveStatus.CASCADE_REQUIRED
        return ResolveStatus.OK

    def effects_of(self, kind: SideEffectKind) -> list[str]:
        """Unit ids affected by side effects of one kind."""
        return [effect.unit_id for effect in self.side_effects if effect.kind == kind]

    @property
    def hints(self) -> list[SideEffect]:
        return [effect for effect in self.side_effects if effect.advisory]


@dataclass(frozen=True)
class UnitOption:
    """State of a unit relative to a selection, for display."""

    unit_id: str
    name: str
    category: str
    description: Optional[str]
    alias: Optional[str]
    selected: bool
    disabled: bool = False
    disabled_reason: Optional[str] = None
    discouraged: bool = False
    discouraged_reason: Optional[str] = None
    recommended: bool = False
    recommended_reason: Optional[str] = None
    would_add: tuple[str, ...] = ()
    would_replace: tuple[str, ...] = ()


class SelectionResolver:
    """Resolves add/remove requests against a relationship graph."""

    def __init__(self, graph: RelationshipGraph):
        self.graph = graph
        self.catalog = graph.catalog

    def normalize(self, selection: Iterable[str]) -> Selection:
        """Resolve aliases in a selection.

        Raises:
            UnknownUnitReference: If the selection names an unknown unit
        """
        return frozenset(self.catalog.require(ref) for ref in selection)

    def add(self, selection: Iterable[str], unit_ref: str) -> ResolveResult:
        """Add a unit, its requirements, and any exclusive-category substitutions.

        Args:
            selection: Current selection
            unit_ref: Unit id or alias to add

        Returns:
            ResolveResult with the new selection and side effects

        Raises:
            UnknownUnitReference: If the unit (or a selected unit) is unknown
            ConflictDetected: If the unit or its requirements conflict with
                each other or with any selected unit
        """
        unit_id = self.catalog.require(unit_ref)
        current = self.normalize(selection)

        if unit_id in current:
            return ResolveResult(selection=current)

        needed = self.graph.requirements_of(unit_id)
        incoming = needed | {unit_id}
        self._check_internal_consistency(incoming)

        # Conflicts with anything already selected block the add, including
        # units an exclusive substitution would otherwise remove
        for new_id in sorted(incoming):
            for existing in sorted(current - incoming):
                if self.graph.conflicts_with(new_id, existing):
                    raise ConflictDetected(
                        new_id,
                        existing,
                        self.graph.reason(EdgeKind.CONFLICTS, new_id, existing),
                    )

        replaced: dict[str, str] = {}
        for new_id in sorted(incoming):
            category = self.catalog.get(new_id).category
            if not self.catalog.is_exclusive(category):
                continue
            for existing in sorted(current - incoming):
                if self.catalog.get(existing).category == category:
                    replaced[existing] = new_id

        # Units depending on a replaced unit leave with it
        cascaded: dict[str, str] = {}
        for old_id in sorted(replaced):
            for dependent in sorted(self.graph.dependents_of(old_id) & current):
                if dependent not in replaced and dependent not in cascaded:
                    cascaded[dependent] = old_id

        result = (current - replaced.keys() - cascaded.keys()) | incoming

        side_effects = [
            SideEffect(SideEffectKind.ADDED, needed_id, self._direct_dependent(needed_id, unit_id))
            for needed_id in sorted(needed - current)
        ]
        side_effects += [
            SideEffect(SideEffectKind.REPLACED, old_id, new_id)
            for old_id, new_id in sorted(replaced.items())
        ]
        side_effects += [
            SideEffect(SideEffectKind.REMOVED, dependent, old_id)
            for dependent, old_id in sorted(cascaded.items())
        ]
        side_effects += self._hints(incoming - current, result)

        return ResolveResult(selection=result, side_effects=side_effects)

    def remove(
        self, selection: Iterable[str], unit_ref: str, confirm: bool = False
    ) -> ResolveResult:
        """Remove a unit, cascading to its dependents only when confirmed.

        Args:
            selection: Current selection
            unit_ref: Unit id or alias to remove
            confirm: Whether the caller agreed to remove dependents too

        Returns:
            ResolveResult; when dependents exist and ``confirm`` is False the
            selection is unchanged and ``cascade`` names the dependents

        Raises:
            UnknownUnitReference: If the unit (or a selected unit) is unknown
        """
        unit_id = self.catalog.require(unit_ref)
        current = self.normalize(selection)

        if unit_id not in current:
            return ResolveResult(selection=current)

        dependents = sorted(self.graph.dependents_of(unit_id) & current)

        if dependents and not confirm:
            return ResolveResult(
                selection=current,
                cascade=CascadeRequired(unit_id=unit_id, dependents=tuple(dependents)),
            )

        result = current - {unit_id} - set(dependents)
        side_effects = [
            SideEffect(SideEffectKind.REMOVED, dependent, unit_id) for dependent in dependents
        ]
        return ResolveResult(selection=result, side_effects=side_effects)

    def resolve(self, selection: Iterable[str], op: SelectionOp) -> ResolveResult:
        """Apply an operation, reporting recoverable failures in the result.

        ``ConflictDetected`` and ``UnknownUnitReference`` are returned in
        ``error`` with the input selection unchanged.
        """
        selection = frozenset(selection)
        try:
            if op.action == SelectionAction.ADD:
                return self.add(selection, op.unit_id)
            return self.remove(selection, op.unit_id, confirm=op.confirm)
        except (ConflictDetected, UnknownUnitReference) as e:
            return ResolveResult(selection=selection, error=e)

    def options(self, category: str, selection: Iterable[str]) -> list[UnitOption]:
        """Describe every unit of a category relative to a selection.

        A unit is disabled when adding it would fail; discouraged when it and
        a selected unit discourage each other; recommended when a selected
        unit recommends it.
        """
        current = self.normalize(selection)
        options = []

        for unit in self.catalog.units_in_category(category):
            selected = unit.id in current
            disabled_reason = None
            would_add: tuple[str, ...] = ()
            would_replace: tuple[str, ...] = ()

            if not selected:
                try:
                    preview = self.add(current, unit.id)
                    would_add = tuple(preview.effects_of(SideEffectKind.ADDED))
                    would_replace = tuple(
                        preview.effects_of(SideEffectKind.REPLACED)
                        + preview.effects_of(SideEffectKind.REMOVED)
                    )
                except ConflictDetected as e:
                    disabled_reason = e.message

            discouraged_reason = None
            recommended_reason = None
            for other in sorted(current - {unit.id}):
                if discouraged_reason is None:
                    reason = self.graph.reason(
                        EdgeKind.DISCOURAGES, other, unit.id
                    ) or self.graph.reason(EdgeKind.DISCOURAGES, unit.id, other)
                    if reason:
                        discouraged_reason = f"{reason} (with '{other}')"
                if recommended_reason is None:
                    reason = self.graph.reason(EdgeKind.RECOMMENDS, other, unit.id)
                    if reason:
                        recommended_reason = f"{reason} (recommended by '{other}')"

            disabled = disabled_reason is not None
            discouraged = not disabled and discouraged_reason is not None
            recommended = not disabled and not discouraged and recommended_reason is not None

            options.append(
                UnitOption(
                    unit_id=unit.id,
                    name=unit.display_name,
                    category=unit.category,
                    description=unit.description,
                    alias=self.catalog.alias_for(unit.id),
                    selected=selected,
                    disabled=disabled,
                    disabled_reason=disabled_reason,
                    discouraged=discouraged,
                    discouraged_reason=discouraged_reason if discouraged else None,
                    recommended=recommended,
                    recommended_reason=recommended_reason if recommended else None,
                    would_add=would_add,
                    would_replace=would_replace,
                )
            )

        return options

    def _check_internal_consistency(self, incoming: AbstractSet[str]) -> None:
        """Reject a unit whose own requirements contradict each other."""
        ordered = sorted(incoming)
        for i, unit_a in enumerate(ordered):
            for unit_b in ordered[i + 1:]:
                if self.graph.conflicts_with(unit_a, unit_b):
                    raise ConflictDetected(
                        unit_a, unit_b, self.graph.reason(EdgeKind.CONFLICTS, unit_a, unit_b)
                    )
                category = self.catalog.get(unit_a).category
                if (
                    self.catalog.is_exclusive(category)
                    and self.catalog.get(unit_b).category == category
                ):
                    raise ConflictDetected(
                        unit_a, unit_b, f"both required but category '{category}' is exclusive"
                    )

    def _direct_dependent(self, needed_id: str, root: str) -> str:
        """Pick the unit that directly pulls ``needed_id`` in, for display."""
        candidates = [root, *sorted(self.graph.requirements_of(root))]
        for candidate in candidates:
            direct = self.graph.targets(EdgeKind.REQUIRES, candidate) | self.graph.targets(
                EdgeKind.SETUP_DEPENDENCY, candidate
            )
            if needed_id in direct:
                return candidate
        return root

    def _hints(self, added: AbstractSet[str], result: AbstractSet[str]) -> list[SideEffect]:
        """Advisory side effects for newly added units."""
        hints = []

        for new_id in sorted(added):
            for recommended in sorted(self.graph.targets(EdgeKind.RECOMMENDS, new_id) - result):
                if any(self.graph.conflicts_with(recommended, other) for other in result):
                    continue
                hints.append(
                    SideEffect(
                        SideEffectKind.RECOMMENDED,
                        recommended,
                        new_id,
                        self.graph.reason(EdgeKind.RECOMMENDS, new_id, recommended),
                    )
                )

        seen: set[frozenset[str]] = set()
        for new_id in sorted(added):
            for other in sorted(result - {new_id}):
                pair = frozenset((new_id, other))
                if pair in seen:
                    continue
                reason = self.graph.reason(
                    EdgeKind.DISCOURAGES, new_id, other
                ) or self.graph.reason(EdgeKind.DISCOURAGES, other, new_id)
                if reason:
                    seen.add(pair)
                    hints.append(SideEffect(SideEffectKind.DISCOURAGED, new_id, other, reason))

        return hints
