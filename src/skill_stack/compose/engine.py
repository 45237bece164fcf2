"""Deterministic composition of a selection into a role template."""

from dataclasses import dataclass
from typing import Iterable, Optional

from skill_stack.compose.template import RoleTemplate, Slot
from skill_stack.core.errors import InvalidSelectionPassedToComposer
from skill_stack.core.graph import RelationshipGraph
from skill_stack.core.unit import Unit
from skill_stack.utils.hashing import compute_composed_hash


@dataclass(frozen=True)
class ComposedArtifact:
    """The output of composing one template.

    Attributes:
        template: Name of the template composed
        content: Composed UTF-8 bytes
        selected_unit_ids: Sorted ids of the selection
        composed_hash: Hash over the unit ids, their content hashes and the
            template identity
        version: Assigned by the version tracker, None until tracked
    """

    template: str
    content: bytes
    selected_unit_ids: tuple[str, ...]
    composed_hash: str
    version: Optional[int] = None

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")


def render_slot(slot: Slot, units: list[Unit], separator: str) -> str:
    """Render one slot, keeping its markers even when no unit matches."""
    parts = [f"<!-- slot: {slot.name} -->"]
    if units:
        parts.append(separator.join(unit.body for unit in units))
    parts.append(f"<!-- /slot: {slot.name} -->")
    return "\n".join(parts)


class CompositionEngine:
    """Merges unit bodies into template slots.

    Units within a slot are ordered by ``(category, id)``, never by the
    order they were selected in, so the same selection always produces the
    same bytes. Bodies are concatenated as-is.
    """

    def __init__(self, graph: RelationshipGraph):
        self.graph = graph
        self.catalog = graph.catalog

    def compose(self, selection: Iterable[str], template: RoleTemplate) -> ComposedArtifact:
        """Compose a valid selection into a template.

        Args:
            selection: Unit ids, as accepted by the resolver
            template: Template to fill

        Returns:
            ComposedArtifact (without a version)

        Raises:
            InvalidSelectionPassedToComposer: If the selection violates
                conflict, exclusivity, requirement or setup invariants
            HashComputationFailure: If a unit's content hash is unusable
        """
        selection = frozenset(selection)
        report = self.graph.validate(selection)
        if not report.valid:
            unit_ids = sorted({uid for issue in report.errors for uid in issue.unit_ids})
            raise InvalidSelectionPassedToComposer(
                [issue.message for issue in report.errors], unit_ids
            )

        units = sorted(
            (self.catalog.get(ref) for ref in selection), key=lambda unit: unit.sort_key
        )

        sections = []
        if template.preamble:
            sections.append(template.preamble.rstrip("\n"))
        for slot in template.slots:
            matching = [unit for unit in units if slot.accepts(unit)]
            sections.append(render_slot(slot, matching, template.separator))

        content = "\n\n".join(sections) + "\n"
        composed_hash = compute_composed_hash(
            ((unit.id, unit.content_hash) for unit in units), template.identity
        )

        return ComposedArtifact(
            template=template.name,
            content=content.encode("utf-8"),
            selected_unit_ids=tuple(unit.id for unit in sorted(units, key=lambda u: u.id)),
            composed_hash=composed_hash,
        )
