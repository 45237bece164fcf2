"""Immutable catalog of units and their declared relationships."""

from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional

from skill_stack.config.schema import (
    DEFAULT_REASON,
    CategoryConfig,
    ProjectConfig,
    RelationshipRules,
    UnitRecord,
)
from skill_stack.core.errors import ConflictDetected, DuplicateUnit, UnknownUnitReference
from skill_stack.core.unit import Category, EdgeKind, RelationshipEdge, Unit

# Record fields holding plain directed edges
_DIRECTED_FIELDS = (
    ("requires", EdgeKind.REQUIRES),
    ("recommends", EdgeKind.RECOMMENDS),
    ("discourages", EdgeKind.DISCOURAGES),
    ("requires_setup", EdgeKind.SETUP_DEPENDENCY),
)


class UnitCatalog:
    """Index of all known units, by id and by category.

    A catalog is built once from parsed records and never changes afterwards.
    Construction rejects duplicate ids and any relationship, rule or alias
    that references an unknown unit, so every edge in ``edges`` is between
    two units of this catalog. Updating the catalog means building a new one.
    """

    def __init__(
        self,
        units: Iterable[Unit],
        categories: Iterable[Category],
        edges: Iterable[RelationshipEdge],
        aliases: Optional[Mapping[str, str]] = None,
    ):
        """Initialize from already-validated parts.

        Use :meth:`from_records` to build a catalog from parsed input.
        """
        self._units = MappingProxyType({u.id: u for u in sorted(units, key=lambda u: u.id)})
        self._categories = MappingProxyType({c.id: c for c in categories})
        self._edges = tuple(edges)
        self._aliases = MappingProxyType(dict(aliases or {}))

        by_category: dict[str, list[str]] = {}
        for unit in self._units.values():
            by_category.setdefault(unit.category, []).append(unit.id)
        self._by_category = MappingProxyType(
            {category: tuple(ids) for category, ids in by_category.items()}
        )

    @classmethod
    def from_records(
        cls,
        records: Iterable[UnitRecord],
        categories: Optional[Mapping[str, CategoryConfig]] = None,
        rules: Optional[RelationshipRules] = None,
        aliases: Optional[Mapping[str, str]] = None,
    ) -> "UnitCatalog":
        """Build a catalog from parsed unit records.

        Args:
            records: Parsed unit records (body and content_hash populated)
            categories: Optional category table (exclusivity, descriptions)
            rules: Optional matrix-level relationship rules with reasons
            aliases: Optional alias -> unit id map

        Returns:
            A new UnitCatalog

        Raises:
            DuplicateUnit: If two records (or an alias and a record) share an id
            UnknownUnitReference: If a relationship, rule or alias names an
                unknown unit
            ConflictDetected: If a unit declares a conflict with itself
        """
        records = list(records)
        categories = categories or {}
        rules = rules or RelationshipRules()
        aliases = dict(aliases or {})

        known: set[str] = set()
        for record in records:
            if record.id in known:
                raise DuplicateUnit(record.id)
            known.add(record.id)

        for alias, target in aliases.items():
            if alias in known:
                raise DuplicateUnit(alias)
            if target not in known:
                raise UnknownUnitReference(target, referenced_by=f"alias:{alias}")

        def resolve(ref: str, referenced_by: str) -> str:
            full_id = aliases.get(ref, ref)
            if full_id not in known:
                raise UnknownUnitReference(ref, referenced_by=referenced_by)
            return full_id

        edges: dict[tuple[str, str, EdgeKind], RelationshipEdge] = {}

        def add_edge(from_unit: str, to_unit: str, kind: EdgeKind, reason: str) -> None:
            if from_unit == to_unit and kind == EdgeKind.CONFLICTS:
                raise ConflictDetected(from_unit, to_unit, "unit declares a conflict with itself")
            if from_unit == to_unit and kind in (EdgeKind.RECOMMENDS, EdgeKind.DISCOURAGES):
                return
            key = (from_unit, to_unit, kind)
            if key not in edges:
                edges[key] = RelationshipEdge(from_unit, to_unit, kind, reason)

        # Per-unit declarations
        for record in records:
            for field_name, kind in _DIRECTED_FIELDS:
                for ref in getattr(record, field_name):
                    add_edge(record.id, resolve(ref, record.id), kind, DEFAULT_REASON)
            for ref in record.conflicts:
                other = resolve(ref, record.id)
                add_edge(record.id, other, EdgeKind.CONFLICTS, DEFAULT_REASON)
                add_edge(other, record.id, EdgeKind.CONFLICTS, DEFAULT_REASON)
            for ref in record.provides_setup_for:
                # The usage unit depends on this setup unit
                usage = resolve(ref, record.id)
                add_edge(usage, record.id, EdgeKind.SETUP_DEPENDENCY, DEFAULT_REASON)

        # Matrix-level rules
        for rule in rules.conflicts:
            group = [resolve(ref, "rule:conflicts") for ref in rule.units]
            for a in group:
                for b in group:
                    if a != b:
                        add_edge(a, b, EdgeKind.CONFLICTS, rule.reason)
        for rule in rules.discourages:
            group = [resolve(ref, "rule:discourages") for ref in rule.units]
            for a in group:
                for b in group:
                    if a != b:
                        add_edge(a, b, EdgeKind.DISCOURAGES, rule.reason)
        for rule in rules.recommends:
            when = resolve(rule.when, "rule:recommends")
            for ref in rule.suggest:
                add_edge(when, resolve(ref, when), EdgeKind.RECOMMENDS, rule.reason)
        for rule in rules.requires:
            unit_id = resolve(rule.unit, "rule:requires")
            for ref in rule.needs:
                add_edge(unit_id, resolve(ref, unit_id), EdgeKind.REQUIRES, rule.reason)

        outgoing: dict[str, dict[EdgeKind, set[str]]] = {}
        for edge in edges.values():
            outgoing.setdefault(edge.from_unit, {}).setdefault(edge.kind, set()).add(edge.to_unit)

        def targets(unit_id: str, kind: EdgeKind) -> frozenset[str]:
            return frozenset(outgoing.get(unit_id, {}).get(kind, ()))

        provides: dict[str, set[str]] = {}
        for edge in edges.values():
            if edge.kind == EdgeKind.SETUP_DEPENDENCY:
                provides.setdefault(edge.to_unit, set()).add(edge.from_unit)

        units = [
            Unit(
                id=record.id,
                category=record.category,
                body=record.body or "",
                content_hash=record.content_hash or "",
                name=record.name or "",
                description=record.description,
                requires=targets(record.id, EdgeKind.REQUIRES),
                conflicts=targets(record.id, EdgeKind.CONFLICTS),
                recommends=targets(record.id, EdgeKind.RECOMMENDS),
                discourages=targets(record.id, EdgeKind.DISCOURAGES),
                requires_setup=targets(record.id, EdgeKind.SETUP_DEPENDENCY),
                provides_setup_for=frozenset(provides.get(record.id, ())),
            )
            for record in records
        ]

        # A category is exclusive if the table or any of its records says so
        category_ids = set(categories) | {record.category for record in records}
        exclusive_by_record = {record.category for record in records if record.exclusive}
        category_objects = []
        for category_id in sorted(category_ids):
            config = categories.get(category_id, CategoryConfig())
            category_objects.append(
                Category(
                    id=category_id,
                    exclusive=config.exclusive or category_id in exclusive_by_record,
                    description=config.description,
                )
            )

        ordered_edges = sorted(
            edges.values(), key=lambda e: (e.kind.value, e.from_unit, e.to_unit)
        )
        return cls(units, category_objects, ordered_edges, aliases)

    @classmethod
    def from_config(cls, config: ProjectConfig, records: Iterable[UnitRecord]) -> "UnitCatalog":
        """Build a catalog from a project config and its materialized records."""
        return cls.from_records(
            records,
            categories=config.categories,
            rules=config.relationships,
            aliases=config.aliases,
        )

    def resolve_alias(self, alias_or_id: str) -> str:
        """Resolve an alias to its unit id; other ids are returned unchanged."""
        return self._aliases.get(alias_or_id, alias_or_id)

    def require(self, alias_or_id: str) -> str:
        """Resolve an alias or id to a known unit id.

        Raises:
            UnknownUnitReference: If the id is not in the catalog
        """
        unit_id = self.resolve_alias(alias_or_id)
        if unit_id not in self._units:
            raise UnknownUnitReference(alias_or_id)
        return unit_id

    def get(self, alias_or_id: str) -> Unit:
        """Get a unit by id or alias.

        Raises:
            UnknownUnitReference: If the id is not in the catalog
        """
        return self._units[self.require(alias_or_id)]

    def units_in_category(self, category: str) -> list[Unit]:
        """Units of a category, in id order."""
        return [self._units[uid] for uid in self._by_category.get(category, ())]

    def is_exclusive(self, category: str) -> bool:
        """Whether at most one unit of the category may be selected."""
        found = self._categories.get(category)
        return found.exclusive if found else False

    @property
    def categories(self) -> list[Category]:
        """All categories, in id order."""
        return [self._categories[c] for c in sorted(self._categories)]

    @property
    def edges(self) -> tuple[RelationshipEdge, ...]:
        """All declared edges, normalized (conflicts in both directions)."""
        return self._edges

    @property
    def aliases(self) -> Mapping[str, str]:
        """Alias -> unit id map."""
        return self._aliases

    def alias_for(self, unit_id: str) -> Optional[str]:
        """Return the alias of a unit, if any."""
        for alias, target in sorted(self._aliases.items()):
            if target == unit_id:
                return alias
        return None

    def __contains__(self, alias_or_id: object) -> bool:
        return isinstance(alias_or_id, str) and self.resolve_alias(alias_or_id) in self._units

    def __iter__(self) -> Iterator[Unit]:
        return iter(self._units.values())

    def __len__(self) -> int:
        return len(self._units)
