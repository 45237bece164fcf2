"""Stack compiler orchestrator.

This module ties the pipeline together. For each profile, it:
1. Takes the profile's accepted selection
2. Composes every template of the profile with the composition engine
3. Tracks each composition's version in the manifest registry
4. Writes the artifacts whose content changed to the output directory

Unchanged compositions are neither re-versioned nor rewritten.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from skill_stack.compose.engine import ComposedArtifact, CompositionEngine
from skill_stack.compose.template import RoleTemplate
from skill_stack.compose.versioning import VersionTracker
from skill_stack.config.loader import load_unit_records
from skill_stack.config.schema import ProjectConfig
from skill_stack.core.catalog import UnitCatalog
from skill_stack.core.errors import ConflictDetected
from skill_stack.core.graph import RelationshipGraph
from skill_stack.core.registry import ManifestRegistry
from skill_stack.core.resolver import Selection, SelectionResolver, SideEffectKind
from skill_stack.core.selections import SelectionStore
from skill_stack.utils.output import print_info, print_success, print_verbose
from skill_stack.utils.paths import ensure_dir, resolve_against


@dataclass
class StackContext:
    """Everything built once per invocation.

    The catalog, graph and templates are read-only and shared by every
    resolver and composer call.

    Attributes:
        config: The project configuration
        base_dir: Directory relative paths are resolved against
        catalog: Unit catalog built from the config
        graph: Relationship graph over the catalog
        templates: Role templates by name
    """

    config: ProjectConfig
    base_dir: Path
    catalog: UnitCatalog
    graph: RelationshipGraph
    templates: dict[str, RoleTemplate] = field(default_factory=dict)

    @property
    def resolver(self) -> SelectionResolver:
        return SelectionResolver(self.graph)

    @property
    def engine(self) -> CompositionEngine:
        return CompositionEngine(self.graph)

    @property
    def output_dir(self) -> Path:
        return resolve_against(self.base_dir, self.config.settings.output_dir)

    @property
    def state_dir(self) -> Path:
        return resolve_against(self.base_dir, self.config.settings.state_dir)

    def templates_for(self, profile: str) -> list[RoleTemplate]:
        """Templates compiled for a profile, in declaration order.

        Raises:
            KeyError: If the profile is not configured
        """
        profile_config = self.config.profiles[profile]
        return [self.templates[name] for name in profile_config.templates]


def build_context(config: ProjectConfig, base_dir: Path) -> StackContext:
    """Build the catalog, graph and templates for a project.

    Raises:
        UnknownUnitReference, DuplicateUnit, CycleDetected: On structural
            problems in the project data
        HashComputationFailure: If a unit body cannot be read
    """
    records = load_unit_records(config, base_dir)
    catalog = UnitCatalog.from_config(config, records)
    print_verbose(f"Loaded {len(catalog)} unit(s) in {len(catalog.categories)} category(ies)")

    graph = RelationshipGraph(catalog)
    print_verbose(f"Built relationship graph with {len(graph.edges())} edge(s)")

    templates = {
        t.name: RoleTemplate.from_config(t, config.settings.separator) for t in config.templates
    }

    return StackContext(
        config=config,
        base_dir=base_dir,
        catalog=catalog,
        graph=graph,
        templates=templates,
    )


def initial_selection(context: StackContext, profile: str) -> Selection:
    """Resolve a profile's configured starting selection.

    Units are added one by one through the resolver, so requirements are
    pulled in and conflicts are rejected exactly as for interactive adds.
    A configured unit is never substituted by another configured unit.

    Raises:
        ConflictDetected, UnknownUnitReference: If the configured selection
            cannot be resolved, or names two units of one exclusive category
    """
    resolver = context.resolver
    selection: Selection = frozenset()
    for unit_ref in context.config.profiles[profile].selection:
        result = resolver.add(selection, unit_ref)
        for effect in result.side_effects:
            if effect.kind == SideEffectKind.REPLACED:
                category = context.catalog.get(effect.unit_id).category
                raise ConflictDetected(
                    effect.unit_id,
                    effect.cause,
                    f"both configured for profile '{profile}' "
                    f"but category '{category}' is exclusive",
                )
        selection = result.selection
    return selection


def load_selection(context: StackContext, store: SelectionStore, profile: str) -> Selection:
    """Persisted selection of a profile, falling back to its configured one."""
    if store.has(profile):
        return context.resolver.normalize(store.get(profile))
    return initial_selection(context, profile)


@dataclass(frozen=True)
class CompileOutcome:
    """Result of compiling one template for a profile."""

    identity: str
    artifact: ComposedArtifact
    path: Path
    changed: bool
    written: bool


def artifact_identity(profile: str, template: str) -> str:
    return f"{profile}/{template}"


def compile_profile(
    context: StackContext,
    profile: str,
    selection: Iterable[str],
    registry: ManifestRegistry,
    output_dir: Optional[Path] = None,
    dry_run: bool = False,
) -> list[CompileOutcome]:
    """Compile every template of a profile.

    Args:
        context: Stack context
        profile: Profile name
        selection: The profile's accepted selection
        registry: Loaded manifest registry
        output_dir: Override for the output directory
        dry_run: Compose and compare without saving manifests or writing files

    Returns:
        One CompileOutcome per template

    Raises:
        InvalidSelectionPassedToComposer: If the selection is not valid
        HashComputationFailure: If hashing fails for this compile
    """
    output_dir = output_dir or context.output_dir
    profile_dir = output_dir / profile
    engine = context.engine
    tracker = VersionTracker(registry)
    selection = frozenset(selection)
    outcomes = []

    print_info(f"Compiling profile: {profile}")

    for template in context.templates_for(profile):
        identity = artifact_identity(profile, template.name)
        artifact = engine.compose(selection, template)
        path = profile_dir / f"{template.name}.md"

        if dry_run:
            changed = tracker.check(identity, artifact)
            previous = registry.get(identity)
            version = previous.version if previous else 0
            if changed:
                print_info(f"  {template.name}.md would be written (v{version + 1})")
            else:
                print_info(f"  {template.name}.md unchanged (v{version})")
            outcomes.append(CompileOutcome(identity, artifact, path, changed, written=False))
            continue

        result = tracker.track(identity, artifact)
        written = False
        # Unchanged compositions are only rewritten when the file went missing
        if result.changed or not path.exists():
            ensure_dir(path.parent)
            path.write_bytes(result.artifact.content)
            written = True

        if result.changed:
            print_success(f"  {template.name}.md (v{result.manifest.version})")
        else:
            print_info(f"  {template.name}.md unchanged (v{result.manifest.version})")
        print_verbose(f"composed hash {result.manifest.composed_hash}")

        outcomes.append(CompileOutcome(identity, result.artifact, path, result.changed, written))

    return outcomes
