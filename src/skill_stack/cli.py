"""CLI application entry point."""

from pathlib import Path
from typing import NoReturn, Optional

import typer
import yaml
from pydantic import ValidationError
from rich.markup import escape
from rich.table import Table

from skill_stack.compose.compiler import (
    StackContext,
    build_context,
    compile_profile,
    load_selection,
)
from skill_stack.config.loader import PROJECT_CONFIG_NAME, USER_CONFIG_PATH, load_config
from skill_stack.core.errors import StackError
from skill_stack.core.registry import ManifestRegistry
from skill_stack.core.resolver import (
    ResolveResult,
    ResolveStatus,
    SelectionAction,
    SelectionOp,
)
from skill_stack.core.selections import SelectionStore
from skill_stack.utils.output import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
    set_verbose,
)
from skill_stack.utils.paths import expand_path

app = typer.Typer(
    name="skill-stack",
    help="Select skills per stack and compile them into agent files",
    no_args_is_help=True,
)

# Exit codes
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CASCADE_REQUIRED = 3


# Template for init command
TEMPLATE_CONFIG = """version: "1.0"

settings:
  output_dir: ".claude/agents"
  state_dir: ".skill-stack"

categories:
  framework:
    description: "UI framework"
    exclusive: true
  state:
    description: "State management"
    exclusive: true
  testing:
    description: "Testing tools"

units:
  - id: react
    category: framework
    body: "# React\\n\\nUse function components and hooks."
  - id: vue
    category: framework
    body: "# Vue\\n\\nUse the composition API."
  - id: zustand
    category: state
    requires: [react]
    body: "# Zustand\\n\\nKeep stores small."
  - id: vitest
    category: testing
    body: "# Vitest\\n\\nColocate tests with components."

relationships:
  recommends:
    - when: react
      suggest: [vitest]
      reason: "Fast tests for React components"

templates:
  - name: frontend-developer
    preamble: "# Frontend Developer"
    slots:
      - name: framework
        categories: [framework, state]
      - name: testing
        categories: [testing]

profiles:
  web:
    templates: [frontend-developer]
    selection: [react]
"""


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output"),
):
    """Select skills per stack and compile them into agent files."""
    set_verbose(verbose)


def get_config_path(config: Optional[Path]) -> Optional[Path]:
    """Resolve config path according to precedence order.

    1. --config <path> flag (explicit)
    2. ./stack.yaml (project config)
    3. ~/.config/skill-stack/stack.yaml (user config)

    Args:
        config: Config path from --config flag

    Returns:
        Resolved config path or None if no config exists
    """
    if config:
        return config

    project_config = Path.cwd() / PROJECT_CONFIG_NAME
    if project_config.exists():
        return project_config

    user_config = expand_path(USER_CONFIG_PATH)
    if user_config.exists():
        return user_config

    return None


def fail(error: StackError) -> NoReturn:
    """Report a skill-stack error with its machine-readable kind and exit."""
    print_error(escape(f"[{error.kind}] {error.message}"))
    raise typer.Exit(EXIT_FAILURE)


def load_context(config: Optional[Path]) -> StackContext:
    """Load configuration and build the stack context, exiting on failure."""
    config_path = get_config_path(config)
    if not config_path:
        print_error("No configuration file found")
        print_info("Run 'skill-stack init' to create a config file")
        raise typer.Exit(EXIT_FAILURE)

    try:
        cfg = load_config(config_path)
    except ValidationError as e:
        print_error("Configuration validation failed:")
        console.print(e)
        raise typer.Exit(EXIT_FAILURE)
    except (OSError, yaml.YAMLError) as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(EXIT_FAILURE)

    try:
        return build_context(cfg, config_path.resolve().parent)
    except StackError as e:
        fail(e)


def require_profile(context: StackContext, profile: str) -> None:
    if profile not in context.config.profiles:
        print_error(f"Unknown profile '{profile}'")
        available = ", ".join(sorted(context.config.profiles)) or "none"
        print_info(f"Configured profiles: {available}")
        raise typer.Exit(EXIT_FAILURE)


def print_side_effects(result: ResolveResult) -> None:
    for effect in result.side_effects:
        if effect.advisory:
            print_warning(effect.describe())
        else:
            print_info(effect.describe())


def print_selection(selection: frozenset[str]) -> None:
    if not selection:
        console.print("  (empty)")
    for unit_id in sorted(selection):
        console.print(f"  • {unit_id}")


config_option = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to config file (overrides default search)",
)


@app.command()
def init(
    path: Optional[Path] = typer.Argument(
        None,
        help=f"Path where config should be created (default: ./{PROJECT_CONFIG_NAME})",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite existing config file",
    ),
):
    """Create a stack.yaml template."""
    try:
        if path is None:
            path = Path.cwd() / PROJECT_CONFIG_NAME

        if path.exists() and not force:
            print_error(f"Config file already exists: {path}")
            print_info("Use --force to overwrite")
            raise typer.Exit(EXIT_FAILURE)

        with open(path, "w", encoding="utf-8") as f:
            f.write(TEMPLATE_CONFIG)

        print_success(f"Created config file: {path}")
        print_info("Edit the file to configure your units, templates and profiles")

    except typer.Exit:
        raise
    except Exception as e:
        print_error(f"Failed to create config: {e}")
        raise typer.Exit(EXIT_FAILURE)


@app.command()
def validate(
    profile: Optional[str] = typer.Argument(None, help="Only validate this profile"),
    config: Optional[Path] = config_option,
):
    """Validate configuration, the relationship graph and profile selections.

    Structural problems (unknown references, requirement cycles) and invalid
    selections fail with exit code 1.
    """
    try:
        context = load_context(config)
        print_success(
            f"Catalog is valid: {len(context.catalog)} unit(s), "
            f"{len(context.graph.edges())} relationship(s)"
        )

        if profile is not None:
            require_profile(context, profile)
            profiles = [profile]
        else:
            profiles = sorted(context.config.profiles)

        store = SelectionStore(context.state_dir)
        store.load()

        has_errors = False
        for name in profiles:
            console.print()
            console.print(f"[bold]Profile:[/bold] {name}")
            try:
                selection = load_selection(context, store, name)
            except StackError as e:
                print_error(escape(f"[{e.kind}] {e.message}"))
                has_errors = True
                continue

            report = context.graph.validate(selection)
            for issue in report.errors:
                print_error(escape(f"[{issue.type}] {issue.message}"))
            for issue in report.warnings:
                print_warning(escape(f"[{issue.type}] {issue.message}"))
            if report.valid:
                print_success(f"Selection is valid ({len(selection)} unit(s))")
            else:
                has_errors = True

        if has_errors:
            raise typer.Exit(EXIT_FAILURE)

    except typer.Exit:
        raise
    except StackError as e:
        fail(e)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        raise typer.Exit(EXIT_FAILURE)


@app.command()
def add(
    profile: str = typer.Argument(..., help="Profile to change"),
    unit: str = typer.Argument(..., help="Unit id or alias to add"),
    config: Optional[Path] = config_option,
):
    """Add a unit (and everything it requires) to a profile's selection."""
    try:
        context = load_context(config)
        require_profile(context, profile)

        store = SelectionStore(context.state_dir)
        store.load()
        try:
            selection = load_selection(context, store, profile)
        except StackError as e:
            fail(e)

        result = context.resolver.resolve(selection, SelectionOp(SelectionAction.ADD, unit))
        if result.status == ResolveStatus.FAILED:
            fail(result.error)

        if result.selection == selection:
            print_info(f"'{unit}' is already selected for {profile}")
            return

        print_side_effects(result)
        store.set(profile, result.selection)
        store.save()
        print_success(f"Added '{unit}' to {profile}")

    except typer.Exit:
        raise
    except StackError as e:
        fail(e)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        raise typer.Exit(EXIT_FAILURE)


@app.command()
def remove(
    profile: str = typer.Argument(..., help="Profile to change"),
    unit: str = typer.Argument(..., help="Unit id or alias to remove"),
    config: Optional[Path] = config_option,
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Also remove dependent units without asking",
    ),
):
    """Remove a unit from a profile's selection.

    Units that depend on the removed unit are only removed after
    confirmation. A declined confirmation exits with code 3.
    """
    try:
        context = load_context(config)
        require_profile(context, profile)

        store = SelectionStore(context.state_dir)
        store.load()
        try:
            selection = load_selection(context, store, profile)
        except StackError as e:
            fail(e)

        resolver = context.resolver
        result = resolver.resolve(
            selection, SelectionOp(SelectionAction.REMOVE, unit, confirm=yes)
        )
        if result.status == ResolveStatus.FAILED:
            fail(result.error)

        if result.status == ResolveStatus.CASCADE_REQUIRED:
            print_warning(result.cascade.describe())
            confirmed = typer.confirm("Remove them as well?", default=False)
            if not confirmed:
                print_info("Cancelled")
                raise typer.Exit(EXIT_CASCADE_REQUIRED)
            result = resolver.resolve(
                selection, SelectionOp(SelectionAction.REMOVE, unit, confirm=True)
            )

        if result.selection == selection:
            print_info(f"'{unit}' is not selected for {profile}")
            return

        print_side_effects(result)
        store.set(profile, result.selection)
        store.save()
        print_success(f"Removed '{unit}' from {profile}")

    except typer.Exit:
        raise
    except StackError as e:
        fail(e)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        raise typer.Exit(EXIT_FAILURE)


@app.command("list")
def list_units(
    profile: Optional[str] = typer.Argument(
        None, help="Show unit state relative to this profile's selection"
    ),
    category: Optional[str] = typer.Option(
        None, "--category", help="Only list this category"
    ),
    config: Optional[Path] = config_option,
):
    """List units by category, with their state for a profile."""
    try:
        context = load_context(config)

        selection: frozenset[str] = frozenset()
        if profile is not None:
            require_profile(context, profile)
            store = SelectionStore(context.state_dir)
            store.load()
            try:
                selection = load_selection(context, store, profile)
            except StackError as e:
                fail(e)

        categories = [c for c in context.catalog.categories if category in (None, c.id)]
        if not categories:
            print_warning(f"No category named '{category}'")
            return

        for cat in categories:
            suffix = " (exclusive)" if cat.exclusive else ""
            table = Table(
                title=f"{cat.id}{suffix}", show_header=True, header_style="bold cyan"
            )
            table.add_column("Unit", style="green")
            table.add_column("Description")
            table.add_column("State")

            for option in context.resolver.options(cat.id, selection):
                if option.selected:
                    state = "[green]selected[/green]"
                elif option.disabled:
                    state = f"[red]disabled[/red] {option.disabled_reason}"
                elif option.discouraged:
                    state = f"[yellow]discouraged[/yellow] {option.discouraged_reason}"
                elif option.recommended:
                    state = f"[blue]recommended[/blue] {option.recommended_reason}"
                else:
                    state = ""
                label = option.unit_id if not option.alias else f"{option.unit_id} ({option.alias})"
                table.add_row(label, option.description or "", state)

            console.print(table)
            console.print()

    except typer.Exit:
        raise
    except StackError as e:
        fail(e)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        raise typer.Exit(EXIT_FAILURE)


@app.command()
def show(
    profile: str = typer.Argument(..., help="Profile to show"),
    config: Optional[Path] = config_option,
):
    """Show a profile's selection and compiled artifact versions."""
    try:
        context = load_context(config)
        require_profile(context, profile)

        store = SelectionStore(context.state_dir)
        store.load()
        try:
            selection = load_selection(context, store, profile)
        except StackError as e:
            fail(e)

        console.print(f"[bold]Profile:[/bold] {profile}")
        console.print()
        console.print(f"[bold]Selection:[/bold] ({len(selection)})")
        print_selection(selection)

        registry = ManifestRegistry(context.state_dir)
        registry.load()

        console.print()
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Template", style="green")
        table.add_column("Version")
        table.add_column("Composed Hash")
        for template in context.templates_for(profile):
            manifest = registry.get(f"{profile}/{template.name}")
            if manifest is None:
                table.add_row(template.name, "-", "not compiled")
            else:
                table.add_row(template.name, str(manifest.version), manifest.composed_hash[:12])
        console.print(table)

    except typer.Exit:
        raise
    except StackError as e:
        fail(e)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        raise typer.Exit(EXIT_FAILURE)


@app.command("compile")
def compile_command(
    profile: Optional[str] = typer.Argument(None, help="Profile to compile (default: all)"),
    config: Optional[Path] = config_option,
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Override output directory",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be written without making changes",
    ),
):
    """Compose every template of a profile and write changed artifacts."""
    try:
        context = load_context(config)

        if profile is not None:
            require_profile(context, profile)
            profiles = [profile]
        else:
            profiles = sorted(context.config.profiles)

        if not profiles:
            print_warning("No profiles configured")
            return

        if dry_run:
            print_warning("DRY RUN MODE - No changes will be made")
            console.print()

        store = SelectionStore(context.state_dir)
        store.load()
        registry = ManifestRegistry(context.state_dir)
        registry.load()
        output_dir = expand_path(str(output)) if output else None

        written = 0
        for name in profiles:
            try:
                selection = load_selection(context, store, name)
                outcomes = compile_profile(
                    context, name, selection, registry, output_dir=output_dir, dry_run=dry_run
                )
            except StackError as e:
                fail(e)
            written += sum(1 for outcome in outcomes if outcome.written)
            console.print()

        if not dry_run:
            print_success(f"Compiled {len(profiles)} profile(s), wrote {written} file(s)")

    except typer.Exit:
        raise
    except StackError as e:
        fail(e)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        raise typer.Exit(EXIT_FAILURE)


if __name__ == "__main__":
    app()
