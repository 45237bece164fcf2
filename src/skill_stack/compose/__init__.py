"""Composition, versioning and compilation of selected units."""

from skill_stack.compose.compiler import (
    CompileOutcome,
    StackContext,
    build_context,
    compile_profile,
    initial_selection,
    load_selection,
)
from skill_stack.compose.engine import ComposedArtifact, CompositionEngine
from skill_stack.compose.template import RoleTemplate, Slot
from skill_stack.compose.versioning import TrackResult, VersionTracker

__all__ = [
    "ComposedArtifact",
    "CompositionEngine",
    "RoleTemplate",
    "Slot",
    "TrackResult",
    "VersionTracker",
    "CompileOutcome",
    "StackContext",
    "build_context",
    "compile_profile",
    "initial_selection",
    "load_selection",
]
