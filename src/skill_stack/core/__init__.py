"""Core unit models, relationship graph and selection resolver."""

from skill_stack.core.catalog import UnitCatalog
from skill_stack.core.errors import (
    ConflictDetected,
    CorruptStateFile,
    CycleDetected,
    DuplicateUnit,
    HashComputationFailure,
    InvalidSelectionPassedToComposer,
    StackError,
    UnknownUnitReference,
)
from skill_stack.core.graph import RelationshipGraph, ValidationIssue, ValidationReport
from skill_stack.core.registry import Manifest, ManifestRegistry
from skill_stack.core.resolver import (
    CascadeRequired,
    ResolveResult,
    ResolveStatus,
    SelectionAction,
    SelectionOp,
    SelectionResolver,
    SideEffect,
    SideEffectKind,
    UnitOption,
)
from skill_stack.core.selections import SelectionStore
from skill_stack.core.unit import Category, EdgeKind, RelationshipEdge, Unit

__all__ = [
    "Category",
    "EdgeKind",
    "RelationshipEdge",
    "Unit",
    "UnitCatalog",
    "RelationshipGraph",
    "ValidationIssue",
    "ValidationReport",
    "SelectionResolver",
    "SelectionAction",
    "SelectionOp",
    "ResolveResult",
    "ResolveStatus",
    "SideEffect",
    "SideEffectKind",
    "CascadeRequired",
    "UnitOption",
    "Manifest",
    "ManifestRegistry",
    "SelectionStore",
    "StackError",
    "UnknownUnitReference",
    "DuplicateUnit",
    "CycleDetected",
    "ConflictDetected",
    "InvalidSelectionPassedToComposer",
    "HashComputationFailure",
    "CorruptStateFile",
]
