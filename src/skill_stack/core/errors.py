"""Error types raised while building, resolving and composing stacks.

Every error names the unit ids involved so the person acting on it can
choose between concrete alternatives. ``kind`` is a stable machine-readable
identifier used by the CLI when reporting failures.
"""

from pathlib import Path
from typing import Iterable, Optional


class StackError(Exception):
    """Base class for all skill-stack errors."""

    kind = "stack_error"

    def __init__(self, message: str, unit_ids: Iterable[str] = ()):
        super().__init__(message)
        self.message = message
        self.unit_ids: tuple[str, ...] = tuple(unit_ids)


class UnknownUnitReference(StackError):
    """A unit id (or an edge, rule or alias) points at a unit that does not exist."""

    kind = "unknown_unit_reference"

    def __init__(self, unit_id: str, referenced_by: Optional[str] = None):
        if referenced_by:
            message = f"Unit '{referenced_by}' references unknown unit '{unit_id}'"
            unit_ids = (referenced_by, unit_id)
        else:
            message = f"Unknown unit '{unit_id}'"
            unit_ids = (unit_id,)
        super().__init__(message, unit_ids)
        self.unit_id = unit_id
        self.referenced_by = referenced_by


class DuplicateUnit(StackError):
    """Two records declare the same unit id."""

    kind = "duplicate_unit"

    def __init__(self, unit_id: str):
        super().__init__(f"Unit '{unit_id}' is declared more than once", (unit_id,))
        self.unit_id = unit_id


class CycleDetected(StackError):
    """The requirement relation contains a cycle.

    Attributes:
        path: The cycle, with the first unit repeated at the end
    """

    kind = "cycle_detected"

    def __init__(self, path: list[str]):
        super().__init__(f"Requirement cycle detected: {' -> '.join(path)}", path)
        self.path = list(path)


class ConflictDetected(StackError):
    """Two units that cannot be selected together were both required."""

    kind = "conflict_detected"

    def __init__(self, unit_a: str, unit_b: str, reason: Optional[str] = None):
        message = f"'{unit_a}' conflicts with '{unit_b}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, (unit_a, unit_b))
        self.unit_a = unit_a
        self.unit_b = unit_b
        self.reason = reason


class InvalidSelectionPassedToComposer(StackError):
    """The composer was handed a selection that violates the graph's invariants.

    This is a caller bug (the resolver was bypassed), never a user-facing
    condition.
    """

    kind = "invalid_selection_passed_to_composer"

    def __init__(self, violations: list[str], unit_ids: Iterable[str] = ()):
        details = "; ".join(violations)
        super().__init__(f"Invalid selection passed to composer: {details}", unit_ids)
        self.violations = list(violations)


class HashComputationFailure(StackError):
    """Hashing a unit or a composition failed."""

    kind = "hash_computation_failure"

    def __init__(self, subject: str, cause: Optional[BaseException] = None):
        message = f"Failed to compute hash for {subject}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.subject = subject


class CorruptStateFile(StackError):
    """A persisted state file exists but cannot be read back.

    The file is left untouched so the versions and selections it records
    are not overwritten with fresh state.
    """

    kind = "corrupt_state_file"

    def __init__(self, path: Path, detail: str):
        super().__init__(f"Cannot read state file {path}: {detail}")
        self.path = Path(path)
        self.detail = detail
