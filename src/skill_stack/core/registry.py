"""Manifest registry for tracking composed artifacts."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from skill_stack.core.errors import CorruptStateFile
from skill_stack.utils.paths import write_json_atomic


@dataclass(frozen=True)
class Manifest:
    """Persisted record of a composed artifact.

    Attributes:
        selected_unit_ids: Sorted ids of the contributing units
        composed_hash: Hash identifying the composition inputs
        version: Integer version, incremented on every content change
    """

    selected_unit_ids: tuple[str, ...]
    composed_hash: str
    version: int

    def to_dict(self) -> dict:
        return {
            "selected_unit_ids": list(self.selected_unit_ids),
            "composed_hash": self.composed_hash,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Manifest":
        return cls(
            selected_unit_ids=tuple(sorted(data.get("selected_unit_ids", []))),
            composed_hash=str(data.get("composed_hash", "")),
            version=int(data.get("version", 0)),
        )


class ManifestRegistry:
    """Manages the manifest file of all composed artifacts.

    Manifests are keyed by artifact identity (``profile/template``) and
    stored together in a single .skill-stack-manifest.json file in the state
    directory.
    """

    MANIFEST_FILENAME = ".skill-stack-manifest.json"
    MANIFEST_VERSION = "1.0"

    def __init__(self, state_dir: Path):
        """Initialize the registry for a state directory.

        Args:
            state_dir: The directory holding persisted state
        """
        self.state_dir = Path(state_dir)
        self.manifest_path = self.state_dir / self.MANIFEST_FILENAME
        self._manifest_data: dict = {"version": self.MANIFEST_VERSION, "artifacts": {}}

    def load(self) -> dict:
        """Load the manifest file from disk.

        A missing file yields an empty registry.

        Returns:
            The manifest data as a dictionary

        Raises:
            CorruptStateFile: If the file exists but cannot be parsed
        """
        self._manifest_data = {"version": self.MANIFEST_VERSION, "artifacts": {}}

        if not self.manifest_path.exists():
            return self._manifest_data

        try:
            with open(self.manifest_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            raise CorruptStateFile(self.manifest_path, str(e)) from e

        if not isinstance(data, dict) or not isinstance(data.get("artifacts"), dict):
            raise CorruptStateFile(self.manifest_path, "missing 'artifacts' mapping")

        self._manifest_data["artifacts"] = data["artifacts"]

        return self._manifest_data

    def save(self) -> None:
        """Save the manifest file, creating the state directory if needed.

        The file is replaced atomically, so an interrupted save keeps the
        previous manifest intact.
        """
        write_json_atomic(self.manifest_path, self._manifest_data)

    def get(self, identity: str) -> Optional[Manifest]:
        """Get the manifest of an artifact, or None if never recorded."""
        data = self._manifest_data["artifacts"].get(identity)
        return Manifest.from_dict(data) if data else None

    def put(self, identity: str, manifest: Manifest) -> None:
        """Record (or replace) the manifest of an artifact."""
        self._manifest_data["artifacts"][identity] = manifest.to_dict()

    def remove(self, identity: str) -> None:
        """Forget an artifact."""
        self._manifest_data["artifacts"].pop(identity, None)

    def identities(self) -> list[str]:
        """All recorded artifact identities, sorted."""
        return sorted(self._manifest_data["artifacts"])
