"""Persistence of per-profile selections between sessions."""

import json
from pathlib import Path
from typing import Iterable, Optional

from skill_stack.core.errors import CorruptStateFile
from skill_stack.utils.paths import write_json_atomic


class SelectionStore:
    """Stores each profile's selection as a sorted list in a JSON file.

    A profile's selection is only ever replaced wholesale with the result of
    a resolver operation; the store never edits it.
    """

    FILENAME = "selections.json"
    STORE_VERSION = "1.0"

    def __init__(self, state_dir: Path):
        self.state_dir = Path(state_dir)
        self.path = self.state_dir / self.FILENAME
        self._data: dict = {"version": self.STORE_VERSION, "profiles": {}}

    def load(self) -> dict:
        """Load selections from disk; a missing file is empty.

        Raises:
            CorruptStateFile: If the file exists but cannot be parsed
        """
        self._data = {"version": self.STORE_VERSION, "profiles": {}}

        if not self.path.exists():
            return self._data

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            raise CorruptStateFile(self.path, str(e)) from e

        if not isinstance(data, dict) or not isinstance(data.get("profiles"), dict):
            raise CorruptStateFile(self.path, "missing 'profiles' mapping")

        profiles = {}
        for name, ids in data["profiles"].items():
            if not isinstance(ids, list):
                raise CorruptStateFile(self.path, f"selection of profile '{name}' is not a list")
            profiles[name] = sorted(set(ids))
        self._data["profiles"] = profiles
        return self._data

    def save(self) -> None:
        write_json_atomic(self.path, self._data)

    def has(self, profile: str) -> bool:
        return profile in self._data["profiles"]

    def get(self, profile: str, default: Optional[Iterable[str]] = None) -> frozenset[str]:
        """Selection of a profile, or ``default`` if none was persisted."""
        if profile in self._data["profiles"]:
            return frozenset(self._data["profiles"][profile])
        return frozenset(default or ())

    def set(self, profile: str, selection: Iterable[str]) -> None:
        self._data["profiles"][profile] = sorted(set(selection))

    def profiles(self) -> list[str]:
        return sorted(self._data["profiles"])
