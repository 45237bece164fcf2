"""Role templates: ordered slots that selected unit bodies are placed into."""

from dataclasses import dataclass
from typing import Optional

from skill_stack.config.schema import TemplateConfig
from skill_stack.core.unit import Unit
from skill_stack.utils.hashing import hash_document

WILDCARD = "*"
DEFAULT_SEPARATOR = "\n\n---\n\n"


@dataclass(frozen=True)
class Slot:
    """A named slot accepting units by category or by id."""

    name: str
    categories: frozenset[str] = frozenset()
    unit_ids: frozenset[str] = frozenset()

    def accepts(self, unit: Unit) -> bool:
        """Whether a unit belongs in this slot."""
        return (
            WILDCARD in self.categories
            or unit.category in self.categories
            or unit.id in self.unit_ids
        )


@dataclass(frozen=True)
class RoleTemplate:
    """An agent skeleton: an ordered list of slots plus optional preamble."""

    name: str
    slots: tuple[Slot, ...]
    preamble: Optional[str] = None
    separator: str = DEFAULT_SEPARATOR

    @classmethod
    def from_config(
        cls, config: TemplateConfig, default_separator: str = DEFAULT_SEPARATOR
    ) -> "RoleTemplate":
        """Build a template from its configuration."""
        return cls(
            name=config.name,
            slots=tuple(
                Slot(
                    name=slot.name,
                    categories=frozenset(slot.categories),
                    unit_ids=frozenset(slot.units),
                )
                for slot in config.slots
            ),
            preamble=config.preamble,
            separator=config.separator if config.separator is not None else default_separator,
        )

    @property
    def identity(self) -> str:
        """Stable identity: the name plus a hash of the full definition.

        Any change to slots, preamble or separator changes the identity.
        """
        definition = {
            "name": self.name,
            "preamble": self.preamble,
            "separator": self.separator,
            "slots": [
                {
                    "name": slot.name,
                    "categories": sorted(slot.categories),
                    "units": sorted(slot.unit_ids),
                }
                for slot in self.slots
            ],
        }
        return f"{self.name}@{hash_document(definition)}"
