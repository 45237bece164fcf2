"""Pydantic models for skill-stack project files."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


DEFAULT_REASON = "Defined in unit metadata"


class SettingsConfig(BaseModel):
    """Global settings for skill-stack."""

    output_dir: str = Field(
        default=".claude/agents",
        description="Directory where composed artifacts are written",
    )
    state_dir: str = Field(
        default=".skill-stack",
        description="Directory holding persisted selections and manifests",
    )
    separator: str = Field(
        default="\n\n---\n\n",
        description="Default separator between unit bodies inside a slot",
    )


class CategoryConfig(BaseModel):
    """A category of units."""

    description: Optional[str] = Field(default=None, description="Human-readable description")
    exclusive: bool = Field(
        default=False, description="At most one unit of this category may be selected"
    )


class UnitRecord(BaseModel):
    """A parsed unit record, as handed to the catalog."""

    id: str = Field(description="Unique unit identifier")
    category: str = Field(description="Category the unit belongs to")
    name: Optional[str] = Field(default=None, description="Display name")
    description: Optional[str] = Field(default=None, description="Short description")
    exclusive: Optional[bool] = Field(
        default=None, description="Category-level exclusivity declared on the record"
    )
    body: Optional[str] = Field(default=None, description="Inline unit body")
    body_path: Optional[str] = Field(
        default=None, description="Path to the unit body, relative to the project file"
    )
    content_hash: Optional[str] = Field(
        default=None, description="Hash of the unit content (computed when omitted)"
    )
    requires: list[str] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)
    recommends: list[str] = Field(default_factory=list)
    discourages: list[str] = Field(default_factory=list)
    requires_setup: list[str] = Field(default_factory=list)
    provides_setup_for: list[str] = Field(default_factory=list)

    @field_validator("id", "category")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Validate identifiers are non-empty."""
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @model_validator(mode="after")
    def validate_body_source(self) -> "UnitRecord":
        """Validate that at most one of body/body_path is provided."""
        if self.body is not None and self.body_path is not None:
            raise ValueError("Unit cannot have both body and body_path")
        return self


class GroupRule(BaseModel):
    """A pairwise rule over a group of units (conflicts, discourages)."""

    units: list[str] = Field(min_length=2, description="Units the rule applies to")
    reason: str = Field(default=DEFAULT_REASON)


class RecommendRule(BaseModel):
    """When ``when`` is selected, suggest the listed units."""

    when: str
    suggest: list[str] = Field(min_length=1)
    reason: str = Field(default=DEFAULT_REASON)


class RequireRule(BaseModel):
    """``unit`` needs every unit listed in ``needs``."""

    unit: str
    needs: list[str] = Field(min_length=1)
    reason: str = Field(default=DEFAULT_REASON)

    @model_validator(mode="before")
    @classmethod
    def reject_any_of_requirements(cls, data):
        if isinstance(data, dict) and "needs_any" in data:
            raise ValueError(
                "'needs_any' (any-of requirements) is not supported; "
                "list every required unit under 'needs'"
            )
        return data


class RelationshipRules(BaseModel):
    """Matrix-level relationship rules with reasons."""

    conflicts: list[GroupRule] = Field(default_factory=list)
    discourages: list[GroupRule] = Field(default_factory=list)
    recommends: list[RecommendRule] = Field(default_factory=list)
    requires: list[RequireRule] = Field(default_factory=list)


class SlotConfig(BaseModel):
    """A named slot in a role template."""

    name: str
    categories: list[str] = Field(
        default_factory=list, description="Categories accepted by the slot ('*' for all)"
    )
    units: list[str] = Field(
        default_factory=list, description="Unit ids accepted regardless of category"
    )


class TemplateConfig(BaseModel):
    """A role template (agent) composed from selected units."""

    name: str
    description: Optional[str] = None
    preamble: Optional[str] = Field(default=None, description="Text placed before the slots")
    separator: Optional[str] = Field(
        default=None, description="Separator between bodies (defaults to settings.separator)"
    )
    slots: list[SlotConfig] = Field(min_length=1)

    @field_validator("slots")
    @classmethod
    def validate_unique_slots(cls, v: list[SlotConfig]) -> list[SlotConfig]:
        """Validate slot names are unique within the template."""
        names = [slot.name for slot in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate slot names: {', '.join(duplicates)}")
        return v


class ProfileConfig(BaseModel):
    """A target profile: the templates compiled for one stack."""

    description: Optional[str] = None
    templates: list[str] = Field(min_length=1, description="Template names to compile")
    selection: list[str] = Field(
        default_factory=list,
        description="Initial selection used when no persisted selection exists",
    )


class ProjectConfig(BaseModel):
    """Root configuration for a skill-stack project."""

    version: str = Field(description="Config schema version")
    settings: SettingsConfig = Field(default_factory=SettingsConfig)
    categories: dict[str, CategoryConfig] = Field(default_factory=dict)
    units: list[UnitRecord] = Field(default_factory=list)
    relationships: RelationshipRules = Field(default_factory=RelationshipRules)
    aliases: dict[str, str] = Field(default_factory=dict)
    templates: list[TemplateConfig] = Field(default_factory=list)
    profiles: dict[str, ProfileConfig] = Field(default_factory=dict)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate version format."""
        if not v.startswith("1."):
            raise ValueError(
                f"Unsupported config version: {v}. Only version 1.x is supported."
            )
        return v

    @model_validator(mode="after")
    def validate_profile_templates(self) -> "ProjectConfig":
        """Validate that profiles only reference declared templates."""
        template_names = {t.name for t in self.templates}
        for profile_name, profile in self.profiles.items():
            missing = [t for t in profile.templates if t not in template_names]
            if missing:
                raise ValueError(
                    f"Profile '{profile_name}' references unknown templates: {', '.join(missing)}"
                )
        return self

    def get_template(self, name: str) -> TemplateConfig:
        """Look up a template by name.

        Raises:
            KeyError: If no template has that name
        """
        for template in self.templates:
            if template.name == name:
                return template
        raise KeyError(name)
