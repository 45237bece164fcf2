"""Version tracking for composed artifacts."""

import dataclasses
from dataclasses import dataclass
from typing import Optional

from skill_stack.compose.engine import ComposedArtifact
from skill_stack.core.registry import Manifest, ManifestRegistry


@dataclass(frozen=True)
class TrackResult:
    """Outcome of tracking a composition.

    Attributes:
        artifact: The artifact with its version assigned
        manifest: The current manifest (new or unchanged)
        changed: Whether the composition differed from the stored one
        previous: The manifest recorded before this call, if any
    """

    artifact: ComposedArtifact
    manifest: Manifest
    changed: bool
    previous: Optional[Manifest] = None


class VersionTracker:
    """Bumps an artifact's version only when its composed hash changes.

    Versions start at 1, go up by exactly one per change and are never reset.
    Tracking an unchanged composition leaves the stored manifest untouched.
    """

    def __init__(self, registry: ManifestRegistry):
        self.registry = registry

    def check(self, identity: str, artifact: ComposedArtifact) -> bool:
        """Whether ``artifact`` differs from the stored composition."""
        previous = self.registry.get(identity)
        return previous is None or previous.composed_hash != artifact.composed_hash

    def track(self, identity: str, artifact: ComposedArtifact, persist: bool = True) -> TrackResult:
        """Record a composition, bumping the version if its hash changed.

        Args:
            identity: Artifact identity (e.g. ``profile/template``)
            artifact: Freshly composed artifact
            persist: Save the registry when the manifest changes

        Returns:
            TrackResult with the versioned artifact
        """
        previous = self.registry.get(identity)

        if previous is not None and previous.composed_hash == artifact.composed_hash:
            return TrackResult(
                artifact=dataclasses.replace(artifact, version=previous.version),
                manifest=previous,
                changed=False,
                previous=previous,
            )

        version = previous.version + 1 if previous is not None else 1
        manifest = Manifest(
            selected_unit_ids=tuple(sorted(artifact.selected_unit_ids)),
            composed_hash=artifact.composed_hash,
            version=version,
        )
        self.registry.put(identity, manifest)
        if persist:
            self.registry.save()

        return TrackResult(
            artifact=dataclasses.replace(artifact, version=version),
            manifest=manifest,
            changed=True,
            previous=previous,
        )
