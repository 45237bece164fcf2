"""Content hashing helpers for units, templates and compositions."""

import hashlib
import json
from typing import Any, Iterable

from skill_stack.core.errors import HashComputationFailure


def hash_content(content: str) -> str:
    """Return the SHA-256 hex digest of a text payload.

    Args:
        content: Text to hash (encoded as UTF-8)

    Returns:
        Hex digest string

    Raises:
        HashComputationFailure: If the content cannot be encoded
    """
    try:
        return hashlib.sha256(content.encode("utf-8")).hexdigest()
    except (AttributeError, UnicodeEncodeError) as e:
        raise HashComputationFailure("content", e) from e


def hash_document(data: Any) -> str:
    """Hash a JSON-serializable structure in canonical form (sorted keys)."""
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise HashComputationFailure("document", e) from e
    return hash_content(canonical)


def compute_composed_hash(
    unit_hashes: Iterable[tuple[str, str]], template_identity: str
) -> str:
    """Compute the hash identifying a composition.

    The digest covers the sorted unit ids, each unit's content hash and the
    template identity, so it changes whenever any contributing input changes.

    Args:
        unit_hashes: ``(unit_id, content_hash)`` pairs for the selection
        template_identity: Identity string of the template used

    Returns:
        Hex digest string

    Raises:
        HashComputationFailure: If a content hash is missing or malformed
    """
    digest = hashlib.sha256()
    for unit_id, content_hash in sorted(unit_hashes):
        if not isinstance(content_hash, str) or not content_hash:
            raise HashComputationFailure(f"unit '{unit_id}' (missing content hash)")
        digest.update(f"{unit_id}\0{content_hash}\n".encode("utf-8"))
    if not template_identity:
        raise HashComputationFailure("template (missing identity)")
    digest.update(f"template\0{template_identity}".encode("utf-8"))
    return digest.hexdigest()
