"""Path utilities for normalizing filesystem paths and writing state files."""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional


def expand_path(path: str) -> Path:
    """Expand and normalize a path, resolving ~ and relative paths.

    Args:
        path: Path string that may contain ~ or be relative

    Returns:
        Absolute Path object
    """
    return Path(path).expanduser().resolve()


def resolve_against(base_dir: Path, path: str) -> Path:
    """Resolve a configured path relative to a base directory.

    Absolute paths and ``~`` paths ignore ``base_dir``.

    Args:
        base_dir: Directory relative paths are anchored to (usually the
            directory of the project file)
        path: Configured path string

    Returns:
        Absolute Path object
    """
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = Path(base_dir) / candidate
    return candidate.resolve()


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_json_atomic(path: Path, data: dict) -> None:
    """Write ``data`` as JSON to ``path`` through a temp file and a rename.

    The temp file lives in the target's directory so ``os.replace`` stays on
    one filesystem. Readers see either the old file or the new one, never a
    partial write.
    """
    path = Path(path)
    ensure_dir(path.parent)

    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            tmp_path = Path(f.name)
            json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp_path), str(path))
        tmp_path = None
    finally:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
