"""Load and save graph snapshots as JSON files.

File format::

    {"nodes": [{"id": 1, "label": "NAS", ...}], "edges": [{"id": "e1", "source": 1, "target": 2}]}

``links`` is accepted in place of ``edges`` (the D3 convention).

Security:
    Paths are resolved to absolute paths; null bytes and paths outside an
    optional base directory are rejected.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from graphsift.models import GraphSnapshot


def _validate_path(path: str | Path, base_dir: Path | None = None) -> Path:
    """Validate and resolve a file path.

    Raises:
        ValueError: If path contains null bytes or escapes base_dir
    """
    path = str(path)
    if "\x00" in path:
        raise ValueError(f"Invalid path (contains null bytes): {path!r}")

    resolved = Path(path).resolve()

    if base_dir is not None:
        base_resolved = base_dir.resolve()
        try:
            resolved.relative_to(base_resolved)
        except ValueError:
            raise ValueError(
                f"Path traversal detected: {path} is outside base directory {base_dir}"
            )

    return resolved


def snapshot_from_dict(data: Any) -> GraphSnapshot:
    """Build a snapshot from parsed JSON.

    Raises:
        ValueError: If data is not an object with node/edge lists
    """
    if not isinstance(data, dict):
        raise ValueError(f"Graph data must be an object, got: {type(data).__name__}")
    edges = data.get("edges")
    if edges is None:
        edges = data.get("links", [])
    return GraphSnapshot.model_validate({"nodes": data.get("nodes", []), "edges": edges})


def load_snapshot(path: str | Path, base_dir: Path | None = None) -> GraphSnapshot:
    """Read a graph snapshot from a JSON file.

    Raises:
        ValueError: If the path is invalid or the content is not a graph
        FileNotFoundError: If the file does not exist
    """
    validated_path = _validate_path(path, base_dir)
    with open(validated_path, encoding="utf-8") as f:
        data = json.load(f)
    return snapshot_from_dict(data)


def save_snapshot(
    snapshot: GraphSnapshot, path: str | Path, base_dir: Path | None = None
) -> None:
    """Write a graph snapshot to a JSON file, creating parent directories."""
    validated_path = _validate_path(path, base_dir)
    validated_path.parent.mkdir(parents=True, exist_ok=True)
    with open(validated_path, "w", encoding="utf-8") as f:
        json.dump(snapshot.model_dump(mode="json", exclude_none=True), f, indent=2, ensure_ascii=False)
