"""
Utility script to generate and write the OpenAPI schema for the FastAPI app.

This script imports the FastAPI application instance and serializes its OpenAPI
schema to interfaces/openapi.json so that API clients and documentation tools
can consume a stable schema without running the server.

Usage:
    python -m task_api.generate_openapi [output-path]

Notes:
- The script ensures every tag in openapi_tags ('health', 'auth', 'tasks') is
  present in the OpenAPI tags metadata.
- The default output path is relative to the project root: interfaces/openapi.json
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .main import app, openapi_tags

# src/task_api/generate_openapi.py -> project root
_PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_OUTPUT = _PROJECT_ROOT / "interfaces" / "openapi.json"


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Ensure the OpenAPI schema contains the expected tags metadata. This does not
    override existing tag definitions unless missing.
    """
    existing_tags: List[Dict[str, Any]] = schema.get("tags", []) or []
    existing_names = {t.get("name") for t in existing_tags if isinstance(t, dict)}
    for tag in openapi_tags:
        if tag.get("name") not in existing_names:
            existing_tags.append(tag)
    if existing_tags:
        schema["tags"] = existing_tags


# PUBLIC_INTERFACE
def generate_openapi(out_path: Optional[Path] = None) -> Path:
    """Generate the OpenAPI schema file and return the written file path."""
    schema = app.openapi()
    _ensure_tags(schema)

    target = Path(out_path) if out_path is not None else DEFAULT_OUTPUT
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
    return target


def main() -> None:
    out = generate_openapi(Path(sys.argv[1]) if len(sys.argv) > 1 else None)
    print(f"Wrote OpenAPI schema to: {out}")


if __name__ == "__main__":
    main()
