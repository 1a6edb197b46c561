#!/usr/bin/env python3
"""Write the Story Spark OpenAPI document to disk.

Usage:
    python scripts/export_openapi.py [--output DIR] [--format json|yaml|both]

Writes ``openapi.json`` and/or ``openapi.yaml`` under ``docs/api`` by default.
"""

import argparse
import json
from pathlib import Path
from typing import Any

import yaml

from storyspark.api.config.openapi import custom_openapi
from storyspark.api.main import create_app

DEFAULT_OUTPUT = Path(__file__).resolve().parent.parent / "docs" / "api"


def write_schema(schema: dict[str, Any], output_dir: Path, fmt: str) -> list[Path]:
    """Serialize ``schema`` in the requested formats and return the written paths."""
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []

    if fmt in ("json", "both"):
        path = output_dir / "openapi.json"
        path.write_text(json.dumps(schema, indent=2, ensure_ascii=False), encoding="utf-8")
        written.append(path)

    if fmt in ("yaml", "both"):
        path = output_dir / "openapi.yaml"
        path.write_text(
            yaml.safe_dump(schema, sort_keys=False, allow_unicode=True), encoding="utf-8"
        )
        written.append(path)

    return written


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT)
    parser.add_argument("--format", choices=["json", "yaml", "both"], default="both")
    args = parser.parse_args()

    schema = custom_openapi(create_app())
    for path in write_schema(schema, args.output, args.format):
        print(f"Wrote {path}")

    info = schema.get("info", {})
    print(
        f"{info.get('title')} {info.get('version')}: "
        f"{len(schema.get('paths', {}))} paths, "
        f"{len(schema.get('components', {}).get('schemas', {}))} schemas"
    )


if __name__ == "__main__":
    main()
