from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import CountSheetConfig

"""Config loader.

Responsibilities:
- Load YAML (config/countsheet.yml)
- Validate against the packaged JSON schema (config_schema.json)
- Apply defaults
- COUNTSHEET_OUTPUT_DIR 環境変数があれば output_directory を上書き
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "OUTPUT_DIR_ENV",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/countsheet.yml")
OUTPUT_DIR_ENV = "COUNTSHEET_OUTPUT_DIR"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing / not valid JSON, or the data fails
            validation (missing required keys, wrong types, unknown keys)
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> CountSheetConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)

    output_dir = os.getenv(OUTPUT_DIR_ENV) or data["output_directory"]
    scratch = data.get("scratch_directory")
    return CountSheetConfig(
        output_directory=Path(output_dir),
        xlsx_prefix=data.get("xlsx_prefix", "Inventory"),
        csv_prefix=data.get("csv_prefix", "Inventory"),
        scratch_directory=Path(scratch) if scratch else None,
        stale_scratch_minutes=data.get("stale_scratch_minutes", 60),
        strict_rows=data.get("strict_rows", False),
        session_ttl_minutes=data.get("session_ttl_minutes", 720),
    )
