"""
Configuration file support for testresults imports.

Supports per-directory configuration via:
- .testresultsrc.json (hidden file)
- testresults.config.json (visible file)

Configuration Options:
    personMatchMode: "strict" counts persons by group/login/code, "loose" by login/code
    scope: Which part of the import to keep (person, workspace, group, booklet, unit, response)
    scopeFilters: Filter values for the scope (groupName, bookletName, unitNameOrAlias, variableId, subform)
    strictMode: Treat warnings as errors (non-zero exit code)
    defaultOutputFormat: "text" or "json"
    csvDelimiter: Column delimiter of export files

Example .testresultsrc.json:
{
    "personMatchMode": "strict",
    "scope": "booklet",
    "scopeFilters": {"bookletName": "BOOKLET.A"},
    "strictMode": false
}
"""

import os
import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, Optional, Any

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = [".testresultsrc.json", "testresults.config.json"]

PERSON_MATCH_MODES = ("strict", "loose")
IMPORT_SCOPES = ("person", "workspace", "group", "booklet", "unit", "response")
SCOPE_FILTER_KEYS = ("groupName", "bookletName", "unitNameOrAlias", "variableId", "subform")


@dataclass
class ImportConfig:
    """Configuration for a test results import"""

    person_match_mode: str = "strict"

    # Scope filtering of the rebuilt persons
    scope: str = "person"
    scope_filters: Dict[str, str] = field(default_factory=dict)

    # Reporting behavior
    strict_mode: bool = False  # Treat warnings as errors
    default_output_format: str = "text"  # "text" or "json"

    csv_delimiter: str = ";"

    # Config file location (set after loading)
    _config_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (excludes internal fields)"""
        d = asdict(self)
        d.pop("_config_path", None)
        return d


def find_config_file(directory: str) -> Optional[str]:
    """
    Find configuration file in a directory.

    Args:
        directory: Directory to search

    Returns:
        Path to config file if found, None otherwise
    """
    for filename in CONFIG_FILENAMES:
        config_path = os.path.join(directory, filename)
        if os.path.exists(config_path):
            return config_path
    return None


def _checked(value: Any, allowed: tuple, default: str, name: str) -> str:
    if value in allowed:
        return value
    logger.warning(f"Ignoring invalid {name} '{value}' in config (allowed: {', '.join(allowed)})")
    return default


def load_config(directory: str) -> ImportConfig:
    """
    Load configuration from a directory.

    Returns:
        ImportConfig instance (defaults if no config file found or it is invalid)
    """
    config_path = find_config_file(directory)

    if config_path is None:
        return ImportConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        filters = data.get("scopeFilters", {}) or {}
        config = ImportConfig(
            person_match_mode=_checked(
                data.get("personMatchMode", "strict"), PERSON_MATCH_MODES, "strict", "personMatchMode"
            ),
            scope=_checked(data.get("scope", "person"), IMPORT_SCOPES, "person", "scope"),
            scope_filters={k: str(v) for k, v in filters.items() if k in SCOPE_FILTER_KEYS},
            strict_mode=bool(data.get("strictMode", False)),
            default_output_format=data.get("defaultOutputFormat", "text"),
            csv_delimiter=data.get("csvDelimiter", ";"),
        )
        config._config_path = config_path
        return config

    except json.JSONDecodeError as e:
        logger.warning(f"Error parsing config file {config_path}: {e}")
        return ImportConfig()
    except (OSError, AttributeError, TypeError) as e:
        logger.warning(f"Error loading config file {config_path}: {e}")
        return ImportConfig()


def save_config(config: ImportConfig, directory: str, filename: str = ".testresultsrc.json") -> str:
    """
    Save configuration to a directory.

    Returns:
        Path to saved config file
    """
    config_path = os.path.join(directory, filename)

    data = {
        "personMatchMode": config.person_match_mode,
        "scope": config.scope,
        "scopeFilters": config.scope_filters,
        "strictMode": config.strict_mode,
        "defaultOutputFormat": config.default_output_format,
        "csvDelimiter": config.csv_delimiter,
    }

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)

    return config_path


def merge_cli_args(config: ImportConfig, args: Any) -> ImportConfig:
    """
    Merge CLI arguments into config (CLI args take precedence).

    Args:
        config: Base configuration
        args: Parsed argparse namespace

    Returns:
        Updated ImportConfig
    """
    if getattr(args, "match_mode", None):
        config.person_match_mode = args.match_mode

    if getattr(args, "scope", None):
        config.scope = args.scope

    cli_filters = {
        "groupName": getattr(args, "group", None),
        "bookletName": getattr(args, "booklet", None),
        "unitNameOrAlias": getattr(args, "unit", None),
        "variableId": getattr(args, "variable", None),
        "subform": getattr(args, "subform", None),
    }
    for key, value in cli_filters.items():
        if value is not None:
            config.scope_filters[key] = value

    if getattr(args, "strict", False):
        config.strict_mode = True

    if getattr(args, "format", None):
        config.default_output_format = args.format

    if getattr(args, "delimiter", None):
        config.csv_delimiter = args.delimiter

    return config
