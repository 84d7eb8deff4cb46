from __future__ import annotations

from pathlib import Path
import csv
import json
import logging
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

RESPONSE_COLUMNS = [
    "groupname",
    "loginname",
    "code",
    "bookletname",
    "unitname",
    "originalUnitId",
    "responses",
    "laststate",
]
LOG_COLUMNS = [
    "groupname",
    "loginname",
    "code",
    "bookletname",
    "unitname",
    "timestamp",
    "logentry",
]


def ensure_dir(path: Path) -> Path:
    """Ensure directory exists."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def read_json(path: Path) -> Any:
    """Read JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, obj: Any) -> None:
    """Write JSON file with indentation."""
    ensure_dir(path.parent)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)


def read_export_csv(
    path: Path, result_type: str, delimiter: str = ";"
) -> list[dict[str, str]]:
    """Read a responses or logs export into a list of row dicts.

    All cells are read as strings and empty cells become "". Log exports are
    read without quote handling (log entries contain unbalanced quotes) and
    every double quote is removed from their cells.

    Args:
        path: Path to the exported CSV file
        result_type: "responses" or "logs"
        delimiter: Column delimiter (exports use ';')
    """
    is_logs = result_type == "logs"
    df = pd.read_csv(
        path,
        sep=delimiter,
        dtype=str,
        keep_default_na=False,
        quoting=csv.QUOTE_NONE if is_logs else csv.QUOTE_MINIMAL,
        encoding="utf-8-sig",
    )
    df.columns = [str(c).strip().replace('"', "") for c in df.columns]

    if is_logs:
        df = df.apply(lambda col: col.str.replace('"', "", regex=False))

    expected = LOG_COLUMNS if is_logs else RESPONSE_COLUMNS
    missing = [c for c in expected if c not in df.columns]
    if missing:
        logger.warning(f"{path}: missing expected columns: {', '.join(missing)}")

    logger.info(f"Read {len(df)} {result_type} rows from {path}")
    return df.to_dict(orient="records")
