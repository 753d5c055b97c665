from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from .utils import read_json


def _native(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


def rows_from_frame(df: pd.DataFrame) -> list[dict[str, Any]]:
    """
    Convert a DataFrame into table rows. Empty cells become missing
    attributes (the key is omitted), never NaN values.
    """
    rows: list[dict[str, Any]] = []
    for record in df.to_dict(orient="records"):
        row: dict[str, Any] = {}
        for k, v in record.items():
            if v is None or (not isinstance(v, str) and pd.isna(v)):
                continue
            row[str(k)] = _native(v)
        rows.append(row)
    return rows


def load_rows(path: Path) -> list[dict[str, Any]]:
    """
    Load table rows from a .csv (via pandas) or a .json file holding a list
    of objects (or {"rows": [...]}).
    """
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        return rows_from_frame(pd.read_csv(path))
    if suffix == ".json":
        data = read_json(path)
        if isinstance(data, dict):
            data = data.get("rows")
        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            raise ValueError(f"{path} must contain a list of row objects (or {{'rows': [...]}}).")
        return data
    raise ValueError(f"Unsupported data file type '{path.suffix}' (expected .csv or .json).")


def load_json_object(path: Path, label: str) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"{label} file not found: {path}")
    return read_json(path)
