from __future__ import annotations

import hashlib
import json
import math
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def dumps_stable(obj: Any) -> str:
    return json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False)


def write_json(path: Path, obj: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_stable(obj) + "\n", encoding="utf-8")


def stable_digest(obj: Any) -> str:
    """sha256 of the canonical JSON form of obj."""
    payload = json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def is_number(value: Any) -> bool:
    """True for finite int/float values. bool is not a number here."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    return False


def stable_mean(values: Sequence[float]) -> float:
    """Mean of finite floats whose sum may exceed the float range."""
    try:
        return math.fsum(values) / len(values)
    except OverflowError:
        peak = max(abs(v) for v in values)
    return peak * (math.fsum(v / peak for v in values) / len(values))


_NUMERIC_TEXT = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?%?$")


def as_number(value: Any) -> Optional[float]:
    """
    Numeric reading of a cell: numbers as-is, numeric strings parsed
    ("80%" reads as 80.0). Anything else is None.
    """
    if is_number(value):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str):
        s = value.strip().replace(",", "")
        if not s or not _NUMERIC_TEXT.match(s):
            return None
        v = float(s.rstrip("%"))
        return v if math.isfinite(v) else None
    return None


def as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def is_missing(row: Mapping[str, Any], key: str) -> bool:
    if key not in row:
        return True
    v = row[key]
    return v is None or (isinstance(v, float) and math.isnan(v))


def to_camel_key(display_name: str) -> str:
    """
    Convert a display name to the camelCase key used in table rows.
    "Interest Level" -> "interestLevel", "Grade" -> "grade"
    """
    words = display_name.strip().split()
    out = []
    for i, w in enumerate(words):
        if i == 0:
            out.append(w[:1].lower() + w[1:])
        else:
            out.append(w[:1].upper() + w[1:])
    return "".join(out)


def resolve_attribute_key(row: Mapping[str, Any], name: str) -> Optional[str]:
    """Find the row key for a display name (exact key first, then camelCase, case-insensitive)."""
    if name in row:
        return name
    wanted = to_camel_key(name).lower()
    for k in row.keys():
        if str(k).lower() == wanted:
            return k
    return None
