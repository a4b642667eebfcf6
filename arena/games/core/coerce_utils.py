# arena/games/core/coerce_utils.py
from typing import Any, List, Optional
import json


def coerce_int_list(val) -> List[int]:
    """Coerce a list, a JSON array string or '1,2,3' text to a list of ints."""
    if val is None:
        return []
    if isinstance(val, list):
        try:    return [int(x) for x in val]
        except (TypeError, ValueError): return []
    if isinstance(val, str):
        parts = [p.strip() for p in val.replace("[", "").replace("]", "").split(",")]
        try:    return [int(x) for x in parts if x]
        except ValueError: return []
    return []


def coerce_int(val: Any, default: int = 0) -> int:
    try:
        return int(val)
    except (TypeError, ValueError):
        return default


def load_json(raw: Optional[str], default: Any = None) -> Any:
    """Decode a stored JSON blob; missing or corrupt blobs give `default`."""
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        return default


def dump_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))
