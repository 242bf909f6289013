import jsonpickle
from datetime import datetime, timezone
from typing import Any


def now() -> str:
    """Current UTC time in ISO-8601, as written to `lastTransitionTime`."""
    return datetime.now(timezone.utc).isoformat()


def sort_dict_keys(data: Any) -> Any:
    """Copy of `data` with the keys of every nested dict in sorted order.

    Tuples become lists, list order is preserved.
    """
    if isinstance(data, dict):
        return {key: sort_dict_keys(data[key]) for key in sorted(data)}
    if isinstance(data, (list, tuple)):
        return list(map(sort_dict_keys, data))
    return data


def canonicalize_dict(data: Any) -> str:
    """JSON text of `data` that does not depend on dict insertion order."""
    return jsonpickle.encode(sort_dict_keys(data), unpicklable=False)
