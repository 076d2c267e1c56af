from typing import Any


def first_value(data: dict, *keys: str, default: Any = None) -> Any:
    """Value of the first key present (and not None) in ``data``."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default
