import math
from typing import Any


def sanitize_for_json(obj: Any) -> Any:
    """
    Recursively traverse the object and replace NaN and Infinity float values with None.
    This ensures compliance with standard JSON specifications.

    A zero-debt deal's DSCR (math.inf) therefore serializes as null; clients
    tell it apart from "undefined" by checking total_annual_debt_service == 0.

    Args:
        obj: The object to sanitize (dict, list, float, etc.)

    Returns:
        The sanitized object.
    """
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return obj
    elif isinstance(obj, dict):
        return {k: sanitize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [sanitize_for_json(item) for item in obj]
    elif isinstance(obj, tuple):
        return tuple(sanitize_for_json(item) for item in obj)
    return obj
