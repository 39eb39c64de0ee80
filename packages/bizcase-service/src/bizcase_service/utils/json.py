import dataclasses
import math
from datetime import date, datetime
from enum import Enum
from typing import Any


def sanitize_for_json(obj: Any) -> Any:
    """
    Recursively traverse the object and make it JSON-compliant.

    - NaN and Infinity float values become None.
    - Dates and datetimes become ISO-8601 strings.
    - Enums become their value.
    - Dataclass instances become dictionaries.

    Args:
        obj: The object to sanitize (dict, list, float, dataclass, etc.)

    Returns:
        The sanitized object.
    """
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return obj
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, (date, datetime)):
        return obj.isoformat()
    elif dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: sanitize_for_json(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    elif isinstance(obj, dict):
        return {k: sanitize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [sanitize_for_json(item) for item in obj]
    return obj
