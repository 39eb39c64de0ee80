"""
Dotted-path access into raw business-case documents.

Paths look like ``assumptions.customers.segments[0].volume.base_value``:
dot-separated keys, each optionally followed by one or more ``[index]``
list subscripts.
"""

import copy
import re
from typing import Any, List, Union

_SEGMENT = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")
_INDEX = re.compile(r"\[(\d+)\]")

PathStep = Union[str, int]

# Largest list index an update may create; longer padding is rejected.
MAX_LIST_INDEX = 1000


def parse_path(path: str) -> List[PathStep]:
    """Split a dotted path into keys (str) and list indices (int)."""
    if not path or not isinstance(path, str):
        raise ValueError("Path must be a non-empty string")
    steps: List[PathStep] = []
    for part in path.split("."):
        match = _SEGMENT.match(part)
        if match is None:
            raise ValueError(f"Malformed path segment '{part}' in '{path}'")
        key, subscripts = match.groups()
        if not key and not subscripts:
            raise ValueError(f"Empty path segment in '{path}'")
        if key:
            steps.append(key)
        steps.extend(int(i) for i in _INDEX.findall(subscripts))
    return steps


def get_value_at_path(obj: Any, path: str) -> Any:
    """Value at ``path``, or None when any step is missing or out of range."""
    current = obj
    for step in parse_path(path):
        if isinstance(step, int):
            if not isinstance(current, list) or step >= len(current):
                return None
            current = current[step]
        else:
            if not isinstance(current, dict) or step not in current:
                return None
            current = current[step]
    return current


def _container_for(next_step: PathStep) -> Any:
    return [] if isinstance(next_step, int) else {}


def set_value_at_path(obj: dict, path: str, value: Any) -> dict:
    """
    Return a deep copy of ``obj`` with ``value`` stored at ``path``.

    Missing dictionaries and list slots along the way are created (lists are
    padded with empty dicts). The input is never modified.

    Raises:
        ValueError: on an empty/malformed path, or when an existing value has
            the wrong shape (e.g. a number where a list index is applied),
            or when a list would have to grow past ``MAX_LIST_INDEX``.
    """
    if not isinstance(obj, dict):
        raise ValueError("Object must be a dictionary")
    steps = parse_path(path)
    result = copy.deepcopy(obj)

    current: Any = result
    for position, step in enumerate(steps):
        is_last = position == len(steps) - 1
        next_step = None if is_last else steps[position + 1]
        if isinstance(step, int):
            if not isinstance(current, list):
                raise ValueError(f"Expected a list before [{step}] in '{path}', got {type(current).__name__}")
            if step >= len(current) and step > MAX_LIST_INDEX:
                raise ValueError(f"List index [{step}] in '{path}' exceeds the maximum of {MAX_LIST_INDEX}")
            while len(current) <= step:
                current.append({})
            if is_last:
                current[step] = value
            else:
                if current[step] is None or (current[step] == {} and isinstance(next_step, int)):
                    current[step] = _container_for(next_step)
                current = current[step]
        else:
            if not isinstance(current, dict):
                raise ValueError(f"Expected an object at '{step}' in '{path}', got {type(current).__name__}")
            if is_last:
                current[step] = value
            else:
                if current.get(step) is None:
                    current[step] = _container_for(next_step)
                current = current[step]
    return result
