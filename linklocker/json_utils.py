"""
Key-case conversion between stored camelCase documents and snake_case
dataclass fields.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def camel_to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def snake_to_camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


_CONVERTERS = {
    "camel_to_snake": camel_to_snake,
    "snake_to_camel": snake_to_camel,
}


def convert_keys(data: Any, direction: str) -> Any:
    """
    Recursively rename dict keys in `data`.

    Args:
        data: A dict, list or scalar. Only dict keys are renamed; values are
            walked but otherwise left untouched.
        direction: Either "camel_to_snake" or "snake_to_camel".
    """
    try:
        convert = _CONVERTERS[direction]
    except KeyError:
        raise ValueError(f"Unknown conversion direction: {direction}")

    if isinstance(data, dict):
        return {
            (convert(k) if isinstance(k, str) else k): convert_keys(v, direction)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [convert_keys(item, direction) for item in data]
    return data


def enum_dict_factory(items: list[tuple[str, Any]]) -> dict:
    """`dataclasses.asdict` factory that stores enum members by value."""
    return {k: v.value if isinstance(v, Enum) else v for k, v in items}
