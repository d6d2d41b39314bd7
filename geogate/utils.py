"""Utility functions for the geogate service."""

import dataclasses
import json
import os
import typing
from typing import Any
from typing import Callable
from typing import TypeVar


T = TypeVar("T")


def env(key: str, convert: Callable[[str], T] = typing.cast(Callable[[str], T], str), **kwargs: Any) -> T:
    """Load a value from environment variables with optional default and type conversion.

    The key may carry an inline default after a colon, e.g. ``"GATEWAY_PORT:8080"``.
    A key without a default raises ``KeyError`` when the variable is unset.
    """
    key, partition, default = key.partition(":")

    def default_factory(
        key_val: str = key, default_val: str = default, convert_func: Callable[[str], T] = convert
    ) -> T:
        if key_val in os.environ:
            return convert_func(os.environ[key_val])

        if partition == ":":
            return convert_func(default_val)

        raise KeyError(key_val)

    return typing.cast(T, dataclasses.field(default_factory=default_factory, **kwargs))


def as_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def as_list(value: str) -> list[str]:
    """Split a comma separated value, dropping blanks."""
    return [item.strip() for item in value.split(",") if item.strip()]


def as_json_list(value: str) -> list[dict[str, Any]]:
    """Parse a JSON array of objects, as used for coordinate and geofence lists."""
    if not value.strip():
        return []
    parsed = json.loads(value)
    if not isinstance(parsed, list) or not all(isinstance(item, dict) for item in parsed):
        raise ValueError(f"Expected a JSON list of objects, got: {value!r}")
    return parsed
