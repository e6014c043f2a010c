"""
Transformation query parsing.

Transformations are sent as ``t[]=name:param=value,param=value``. The
indexed (``t[0]=``) and bare (``t=``) key forms are accepted too. All forms
run in the order they appear in the query; indices never reorder them.
"""

import re
from typing import Dict, List, Tuple
from urllib.parse import parse_qsl

from ..models import Transformation
from .exceptions import TransformationError

TRANSFORMATION_KEY = "t"

_TRANSFORMATION_KEY_PATTERN = re.compile(r"^t(?:\[\d*\])?$")
_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")


def parse_query_string(query_string: str) -> List[Tuple[str, str]]:
    """Decode a raw query string into ordered (key, value) pairs."""
    return parse_qsl(query_string, keep_blank_values=True)


def group_query_params(pairs: List[Tuple[str, str]]) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for key, value in pairs:
        grouped.setdefault(key, []).append(value)
    return grouped


def transformation_values(pairs: List[Tuple[str, str]]) -> List[str]:
    """Collect transformation strings in arrival order."""
    return [value for key, value in pairs if _TRANSFORMATION_KEY_PATTERN.match(key)]


def parse_transformation(value: str) -> Transformation:
    """
    Parse ``name`` or ``name:key=value,key=value``.

    Raises:
        TransformationError: empty name or malformed parameter list
    """
    name, _, raw_params = value.partition(":")
    name = name.strip()
    if not _NAME_PATTERN.match(name):
        raise TransformationError(f"Invalid transformation: {value!r}")

    params: Dict[str, str] = {}
    if raw_params:
        for part in raw_params.split(","):
            key, sep, param_value = part.partition("=")
            key = key.strip()
            if not key or not sep:
                raise TransformationError(
                    f"Invalid parameter {part!r} for transformation '{name}'"
                )
            params[key] = param_value.strip()

    return Transformation(name=name, params=params)


def parse_transformations(pairs: List[Tuple[str, str]]) -> List[Transformation]:
    return [parse_transformation(value) for value in transformation_values(pairs) if value]
