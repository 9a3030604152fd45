from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel
from pydantic_core import PydanticUndefined


def _clean_value(value: Any) -> Any:
    if value is PydanticUndefined:
        return None
    if isinstance(value, BaseModel):
        return sanitize_fields(value.model_dump())
    if isinstance(value, Mapping):
        return sanitize_fields(value)
    if isinstance(value, Enum):
        return value.value
    return value


def sanitize_fields(data: Mapping[str, Any]) -> dict:
    """
    Return a copy of ``data`` that every store backend accepts.

    Undefined values become an explicit None, nested mappings and pydantic
    models are cleaned recursively, enums are stored by value. Lists are
    passed through untouched.
    """
    return {key: _clean_value(value) for key, value in data.items()}
