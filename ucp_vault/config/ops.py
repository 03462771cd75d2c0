"""Configuration comparison helpers.

Migrations decide whether to write configuration back by comparing a
canonical serialization of the value before and after, so that key order
and unset optional fields never cause a write.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel


def _prune_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _prune_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_prune_none(item) for item in value]
    return value


def stable_dumps(value: Any) -> str:
    """Serialize *value* to JSON with sorted keys and ``None`` fields dropped.

    Pydantic models are dumped by alias first.
    """
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True, exclude_none=True, mode="json")
    return json.dumps(_prune_none(value), sort_keys=True, separators=(",", ":"))
