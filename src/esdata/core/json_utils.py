"""JSON helpers for diagnostic output."""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def to_json(obj: Any) -> str:
    """Serialize *obj* for log and error messages.

    Serialization problems never abort the surrounding operation: the
    failure is logged and ``"{}"`` is returned instead.
    """
    if hasattr(obj, "body"):
        obj = obj.body
    try:
        return json.dumps(obj, default=_default, ensure_ascii=False)
    except (TypeError, ValueError):
        logger.warning("could not serialize to json", exc_info=True)
        return "{}"


def _default(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
