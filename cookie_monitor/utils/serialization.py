"""camelCase helpers for persisted and control-channel payloads."""

from __future__ import annotations

from typing import Any

import pydantic


def snake_to_camel(name: str) -> str:
    """Turn ``first_seen`` into ``firstSeen``; used as a pydantic alias generator."""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_camel_json(model: pydantic.BaseModel) -> dict[str, Any]:
    """Dump *model* as JSON-compatible data keyed by camelCase aliases."""
    return model.model_dump(mode="json", by_alias=True)
