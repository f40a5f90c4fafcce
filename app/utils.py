"""Utility helpers for the Movie Watcher service."""

from __future__ import annotations

import json
from typing import Any


def same_identifier(left: object, right: object) -> bool:
    """Compare catalog identifiers regardless of int/str representation.

    Route parameters always arrive as strings while the data file may use
    integers, so ``1`` and ``"1"`` address the same item.
    """

    if left is None or right is None:
        return False
    return str(left).strip() == str(right).strip()


def script_json(payload: Any) -> str:
    """Serialise ``payload`` for safe embedding inside a ``<script>`` tag."""

    return json.dumps(payload).replace("</", "<\\/")


def first_forwarded_value(header_value: str | None) -> str | None:
    if not header_value:
        return None
    value = header_value.split(",", 1)[0].strip()
    return value or None
