"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from clashctl.services.result import ServiceError, ServiceResult


def now_iso() -> str:
    """Current UTC time as standard ISO 8601 (for row timestamps)."""
    return datetime.now(UTC).isoformat()


def now_compact() -> str:
    """Current UTC time as compact ISO (YYYYMMDDTHHmmss, for backup filenames)."""
    return datetime.now(UTC).strftime("%Y%m%dT%H%M%S")


def error_result(
    op: str,
    code: str,
    message: str,
    *,
    detail: dict[str, Any] | None = None,
) -> ServiceResult:
    """Build a failed ServiceResult."""
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code=code, message=message, detail=detail or {}),
    )


def serialize_rule(rule: dict[str, Any]) -> dict[str, Any]:
    """Shape a repository rule row for ServiceResult.data.

    Examples:
        >>> serialize_rule({"id": 1, "url": None, "created_at": "t", "updated_at": "t",
        ...                 "items": []})["item_count"]
        0
    """
    rule_items = [
        {
            "id": item["id"],
            "type": item["type"],
            "value": item["value"],
            "policy": item["policy"],
        }
        for item in rule.get("items", [])
    ]
    return {
        "id": rule["id"],
        "url": rule["url"],
        "created_at": rule["created_at"],
        "updated_at": rule["updated_at"],
        "item_count": len(rule_items),
        "items": rule_items,
    }
