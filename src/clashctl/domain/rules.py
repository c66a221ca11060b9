"""Rule items, their validation, and the rule-line translation.

An item is one routing directive: a matcher ``type``, its operand
``value`` and the ``policy`` traffic is routed to. Clash encodes each
directive as a single comma-joined rule-line, ``TYPE,VALUE,POLICY``.
Types and policies are free-form; only non-emptiness is enforced.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator, model_validator

# Matcher kinds whose operand may be empty ("match everything").
CATCH_ALL_TYPES: frozenset[str] = frozenset({"MATCH"})

# Literal actions every Clash runtime understands, independent of proxy groups.
UNIVERSAL_POLICIES: tuple[str, ...] = ("DIRECT", "REJECT")

# Matcher kinds offered when authoring items, with a sample operand each.
KNOWN_RULE_TYPES: dict[str, str] = {
    "DOMAIN-SUFFIX": "example.com",
    "DOMAIN-KEYWORD": "keyword",
    "IP-CIDR": "192.168.1.0/24",
    "GEOIP": "CN",
    "MATCH": "",
}


def is_catch_all(item_type: str) -> bool:
    return item_type.strip().upper() in CATCH_ALL_TYPES


class ItemSpec(BaseModel):
    """One desired item as submitted by a client.

    ``id`` is None (or 0) for items that have never been persisted. An id
    that does not belong to the target rule is treated like a missing one.
    Numeric fields from YAML item files (``value: 443``) are read as text.
    """

    model_config = {"frozen": True, "coerce_numbers_to_str": True}

    id: int | None = None
    type: str
    value: str = ""
    policy: str

    @field_validator("id", mode="before")
    @classmethod
    def _zero_is_new(cls, v: Any) -> Any:
        if v in (0, "0", ""):
            return None
        return v

    @field_validator("type", "policy")
    @classmethod
    def _required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @model_validator(mode="after")
    def _value_required(self) -> ItemSpec:
        if not self.value.strip() and not is_catch_all(self.type):
            raise ValueError(f"value must not be empty for type {self.type!r}")
        return self


def to_rule_line(item: Mapping[str, Any] | ItemSpec) -> str:
    """Translate an item into its Clash rule-line.

    Type and policy are emitted verbatim. Commas inside ``value`` are not
    escaped; the target format has no quoting.

    Examples:
        >>> to_rule_line({"type": "DOMAIN-SUFFIX", "value": "example.com", "policy": "DIRECT"})
        'DOMAIN-SUFFIX,example.com,DIRECT'
    """
    if isinstance(item, ItemSpec):
        return f"{item.type},{item.value},{item.policy}"
    return f"{item['type']},{item['value']},{item['policy']}"


def parse_rule_line(text: str) -> dict[str, str]:
    """Parse ``TYPE,VALUE,POLICY`` (or ``TYPE,POLICY``) into item fields.

    Splits on the first and last comma so the value may contain commas.

    Raises:
        ValueError: If *text* has no comma at all.

    Examples:
        >>> parse_rule_line("GEOIP,CN,DIRECT")
        {'type': 'GEOIP', 'value': 'CN', 'policy': 'DIRECT'}
        >>> parse_rule_line("MATCH,Proxy")
        {'type': 'MATCH', 'value': '', 'policy': 'Proxy'}
    """
    head, sep, policy = text.rpartition(",")
    if not sep:
        msg = f"Expected TYPE,VALUE,POLICY but got {text!r}"
        raise ValueError(msg)
    item_type, _, value = head.partition(",")
    return {"type": item_type.strip(), "value": value.strip(), "policy": policy.strip()}


@dataclass
class ItemValidation:
    """Outcome of validating a submitted item sequence."""

    items: list[ItemSpec] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_items(raw_items: Iterable[Mapping[str, Any] | ItemSpec]) -> ItemValidation:
    """Validate every submitted item, collecting all errors.

    Nothing is returned in ``items`` unless the whole sequence is valid, so a
    caller can never act on a partially validated set.
    """
    result = ItemValidation()
    parsed: list[ItemSpec] = []
    for idx, raw in enumerate(raw_items):
        if isinstance(raw, ItemSpec):
            parsed.append(raw)
            continue
        if not isinstance(raw, Mapping):
            result.errors.append(f"item {idx}: expected a mapping, got {type(raw).__name__}")
            continue
        try:
            parsed.append(ItemSpec.model_validate(dict(raw)))
        except ValidationError as exc:
            for err in exc.errors():
                loc = ".".join(str(part) for part in err["loc"]) or "item"
                message = str(err["msg"]).removeprefix("Value error, ")
                result.errors.append(f"item {idx}: {loc}: {message}")
    if not result.errors:
        result.items = parsed
    return result
