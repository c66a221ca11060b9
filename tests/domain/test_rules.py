"""Tests for rule items: validation, rule-line translation, parsing."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from clashctl.domain.rules import (
    KNOWN_RULE_TYPES,
    UNIVERSAL_POLICIES,
    ItemSpec,
    is_catch_all,
    parse_rule_line,
    to_rule_line,
    validate_items,
)


class TestToRuleLine:
    def test_domain_suffix(self) -> None:
        line = to_rule_line({"type": "DOMAIN-SUFFIX", "value": "example.com", "policy": "DIRECT"})
        assert line == "DOMAIN-SUFFIX,example.com,DIRECT"

    def test_item_spec(self) -> None:
        spec = ItemSpec(type="GEOIP", value="CN", policy="DIRECT")
        assert to_rule_line(spec) == "GEOIP,CN,DIRECT"

    def test_verbatim_case(self) -> None:
        line = to_rule_line({"type": "domain-keyword", "value": "Ads", "policy": "reject"})
        assert line == "domain-keyword,Ads,reject"

    def test_commas_in_value_not_escaped(self) -> None:
        line = to_rule_line({"type": "IP-CIDR", "value": "10.0.0.0/8,no-resolve", "policy": "Proxy"})
        assert line == "IP-CIDR,10.0.0.0/8,no-resolve,Proxy"

    def test_catch_all_keeps_empty_value(self) -> None:
        assert to_rule_line({"type": "MATCH", "value": "", "policy": "Proxy"}) == "MATCH,,Proxy"


class TestParseRuleLine:
    def test_three_parts(self) -> None:
        assert parse_rule_line("GEOIP,CN,DIRECT") == {
            "type": "GEOIP",
            "value": "CN",
            "policy": "DIRECT",
        }

    def test_two_parts_has_empty_value(self) -> None:
        assert parse_rule_line("MATCH,Proxy") == {"type": "MATCH", "value": "", "policy": "Proxy"}

    def test_value_with_commas(self) -> None:
        parsed = parse_rule_line("IP-CIDR,10.0.0.0/8,no-resolve,Proxy")
        assert parsed["value"] == "10.0.0.0/8,no-resolve"
        assert parsed["policy"] == "Proxy"

    def test_strips_whitespace(self) -> None:
        assert parse_rule_line(" GEOIP , CN , DIRECT ")["value"] == "CN"

    def test_no_comma_raises(self) -> None:
        with pytest.raises(ValueError, match="TYPE,VALUE,POLICY"):
            parse_rule_line("DIRECT")


class TestItemSpec:
    def test_minimal(self) -> None:
        spec = ItemSpec(type="DOMAIN", value="a.com", policy="Proxy")
        assert spec.id is None

    @pytest.mark.parametrize("raw_id", [0, "0", ""])
    def test_zero_id_is_new(self, raw_id: object) -> None:
        spec = ItemSpec.model_validate({"id": raw_id, "type": "GEOIP", "value": "CN", "policy": "DIRECT"})
        assert spec.id is None

    def test_keeps_id(self) -> None:
        spec = ItemSpec(id=7, type="GEOIP", value="CN", policy="DIRECT")
        assert spec.id == 7

    def test_empty_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ItemSpec(type="  ", value="CN", policy="DIRECT")

    def test_empty_policy_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ItemSpec(type="GEOIP", value="CN", policy="")

    def test_empty_value_rejected(self) -> None:
        with pytest.raises(ValidationError, match="value must not be empty"):
            ItemSpec(type="DOMAIN-SUFFIX", value="", policy="DIRECT")

    def test_numeric_value_read_as_text(self) -> None:
        spec = ItemSpec.model_validate({"type": "DST-PORT", "value": 443, "policy": "DIRECT"})
        assert spec.value == "443"
        assert to_rule_line(spec) == "DST-PORT,443,DIRECT"

    def test_numeric_policy_read_as_text(self) -> None:
        spec = ItemSpec.model_validate({"type": "GEOIP", "value": "CN", "policy": 1})
        assert spec.policy == "1"

    def test_empty_value_allowed_for_catch_all(self) -> None:
        spec = ItemSpec(type="match", value="", policy="Proxy")
        assert spec.value == ""

    def test_frozen(self) -> None:
        spec = ItemSpec(type="GEOIP", value="CN", policy="DIRECT")
        with pytest.raises(ValidationError):
            spec.policy = "REJECT"  # type: ignore[misc]


class TestValidateItems:
    def test_all_valid(self) -> None:
        result = validate_items(
            [
                {"type": "GEOIP", "value": "CN", "policy": "DIRECT"},
                ItemSpec(type="MATCH", policy="Proxy"),
            ]
        )
        assert result.valid
        assert [i.type for i in result.items] == ["GEOIP", "MATCH"]

    def test_empty_sequence_is_valid(self) -> None:
        result = validate_items([])
        assert result.valid
        assert result.items == []

    def test_collects_every_error(self) -> None:
        result = validate_items(
            [
                {"type": "GEOIP", "value": "CN", "policy": ""},
                {"type": "GEOIP", "value": "CN", "policy": "DIRECT"},
                {"type": "DOMAIN", "value": "", "policy": "DIRECT"},
            ]
        )
        assert not result.valid
        assert len(result.errors) == 2
        assert result.errors[0].startswith("item 0: policy")
        assert result.errors[1].startswith("item 2:")

    def test_invalid_returns_no_items(self) -> None:
        result = validate_items(
            [
                {"type": "GEOIP", "value": "CN", "policy": "DIRECT"},
                {"type": "", "value": "x", "policy": "DIRECT"},
            ]
        )
        assert result.items == []

    def test_non_mapping(self) -> None:
        result = validate_items(["GEOIP,CN,DIRECT"])  # type: ignore[list-item]
        assert result.errors == ["item 0: expected a mapping, got str"]

    def test_missing_field(self) -> None:
        result = validate_items([{"type": "GEOIP", "value": "CN"}])
        assert "item 0: policy:" in result.errors[0]


class TestConstants:
    def test_universal_policies_order(self) -> None:
        assert UNIVERSAL_POLICIES == ("DIRECT", "REJECT")

    def test_catch_all(self) -> None:
        assert is_catch_all("MATCH")
        assert is_catch_all(" match ")
        assert not is_catch_all("GEOIP")

    def test_known_types_only_catch_all_has_empty_example(self) -> None:
        empty = [name for name, example in KNOWN_RULE_TYPES.items() if not example]
        assert empty == ["MATCH"]
