"""Tests for operation-specific Rich renderers."""

from __future__ import annotations

from typing import Any

from clashctl.output.renderers import render_quiet, render_result
from clashctl.services.result import ServiceError, ServiceResult

RULE: dict[str, Any] = {
    "id": 3,
    "url": "https://sub.example.com/clash.yaml",
    "created_at": "2026-01-01T00:00:00+00:00",
    "updated_at": "2026-01-02T00:00:00+00:00",
    "item_count": 2,
    "items": [
        {"id": 11, "type": "GEOIP", "value": "CN", "policy": "DIRECT"},
        {"id": 12, "type": "MATCH", "value": "", "policy": "Proxy"},
    ],
}


class TestRenderRule:
    def test_fields_and_items(self) -> None:
        out = render_result(ServiceResult(ok=True, op="get_rule", data=RULE))
        assert "OK" in out
        assert "get_rule" in out
        assert "https://sub.example.com/clash.yaml" in out
        assert "GEOIP" in out
        assert "Proxy" in out
        assert out.index("GEOIP") < out.index("MATCH")

    def test_ids_only_verbose(self) -> None:
        quiet = render_result(ServiceResult(ok=True, op="get_rule", data=RULE))
        loud = render_result(ServiceResult(ok=True, op="get_rule", data=RULE), verbose=True)
        assert "11" not in quiet
        assert "11" in loud
        assert "created_at" in loud

    def test_unset_url(self) -> None:
        data = {**RULE, "url": None, "items": [], "item_count": 0}
        out = render_result(ServiceResult(ok=True, op="create_rule", data=data))
        assert "(unset)" in out

    def test_reconcile_changes(self) -> None:
        data = {
            **RULE,
            "changes": {"deleted": 1, "updated": 0, "inserted": 2, "unchanged": 0, "url_changed": False},
        }
        out = render_result(ServiceResult(ok=True, op="reconcile", data=data))
        assert "deleted=1, inserted=2" in out

    def test_reconcile_no_changes(self) -> None:
        data = {
            **RULE,
            "changes": {"deleted": 0, "updated": 0, "inserted": 0, "unchanged": 2, "url_changed": False},
        }
        out = render_result(ServiceResult(ok=True, op="reconcile", data=data))
        assert "unchanged=2" in out


class TestRenderOthers:
    def test_rule_table(self) -> None:
        listed = {"count": 1, "items": [{**RULE, "items": None}]}
        out = render_result(ServiceResult(ok=True, op="list_rules", data=listed))
        assert "1 rules" in out
        assert "sub.example.com" in out

    def test_groups(self) -> None:
        data = {"url": "https://a", "count": 3, "groups": ["Proxy", "DIRECT", "REJECT"]}
        out = render_result(ServiceResult(ok=True, op="list_groups", data=data))
        assert "1. Proxy" in out
        assert "3. REJECT" in out

    def test_compile_summary_excludes_content(self) -> None:
        data = {"rule_id": 3, "url": "https://a", "rule_count": 1, "base_rule_count": 2,
                "content": "rules: []\n", "output_file": "/tmp/x.yaml"}
        out = render_result(ServiceResult(ok=True, op="compile", data=data))
        assert "output_file: /tmp/x.yaml" in out
        assert "rules: []" not in out

    def test_rule_types(self) -> None:
        data = {"types": [{"type": "GEOIP", "example": "CN"}, {"type": "MATCH", "example": ""}]}
        out = render_result(ServiceResult(ok=True, op="rule_types", data=data))
        assert "GEOIP" in out
        assert "(empty)" in out

    def test_error_includes_code(self) -> None:
        result = ServiceResult(
            ok=False,
            op="compile",
            error=ServiceError(code="UPSTREAM_FETCH_FAILED", message="HTTP 503", detail={"url": "u"}),
        )
        out = render_result(result, verbose=True)
        assert "ERROR" in out
        assert "[UPSTREAM_FETCH_FAILED]" in out
        assert "url: u" in out

    def test_generic_fallback(self) -> None:
        out = render_result(ServiceResult(ok=True, op="mystery", data={"a": [1, 2]}))
        assert "a: [1,2]" in out


class TestLineLayout:
    def test_status_and_fields_single_spaced(self) -> None:
        result = ServiceResult(ok=True, op="delete_rule", data={"id": 3, "items_deleted": 2})
        assert render_result(result).splitlines() == [
            "OK  delete_rule",
            "  id: 3",
            "  items_deleted: 2",
        ]

    def test_error_line(self) -> None:
        result = ServiceResult(
            ok=False,
            op="compile",
            error=ServiceError(code="NOT_FOUND", message="No rule found with ID: 9"),
        )
        assert render_result(result) == "ERROR  compile [NOT_FOUND] — No rule found with ID: 9"

    def test_brackets_in_values_are_literal(self) -> None:
        result = ServiceResult(ok=True, op="mystery", data={"note": "[bold]x[/bold]"})
        assert "note: [bold]x[/bold]" in render_result(result)

    def test_timings_block(self) -> None:
        meta = {
            "timings": {
                "operation": "CompileService.compile",
                "total_ms": 12.5,
                "stages": [
                    {"stage": "fetch", "ms": 10.0, "bytes": 512},
                    {"stage": "decode", "ms": 1.25},
                ],
            }
        }
        result = ServiceResult(ok=True, op="delete_rule", data={"id": 3}, meta=meta)
        lines = render_result(result, verbose=True).splitlines()
        assert "   12.50ms  CompileService.compile" in lines[-3]
        assert lines[-2].endswith("fetch  (bytes=512)")
        assert lines[-1].endswith("1.25ms  decode")

    def test_timings_hidden_without_verbose(self) -> None:
        meta = {"timings": {"operation": "RuleService.get_rule", "total_ms": 1.0, "stages": []}}
        result = ServiceResult(ok=True, op="get_rule", data={"id": 3, "items": []}, meta=meta)
        assert "RuleService.get_rule" not in render_result(result)


class TestRenderQuiet:
    def test_rule_id(self) -> None:
        assert render_quiet(ServiceResult(ok=True, op="get_rule", data=RULE)) == "3"

    def test_list_rules(self) -> None:
        data = {"count": 2, "items": [{"id": 5}, {"id": 4}]}
        assert render_quiet(ServiceResult(ok=True, op="list_rules", data=data)) == "5\n4"

    def test_groups(self) -> None:
        data = {"groups": ["Proxy", "DIRECT", "REJECT"]}
        assert render_quiet(ServiceResult(ok=True, op="list_groups", data=data)) == "Proxy\nDIRECT\nREJECT"

    def test_fallback(self) -> None:
        assert render_quiet(ServiceResult(ok=True, op="upgrade", data={})) == "OK: upgrade"
