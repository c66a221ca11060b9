"""CompileService — merge a rule's items into its remote base config.

Pipeline: LOAD → FETCH → DECODE → TRANSLATE → MERGE → ENCODE

The remote document is third-party authored. Only ``proxy-groups`` is
read and only ``rules`` is rewritten; every other field round-trips.
User rule-lines are placed before the document's own, since Clash stops
at the first matching rule.
"""

from __future__ import annotations

import structlog
from ruamel.yaml.comments import CommentedMap

from clashctl.domain.document import (
    DocumentError,
    base_rules,
    decode_document,
    encode_document,
    group_names,
    merge_rules,
)
from clashctl.domain.rules import UNIVERSAL_POLICIES, to_rule_line
from clashctl.infrastructure.fetch import FetchError
from clashctl.services._helpers import error_result
from clashctl.services.base import BaseService
from clashctl.services.result import ErrorCode, ServiceResult
from clashctl.services.telemetry import stage, timed

log = structlog.get_logger(__name__)


class CompileService(BaseService):
    """Builds composite configs and lists remote proxy groups."""

    @timed
    def compile(self, rule_id: int) -> ServiceResult:
        """Produce the composite document for *rule_id*.

        ``data["content"]`` holds the YAML text; ``data["filename"]`` the
        suggested download name.
        """
        op = "compile"

        # ── LOAD ─────────────────────────────────────────────────
        with self._store.reader() as repo:
            rule = repo.find_rule_by_id(rule_id)
        if rule is None:
            return error_result(
                op,
                ErrorCode.NOT_FOUND,
                f"No rule found with ID: {rule_id}",
                detail={"rule_id": rule_id},
            )
        url = rule["url"]
        if not url:
            return error_result(
                op,
                ErrorCode.INVALID_INPUT,
                f"Rule {rule_id} has no remote URL; save one before compiling",
                detail={"rule_id": rule_id},
            )

        # ── FETCH + DECODE ───────────────────────────────────────
        try:
            doc = self._load_document(url)
        except FetchError as exc:
            return _fetch_failed(op, exc)
        except DocumentError as exc:
            return _decode_failed(op, url, exc)

        # ── TRANSLATE + MERGE + ENCODE ───────────────────────────
        with stage("merge") as facts:
            lines = [to_rule_line(item) for item in rule["items"]]
            base_count = len(base_rules(doc))
            content = encode_document(merge_rules(doc, lines))
            if facts is not None:
                facts["rules"] = len(lines) + base_count

        filename = self._store.settings.export.filename_template.format(id=rule_id)
        log.info("rule.compiled", rule_id=rule_id, prepended=len(lines), base=base_count)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "rule_id": rule_id,
                "url": url,
                "filename": filename,
                "rule_count": len(lines),
                "base_rule_count": base_count,
                "content": content,
            },
        )

    @timed
    def list_groups(self, url: str) -> ServiceResult:
        """Proxy-group names of the document at *url*, then DIRECT and REJECT.

        The list is what an item's policy may sensibly be; it is offered,
        not enforced.
        """
        op = "list_groups"
        if not url.strip():
            return error_result(op, ErrorCode.INVALID_INPUT, "url must not be empty")

        try:
            doc = self._load_document(url)
        except FetchError as exc:
            return _fetch_failed(op, exc)
        except DocumentError as exc:
            return _decode_failed(op, url, exc)

        groups = [*group_names(doc), *UNIVERSAL_POLICIES]
        return ServiceResult(
            ok=True,
            op=op,
            data={"url": url, "count": len(groups), "groups": groups},
        )

    @timed
    def list_groups_for_rule(self, rule_id: int) -> ServiceResult:
        """Like :meth:`list_groups`, using the URL stored on a rule."""
        op = "list_groups"
        with self._store.reader() as repo:
            rule = repo.find_rule_by_id(rule_id)
        if rule is None:
            return error_result(
                op,
                ErrorCode.NOT_FOUND,
                f"No rule found with ID: {rule_id}",
                detail={"rule_id": rule_id},
            )
        if not rule["url"]:
            return error_result(
                op,
                ErrorCode.INVALID_INPUT,
                f"Rule {rule_id} has no remote URL",
                detail={"rule_id": rule_id},
            )
        return self.list_groups(rule["url"])

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_document(self, url: str) -> CommentedMap:
        """Fetch and decode the remote document (raises FetchError/DocumentError)."""
        with stage("fetch") as facts:
            raw = self._store.fetcher.fetch_text(url)
            if facts is not None:
                facts["bytes"] = len(raw)
        with stage("decode"):
            return decode_document(raw)


def _fetch_failed(op: str, exc: FetchError) -> ServiceResult:
    log.info("upstream.fetch_failed", url=exc.url, reason=exc.reason)
    detail: dict[str, object] = {"url": exc.url, "reason": exc.reason}
    if exc.status_code is not None:
        detail["status_code"] = exc.status_code
    return error_result(op, ErrorCode.UPSTREAM_FETCH_FAILED, str(exc), detail=detail)


def _decode_failed(op: str, url: str, exc: DocumentError) -> ServiceResult:
    log.info("upstream.decode_failed", url=url, error=str(exc))
    return error_result(
        op,
        ErrorCode.UPSTREAM_DECODE_FAILED,
        f"Remote document at {url} is not a usable Clash config: {exc}",
        detail={"url": url},
    )
