"""Clash configuration document codec and rule merging.

The remote document follows a third-party schema that clashctl does not
own. It is decoded into a round-trip mapping so every field (and comment)
other than ``rules`` survives re-serialization. Only two keys are read:
``proxy-groups`` (group names) and ``rules`` (rule-lines).
"""

from __future__ import annotations

from collections.abc import Sequence
from io import StringIO
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.error import YAMLError

RULES_KEY = "rules"
GROUPS_KEY = "proxy-groups"


class DocumentError(ValueError):
    """Raised when remote bytes are not a usable Clash document."""


def _new_yaml() -> YAML:
    """Create a fresh round-trip YAML instance.

    ruamel.yaml's YAML object is stateful; a failed dump can leave a shared
    instance broken, so every operation gets its own.
    """
    y = YAML()
    y.preserve_quotes = True
    y.default_flow_style = False
    y.width = 4096
    return y


def decode_document(raw: bytes) -> CommentedMap:
    """Decode fetched bytes into a round-trip mapping.

    Raises:
        DocumentError: If the bytes are not UTF-8 YAML, the top level is not
            a mapping, or ``rules`` / ``proxy-groups`` have the wrong shape.
    """
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        msg = f"Document is not valid UTF-8: {exc}"
        raise DocumentError(msg) from exc

    try:
        doc = _new_yaml().load(text)
    except YAMLError as exc:
        msg = f"Document is not valid YAML: {exc}"
        raise DocumentError(msg) from exc

    if not isinstance(doc, dict):
        kind = "empty" if doc is None else type(doc).__name__
        msg = f"Document top level must be a mapping, got {kind}"
        raise DocumentError(msg)

    rules = doc.get(RULES_KEY)
    if rules is not None and not isinstance(rules, list):
        msg = f"`{RULES_KEY}` must be a list, got {type(rules).__name__}"
        raise DocumentError(msg)

    # Validates the group shape up front so compile and list-groups agree.
    group_names(doc)
    return doc


def group_names(doc: dict[str, Any]) -> list[str]:
    """Proxy-group names in document order.

    Raises:
        DocumentError: If ``proxy-groups`` is not a list of named mappings.
    """
    groups = doc.get(GROUPS_KEY)
    if groups is None:
        return []
    if not isinstance(groups, list):
        msg = f"`{GROUPS_KEY}` must be a list, got {type(groups).__name__}"
        raise DocumentError(msg)

    names: list[str] = []
    for idx, group in enumerate(groups):
        name = group.get("name") if isinstance(group, dict) else None
        if not isinstance(name, str):
            msg = f"`{GROUPS_KEY}[{idx}]` has no string `name`"
            raise DocumentError(msg)
        names.append(name)
    return names


def base_rules(doc: dict[str, Any]) -> list[str]:
    """The document's own rule-lines (empty when the key is absent)."""
    return [str(line) for line in doc.get(RULES_KEY) or []]


def merge_rules(doc: CommentedMap, lines: Sequence[str]) -> CommentedMap:
    """Put *lines* in front of the document's own rules.

    Clash evaluates rules first-match-wins, so prepending gives the
    user-authored lines precedence. The mapping is modified in place and
    returned. An existing ``rules`` sequence is extended at the front, so
    its key position and the comments on its entries are kept.
    """
    existing = doc.get(RULES_KEY)
    if isinstance(existing, CommentedSeq):
        if lines:
            # `rules: []` decodes as a flow sequence; rule-lines need block style.
            existing.fa.set_block_style()
        # CommentedSeq.insert shifts entry comments along with the entries.
        for offset, line in enumerate(lines):
            existing.insert(offset, line)
    else:
        doc[RULES_KEY] = CommentedSeq([*lines, *(existing or [])])
    return doc


def encode_document(doc: CommentedMap) -> str:
    """Serialize the document back to YAML text."""
    buf = StringIO()
    _new_yaml().dump(doc, buf)
    return buf.getvalue()
