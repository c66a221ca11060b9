"""Shared pytest fixtures and test helpers for clashctl tests."""

from __future__ import annotations

import functools
from collections.abc import Generator
from pathlib import Path
from typing import Any

import httpx
import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from clashctl.config.settings import ClashSettings
from clashctl.infrastructure.database.engine import init_database
from clashctl.infrastructure.fetch import Fetcher
from clashctl.infrastructure.store import Store
from clashctl.services.telemetry import disable_telemetry

BASE_URL = "https://sub.example.com/clash.yaml"

BASE_DOC = """\
port: 7890
mode: rule
# upstream nodes
proxies:
  - name: node-a
    type: ss
    server: a.example.com
    port: 443
proxy-groups:
  - name: Proxy
    type: select
    proxies:
      - node-a
  - name: Auto
    type: url-test
    proxies:
      - node-a
rules:
  - DOMAIN-SUFFIX,local,DIRECT
  - MATCH,Proxy
"""


class RemoteDocs:
    """In-memory stand-in for the hosts serving remote base configs."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes]] = {}
        self.failures: dict[str, type[httpx.TransportError]] = {}
        self.requests: list[httpx.Request] = []

    def serve(self, url: str, body: str | bytes, *, status: int = 200) -> None:
        content = body.encode("utf-8") if isinstance(body, str) else body
        self.routes[url] = (status, content)

    def fail(self, url: str, error: type[httpx.TransportError]) -> None:
        """Make requests for *url* raise *error* instead of answering."""
        self.failures[url] = error

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        error = self.failures.get(str(request.url))
        if error is not None:
            raise error("simulated", request=request)
        status, content = self.routes.get(str(request.url), (404, b""))
        return httpx.Response(status, content=content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def _reset_telemetry_state() -> Generator[None]:
    """``-v`` enables telemetry for the whole thread; switch it back off."""
    yield
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Generator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path / ".clashctl" / "clashctl.db")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def data_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary data root, isolated from any ambient clashctl config."""
    monkeypatch.delenv("CLASHCTL_CONFIG", raising=False)
    return tmp_path


@pytest.fixture
def remote() -> RemoteDocs:
    """Remote hosts with the default base config served at BASE_URL."""
    docs = RemoteDocs()
    docs.serve(BASE_URL, BASE_DOC)
    return docs


@pytest.fixture
def store(data_root: Path, remote: RemoteDocs) -> Generator[Store]:
    """Fully initialized store whose fetcher talks to :class:`RemoteDocs`."""
    settings = ClashSettings.from_cli(data_root=data_root)
    s = Store(settings, fetcher=Fetcher(transport=remote.transport))
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def _isolated_root(
    data_root: Path, remote: RemoteDocs, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Change CWD to a temp data root and route CLI fetches to :class:`RemoteDocs`.

    Use via ``@pytest.mark.usefixtures("_isolated_root")`` on command test
    classes. Tests that need the remote can request ``remote`` directly
    (pytest deduplicates, it's the same instance).
    """
    monkeypatch.chdir(data_root)
    monkeypatch.setattr(
        "clashctl.infrastructure.store.Fetcher",
        functools.partial(Fetcher, transport=remote.transport),
    )


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def item(
    item_type: str, value: str, policy: str, *, id: int | None = None  # noqa: A002
) -> dict[str, Any]:
    """Build a submitted item mapping."""
    entry: dict[str, Any] = {"type": item_type, "value": value, "policy": policy}
    if id is not None:
        entry["id"] = id
    return entry


def create_rule(
    store: Store, url: str | None = BASE_URL, items: list[Any] | None = None
) -> dict[str, Any]:
    """Create a rule via RuleService, asserting success."""
    from clashctl.services.rules import RuleService

    result = RuleService(store).create_rule(url=url, items=items or [])
    assert result.ok, result.error
    return result.data


def as_submitted(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Turn a rule payload's items back into a submitted sequence (ids kept)."""
    return [
        item(entry["type"], entry["value"], entry["policy"], id=entry["id"])
        for entry in data["items"]
    ]


def contents(data: dict[str, Any]) -> list[tuple[str, str, str]]:
    """Item contents of a rule payload, in order, without ids."""
    return [(e["type"], e["value"], e["policy"]) for e in data["items"]]
