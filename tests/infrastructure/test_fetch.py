"""Tests for Fetcher — remote document download over httpx."""

from __future__ import annotations

import httpx
import pytest

from clashctl.infrastructure.fetch import Fetcher, FetchError
from tests.conftest import BASE_DOC, BASE_URL, RemoteDocs


class TestFetchText:
    def test_returns_body_bytes(self, remote: RemoteDocs) -> None:
        fetcher = Fetcher(transport=remote.transport)
        assert fetcher.fetch_text(BASE_URL) == BASE_DOC.encode()

    def test_sends_user_agent(self, remote: RemoteDocs) -> None:
        Fetcher(user_agent="clash.meta", transport=remote.transport).fetch_text(BASE_URL)
        assert remote.requests[-1].headers["user-agent"] == "clash.meta"

    def test_default_user_agent(self, remote: RemoteDocs) -> None:
        Fetcher(transport=remote.transport).fetch_text(BASE_URL)
        assert remote.requests[-1].headers["user-agent"] == "clash"

    def test_non_success_status(self, remote: RemoteDocs) -> None:
        remote.serve("https://sub.example.com/gone", "", status=410)
        with pytest.raises(FetchError) as exc_info:
            Fetcher(transport=remote.transport).fetch_text("https://sub.example.com/gone")
        assert exc_info.value.status_code == 410
        assert "HTTP 410" in exc_info.value.reason

    def test_not_found(self, remote: RemoteDocs) -> None:
        with pytest.raises(FetchError) as exc_info:
            Fetcher(transport=remote.transport).fetch_text("https://nowhere.example/cfg")
        assert exc_info.value.status_code == 404

    def test_follows_redirects(self, remote: RemoteDocs) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(302, headers={"Location": BASE_URL})
            return remote.handler(request)

        fetcher = Fetcher(transport=httpx.MockTransport(handler))
        assert fetcher.fetch_text("https://sub.example.com/old") == BASE_DOC.encode()

    def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError, match="connection refused"):
            Fetcher(transport=httpx.MockTransport(handler)).fetch_text(BASE_URL)

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(FetchError, match="timed out after 2.0s"):
            Fetcher(timeout=2.0, transport=httpx.MockTransport(handler)).fetch_text(BASE_URL)

    @pytest.mark.parametrize("url", ["ftp://sub.example.com/cfg", "file:///etc/passwd"])
    def test_rejects_other_schemes(self, url: str, remote: RemoteDocs) -> None:
        with pytest.raises(FetchError, match="unsupported scheme"):
            Fetcher(transport=remote.transport).fetch_text(url)
        assert remote.requests == []

    def test_error_message_names_url(self) -> None:
        err = FetchError("https://a.example", "HTTP 500")
        assert str(err) == "Failed to fetch https://a.example: HTTP 500"
