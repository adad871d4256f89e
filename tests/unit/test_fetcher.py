"""Unit tests for the HTTP list source."""

import json

import httpx
import pytest

from social_rss.config import SourceConfig
from social_rss.core.fetcher import HttpListSource, ListSource, create_list_source
from social_rss.exceptions import FetchFailure
from social_rss.models import RawItem

BASE_URL = "http://gateway.test"


def make_source(handler, **overrides) -> HttpListSource:
    """Build a source whose client is served by ``handler``."""
    settings = dict(base_url=BASE_URL, max_retries=2, retry_delay_seconds=0)
    settings.update(overrides)
    config = SourceConfig(**settings)
    client = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return HttpListSource(config, client=client)


class TestLogin:
    """Tests for login and session status."""

    def test_login_success(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            if request.url.path == "/auth/login":
                body = json.loads(request.content)
                assert body == {"username": "u", "password": "p", "email": "e@x"}
                return httpx.Response(200, json={"ok": True})
            return httpx.Response(200, json={"loggedIn": True})

        source = make_source(handler)

        assert source.login("u", "p", "e@x") is True
        assert source.is_logged_in() is True
        assert seen == [("POST", "/auth/login"), ("GET", "/auth/status")]

    def test_login_rejected(self):
        source = make_source(lambda request: httpx.Response(401, json={"error": "bad credentials"}))

        assert source.login("u", "p", "e@x") is False
        assert source.is_logged_in() is False

    def test_login_not_confirmed(self):
        def handler(request):
            if request.url.path == "/auth/login":
                return httpx.Response(200)
            return httpx.Response(200, json={"loggedIn": False})

        assert make_source(handler).login("u", "p", "e@x") is False

    def test_status_with_garbage_body(self):
        def handler(request):
            if request.url.path == "/auth/login":
                return httpx.Response(200)
            return httpx.Response(200, text="<html>")

        assert make_source(handler).login("u", "p", "e@x") is False


class TestFetchListItems:
    """Tests for fetch_list_items."""

    def test_list_payload(self):
        def handler(request):
            assert request.url.path == "/lists/123/items"
            assert request.url.params["count"] == "2"
            return httpx.Response(200, json=[{"id": "1"}, {"id": "2"}, {"id": "3"}])

        items = make_source(handler).fetch_list_items("123", 2)

        assert all(isinstance(item, RawItem) for item in items)
        assert [item.id for item in items] == ["1", "2"]

    @pytest.mark.parametrize("key", ["items", "tweets"])
    def test_wrapped_payload(self, key):
        source = make_source(lambda request: httpx.Response(200, json={key: [{"id": "9"}]}))
        assert [item.id for item in source.fetch_list_items("x", 10)] == ["9"]

    def test_list_id_is_path_quoted(self):
        seen = []

        def handler(request):
            seen.append(request.url.raw_path)
            return httpx.Response(200, json=[])

        make_source(handler).fetch_list_items("a/b?x", 10)

        assert seen[0].startswith(b"/lists/a%2Fb%3Fx/items?")

    def test_unexpected_payload_raises(self):
        source = make_source(lambda request: httpx.Response(200, json="nope"))

        with pytest.raises(FetchFailure) as exc_info:
            source.fetch_list_items("x", 10)
        assert exc_info.value.list_id == "x"

    def test_server_error_is_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json=[{"id": "1"}])

        items = make_source(handler).fetch_list_items("x", 10)

        assert len(calls) == 3
        assert [item.id for item in items] == ["1"]

    def test_client_error_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        with pytest.raises(FetchFailure) as exc_info:
            make_source(handler).fetch_list_items("missing", 10)

        assert len(calls) == 1
        assert "HTTP 404" in str(exc_info.value)

    def test_network_error_exhausts_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchFailure) as exc_info:
            make_source(handler, max_retries=1).fetch_list_items("x", 10)

        assert len(calls) == 2
        assert "Request error" in str(exc_info.value)

    def test_timeout_is_reported(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(FetchFailure) as exc_info:
            make_source(handler, max_retries=0).fetch_list_items("x", 10)

        assert str(exc_info.value).startswith("Timeout")

    def test_invalid_json_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, text="{broken")

        with pytest.raises(FetchFailure):
            make_source(handler).fetch_list_items("x", 10)
        assert len(calls) == 1


class TestFetchItemDetail:
    """Tests for fetch_item_detail."""

    def test_detail_with_thread(self):
        def handler(request):
            assert request.url.path == "/items/42"
            return httpx.Response(200, json={"id": "42", "thread": [{"id": "43", "text": "reply"}]})

        item = make_source(handler).fetch_item_detail("42")

        assert item.id == "42"
        assert [t.id for t in item.thread] == ["43"]

    def test_detail_id_is_path_quoted(self):
        seen = []

        def handler(request):
            seen.append(request.url.raw_path)
            return httpx.Response(200, json={"id": "1"})

        make_source(handler).fetch_item_detail("a/b")

        assert seen == [b"/items/a%2Fb"]

    def test_non_object_detail_raises(self):
        source = make_source(lambda request: httpx.Response(200, json=[1, 2]))
        with pytest.raises(FetchFailure):
            source.fetch_item_detail("42")


def test_close_closes_client():
    source = make_source(lambda request: httpx.Response(200))
    source.close()
    assert source._client.is_closed


def test_create_list_source():
    source = create_list_source(SourceConfig(base_url=BASE_URL))
    try:
        assert isinstance(source, ListSource)
        assert isinstance(source, HttpListSource)
    finally:
        source.close()
