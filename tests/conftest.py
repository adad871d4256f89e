"""Shared fixtures for Social RSS tests."""

from typing import Optional

import pytest

from social_rss.config import (
    Config,
    FeedConfig,
    FilterConfig,
    LoggingConfig,
    MonitorConfig,
    SourceConfig,
    WebConfig,
)
from social_rss.core.aggregator import Aggregator
from social_rss.core.fetcher import ListSource
from social_rss.exceptions import FetchFailure
from social_rss.models import RawItem


def make_raw(
    item_id: Optional[str],
    text: str = "A post long enough to keep",
    username: str = "alice",
    timestamp=1_700_000_000,
    **extra,
) -> dict:
    """Provider-shaped payload for tests."""
    payload = {
        "id": item_id,
        "text": text,
        "username": username,
        "name": username.title(),
        "timestamp": timestamp,
    }
    payload.update(extra)
    return payload


class FakeListSource(ListSource):
    """In-memory list source."""

    def __init__(
        self,
        lists: Optional[dict] = None,
        details: Optional[dict] = None,
        login_ok: bool = True,
        failing: tuple = (),
    ):
        self.lists = lists or {}
        self.details = details or {}
        self.login_ok = login_ok
        self.failing = set(failing)
        self.list_calls: list[tuple[str, int]] = []
        self.detail_calls: list[str] = []
        self.closed = False
        self._logged_in = False

    def login(self, username, password, email):
        self._logged_in = self.login_ok
        return self._logged_in

    def is_logged_in(self):
        return self._logged_in

    def fetch_list_items(self, list_id, max_items):
        self.list_calls.append((list_id, max_items))
        if list_id in self.failing:
            raise FetchFailure(f"list {list_id} unavailable", list_id=list_id)
        return [RawItem.from_payload(p) for p in self.lists.get(list_id, [])][:max_items]

    def fetch_item_detail(self, item_id):
        self.detail_calls.append(item_id)
        if item_id not in self.details:
            raise FetchFailure(f"item {item_id} unavailable")
        return RawItem.from_payload(self.details[item_id])

    def close(self):
        self.closed = True


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "rss-feeds"


@pytest.fixture
def config(output_dir):
    """Configuration isolated from the environment-provided defaults."""
    return Config(
        source=SourceConfig(username="user", password="secret", email="user@example.com"),
        monitor=MonitorConfig(
            lists="list-a,list-b",
            interval_minutes=30,
            max_per_list=50,
            warmup_seconds=0,
            inter_list_delay_seconds=0,
            fetch_timeout_seconds=5,
        ),
        filter=FilterConfig(exclude_reposts=False, exclude_replies=False, min_length=0),
        feed=FeedConfig(output_dir=str(output_dir), max_entries=500),
        logging=LoggingConfig(file_enabled=False),
        web=WebConfig(api_token=None),
    )


@pytest.fixture
def source():
    return FakeListSource()


@pytest.fixture
def aggregator(config, source):
    """Authenticated aggregator without a running timer."""
    agg = Aggregator(config, source, sleep=lambda seconds: None)
    agg.start(schedule=False)
    yield agg
    agg.stop()
