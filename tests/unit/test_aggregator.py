"""Unit and scenario tests for the aggregator."""

import threading
from unittest.mock import patch

import pytest

from conftest import FakeListSource, make_raw
from social_rss.core.aggregator import Aggregator, AggregatorState, PassResult
from social_rss.exceptions import AuthRequired, FetchFailure, PassInProgress, PersistFailure


def three_items(prefix="a", base=1_700_000_000):
    return [make_raw(f"{prefix}{i}", timestamp=base + i) for i in range(3)]


class TestLifecycle:
    """Tests for start/stop and the state machine."""

    def test_start_authenticates(self, config, source):
        agg = Aggregator(config, source)

        assert agg.state == AggregatorState.IDLE
        assert agg.start(schedule=False) == AggregatorState.READY
        assert agg.is_authenticated is True

    def test_start_without_credentials_disables(self, config, source):
        config.source.username = None
        agg = Aggregator(config, source)

        assert agg.start(schedule=False) == AggregatorState.DISABLED

    def test_failed_login_disables(self, config):
        agg = Aggregator(config, FakeListSource(login_ok=False))
        assert agg.start(schedule=False) == AggregatorState.DISABLED

    def test_login_exception_disables(self, config, source):
        with patch.object(source, "login", side_effect=RuntimeError("blocked")):
            agg = Aggregator(config, source)
            assert agg.start(schedule=False) == AggregatorState.DISABLED

    def test_start_hydrates_dedup_store(self, config, source, output_dir):
        output_dir.mkdir(parents=True)
        config.feed.dedup_path.write_text('["old-1", "old-2"]')

        agg = Aggregator(config, source)
        agg.start(schedule=False)

        assert agg.dedup_store.has("old-1")
        assert len(agg.dedup_store) == 2

    def test_start_twice_is_noop(self, aggregator):
        assert aggregator.start(schedule=False) == AggregatorState.READY

    def test_start_with_schedule_and_stop(self, config, source):
        agg = Aggregator(config, source)
        agg.start(schedule=True)
        try:
            assert agg.scheduler is not None
            assert agg.scheduler.is_running() is True
        finally:
            agg.stop()

        assert agg.scheduler is None

    def test_stop_flushes_dedup_store(self, aggregator, config):
        aggregator.dedup_store.add("x")
        aggregator.stop()

        assert '"x"' in config.feed.dedup_path.read_text()

    def test_stop_is_idempotent(self, aggregator):
        aggregator.stop()
        aggregator.stop()


class TestProcessAll:
    """Scenario tests for a full pass."""

    def test_not_authenticated_rejects_before_touching_store(self, config, source):
        agg = Aggregator(config, source)

        with patch.object(agg.feed_store, "save") as save:
            with pytest.raises(AuthRequired):
                agg.process_all()
            save.assert_not_called()

        assert source.list_calls == []
        assert not config.feed.feed_path.exists()

    def test_disabled_rejects(self, config):
        agg = Aggregator(config, FakeListSource(login_ok=False))
        agg.start(schedule=False)

        with pytest.raises(AuthRequired):
            agg.process_all()

    def test_failing_list_does_not_abort_pass(self, aggregator, source):
        source.lists["list-a"] = three_items("a")
        source.failing.add("list-b")

        result = aggregator.process_all()

        assert isinstance(result, PassResult)
        assert result.total_items == 3
        assert result.lists_failed == 1
        assert [r.success for r in result.lists] == [True, False]
        assert result.location == aggregator.config.feed.feed_path

    def test_unexpected_list_error_is_contained(self, aggregator, source):
        source.lists["list-b"] = three_items("b")

        original = source.fetch_list_items

        def explode(list_id, max_items):
            if list_id == "list-a":
                raise KeyError("malformed response")
            return original(list_id, max_items)

        with patch.object(source, "fetch_list_items", side_effect=explode):
            result = aggregator.process_all()

        assert result.total_items == 3
        assert result.lists[0].success is False

    def test_second_pass_yields_nothing_new(self, aggregator, source):
        source.lists["list-a"] = three_items("a")
        source.lists["list-b"] = three_items("b")

        first = aggregator.process_all()
        second = aggregator.process_all()

        assert first.total_items == 6
        assert second.total_items == 0

    def test_dedup_survives_restart(self, config, source):
        source.lists["list-a"] = three_items("a")

        first = Aggregator(config, source, sleep=lambda s: None)
        first.start(schedule=False)
        assert first.process_all().total_items == 3
        first.stop()

        second = Aggregator(config, FakeListSource(lists=dict(source.lists)), sleep=lambda s: None)
        second.start(schedule=False)
        assert second.process_all().total_items == 0

    def test_cap_keeps_most_recent_descending(self, aggregator, source, config):
        config.feed.max_entries = 2
        source.lists["list-a"] = [
            make_raw("t1", timestamp=1_700_000_100),
            make_raw("t5", timestamp=1_700_000_500),
            make_raw("t3", timestamp=1_700_000_300),
        ]
        source.lists["list-b"] = [
            make_raw("t4", timestamp=1_700_000_400),
            make_raw("t2", timestamp=1_700_000_200),
        ]

        result = aggregator.process_all()
        parsed = aggregator.feed_store.parse()

        assert result.total_items == 2
        assert [e.id for e in parsed.entries] == ["t5", "t4"]

    def test_equal_timestamps_keep_input_order(self, aggregator, source):
        source.lists["list-a"] = [make_raw("x", timestamp=5), make_raw("y", timestamp=5)]
        source.lists["list-b"] = [make_raw("z", timestamp=5)]

        aggregator.process_all()

        assert [e.id for e in aggregator.feed_store.parse().entries] == ["x", "y", "z"]

    def test_replies_filtered_regardless_of_recency(self, aggregator, source, config):
        config.filter.exclude_replies = True
        aggregator.filter_engine.config.exclude_replies = True
        source.lists["list-a"] = [
            make_raw("reply", timestamp=1_800_000_000, isReply=True),
            make_raw("plain", timestamp=1_700_000_000),
        ]

        aggregator.process_all()

        assert [e.id for e in aggregator.feed_store.parse().entries] == ["plain"]

    def test_overlapping_lists_publish_once(self, aggregator, source):
        shared = make_raw("shared")
        source.lists["list-a"] = [shared, shared]
        source.lists["list-b"] = [shared]

        result = aggregator.process_all()

        assert result.total_items == 1

    def test_invalid_items_dropped(self, aggregator, source):
        source.lists["list-a"] = [{"text": "no id at all"}, make_raw("ok")]

        assert aggregator.process_all().total_items == 1

    def test_max_per_list_passed_to_source(self, aggregator, source, config):
        config.monitor.max_per_list = 7
        aggregator.process_all()

        assert source.list_calls == [("list-a", 7), ("list-b", 7)]

    def test_delay_between_lists(self, config, source):
        config.monitor.inter_list_delay_seconds = 2.0
        delays = []
        agg = Aggregator(config, source, sleep=delays.append)
        agg.start(schedule=False)

        agg.process_all()

        assert delays == [2.0]

    def test_dedup_snapshot_persisted_after_pass(self, aggregator, source, config):
        source.lists["list-a"] = three_items("a")
        aggregator.process_all()

        snapshot = config.feed.dedup_path.read_text()
        assert all(f'"a{i}"' in snapshot for i in range(3))

    def test_feed_persist_failure_rolls_back_ids(self, aggregator, source):
        source.lists["list-a"] = three_items("a")

        with patch.object(aggregator.feed_store, "save", side_effect=PersistFailure("disk full")):
            with pytest.raises(PersistFailure):
                aggregator.process_all()

        assert len(aggregator.dedup_store) == 0
        assert aggregator.state == AggregatorState.READY
        assert aggregator.last_error == "disk full"
        assert aggregator.process_all().total_items == 3

    def test_concurrent_pass_rejected(self, aggregator, source):
        entered = threading.Event()
        release = threading.Event()

        def slow_fetch(list_id, max_items):
            entered.set()
            release.wait(5)
            return []

        errors = []
        with patch.object(source, "fetch_list_items", side_effect=slow_fetch):
            worker = threading.Thread(target=aggregator.process_all)
            worker.start()
            assert entered.wait(5)

            try:
                aggregator.process_all()
            except PassInProgress as e:
                errors.append(e)
            finally:
                release.set()
                worker.join(5)

        assert len(errors) == 1
        assert aggregator.state == AggregatorState.READY

    def test_stalled_list_times_out(self, aggregator, source, config):
        config.monitor.fetch_timeout_seconds = 0.1
        release = threading.Event()
        source.lists["list-b"] = three_items("b")
        original = source.fetch_list_items

        def stall(list_id, max_items):
            if list_id == "list-a":
                release.wait(5)
                return []
            return original(list_id, max_items)

        try:
            with patch.object(source, "fetch_list_items", side_effect=stall):
                result = aggregator.process_all()
        finally:
            release.set()

        assert result.total_items == 3
        assert result.lists[0].success is False
        assert "timed out" in result.lists[0].error

    def test_stalled_lists_do_not_delay_later_lists(self, config, source):
        config.monitor.lists = "stall-1,stall-2,good"
        config.monitor.fetch_timeout_seconds = 0.2
        source.lists["good"] = three_items("g")
        release = threading.Event()
        original = source.fetch_list_items

        def stall(list_id, max_items):
            if list_id.startswith("stall"):
                release.wait(5)
                return []
            return original(list_id, max_items)

        agg = Aggregator(config, source, sleep=lambda s: None)
        agg.start(schedule=False)
        try:
            with patch.object(source, "fetch_list_items", side_effect=stall):
                result = agg.process_all()
        finally:
            release.set()
            agg.stop()

        assert [(r.list_id, r.success) for r in result.lists] == [
            ("stall-1", False),
            ("stall-2", False),
            ("good", True),
        ]
        assert result.total_items == 3

    def test_broken_unicode_does_not_abort_pass(self, aggregator, source):
        source.lists["list-a"] = [
            make_raw("s1", text="truncated emoji \ud83d here"),
            make_raw("ok"),
        ]

        result = aggregator.process_all()
        parsed = aggregator.feed_store.parse()

        assert result.total_items == 2
        assert sorted(e.id for e in parsed.entries) == ["ok", "s1"]
        assert b"truncated emoji  here" in aggregator.feed_store.load_raw()

    def test_render_failure_rolls_back_ids(self, aggregator, source, config):
        source.lists["list-a"] = three_items("a")

        with patch.object(aggregator.feed_builder, "build_xml", side_effect=ValueError("bad item")):
            with pytest.raises(PersistFailure):
                aggregator.process_all()

        assert len(aggregator.dedup_store) == 0
        assert not config.feed.feed_path.exists()

    def test_scheduled_pass_swallows_errors(self, config, source):
        agg = Aggregator(config, source)
        assert agg._scheduled_pass() is None


class TestFetchList:
    """Tests for fetch_list."""

    def test_skips_seen_ids(self, aggregator, source):
        source.lists["list-a"] = [make_raw("seen"), make_raw("new")]
        aggregator.dedup_store.add("seen")

        items = aggregator.fetch_list("list-a")

        assert [item.id for item in items] == ["new"]

    def test_fetch_failure_propagates(self, aggregator, source):
        source.failing.add("list-a")
        with pytest.raises(FetchFailure):
            aggregator.fetch_list("list-a")

    def test_thread_expansion(self, aggregator, source, config):
        config.monitor.expand_threads = True
        source.lists["list-a"] = [make_raw("root"), make_raw("lonely")]
        source.details["root"] = make_raw("root", thread=[make_raw("r1", username="bob", text="first reply")])

        items = aggregator.fetch_list("list-a")

        assert source.detail_calls == ["root", "lonely"]
        root = next(item for item in items if item.id == "root")
        lonely = next(item for item in items if item.id == "lonely")
        assert [t.id for t in root.thread] == ["r1"]
        assert lonely.thread is None

    def test_thread_expansion_disabled_by_default(self, aggregator, source):
        source.lists["list-a"] = [make_raw("root")]
        aggregator.fetch_list("list-a")
        assert source.detail_calls == []
