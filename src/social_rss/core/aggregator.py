"""
Aggregator driving full passes over all configured lists.

A pass fetches every list in turn, normalizes, filters and deduplicates the
items, then publishes the merged, recency-sorted and capped result. The
aggregator owns the identifier store and list configuration; nothing else
mutates them. At most one pass runs at a time.
"""

import enum
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from social_rss.config import Config
from social_rss.core.deduplicator import DedupStore
from social_rss.core.feed_builder import FeedBuilder
from social_rss.core.feed_store import FeedStore
from social_rss.core.fetcher import ListSource
from social_rss.core.filter_engine import FilterEngine
from social_rss.core.normalizer import normalize_many
from social_rss.core.scheduler import FeedScheduler
from social_rss.exceptions import (
    AuthRequired,
    FetchFailure,
    PassInProgress,
    PersistFailure,
    SocialRSSError,
)
from social_rss.logger import get_logger
from social_rss.models import Item, RawItem

logger = get_logger(__name__)


class AggregatorState(str, enum.Enum):
    """Lifecycle states of the aggregator."""

    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    READY = "ready"
    RUNNING_PASS = "running_pass"
    DISABLED = "disabled"


@dataclass
class ListResult:
    """Outcome of fetching one list during a pass."""

    list_id: str
    success: bool
    items_count: int = 0
    error: Optional[str] = None
    fetch_time_seconds: float = 0.0


@dataclass
class PassResult:
    """Outcome of one complete pass."""

    total_items: int
    location: Path
    started_at: datetime
    finished_at: datetime
    lists: list[ListResult] = field(default_factory=list)

    @property
    def lists_failed(self) -> int:
        return sum(1 for r in self.lists if not r.success)

    def __str__(self) -> str:
        return f"{self.total_items} items processed"


class Aggregator:
    """Owns the pass pipeline, its shared state and its schedule."""

    def __init__(
        self,
        config: Config,
        source: ListSource,
        dedup_store: Optional[DedupStore] = None,
        feed_store: Optional[FeedStore] = None,
        feed_builder: Optional[FeedBuilder] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize aggregator.

        Args:
            config: Application configuration, built once at startup
            source: Upstream list source
            dedup_store: Processed identifier store (from config if omitted)
            feed_store: Feed document store (from config if omitted)
            feed_builder: Feed builder (from config if omitted)
            sleep: Delay function used between lists
        """
        self.config = config
        self.source = source
        self.dedup_store = dedup_store or DedupStore(config.feed.dedup_path)
        self.feed_store = feed_store or FeedStore(config.feed.feed_path)
        self.feed_builder = feed_builder or FeedBuilder(config.feed)
        self.filter_engine = FilterEngine(config.filter)
        self.list_ids = list(config.monitor.list_ids)
        self._sleep = sleep

        self.state = AggregatorState.IDLE
        self.last_result: Optional[PassResult] = None
        self.last_error: Optional[str] = None

        self._pass_lock = threading.Lock()
        self._scheduler: Optional[FeedScheduler] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, schedule: bool = True) -> AggregatorState:
        """Authenticate, hydrate the identifier store and start the schedule.

        Authentication failures leave the aggregator DISABLED; the process
        keeps running and ``process_all`` fails fast.

        Args:
            schedule: Whether to start the periodic timer

        Returns:
            Resulting state
        """
        if self.state != AggregatorState.IDLE:
            logger.warning(f"Aggregator already started (state={self.state.value})")
            return self.state

        self.state = AggregatorState.AUTHENTICATING
        source_config = self.config.source

        if not source_config.has_credentials:
            logger.warning("Source credentials not configured, RSS service will be disabled")
            self.state = AggregatorState.DISABLED
            return self.state

        logger.info("Attempting source authentication...")
        try:
            authenticated = self.source.login(
                source_config.username, source_config.password, source_config.email
            ) and self.source.is_logged_in()
        except Exception as e:
            logger.error(f"Source authentication failed: {e}")
            authenticated = False

        if not authenticated:
            logger.warning("Source authentication failed - service will run in limited mode")
            self.state = AggregatorState.DISABLED
            return self.state

        logger.info("Source authentication successful")
        self.dedup_store.load()
        self.state = AggregatorState.READY

        if schedule:
            self._scheduler = FeedScheduler(
                self._scheduled_pass,
                interval_minutes=self.config.monitor.interval_minutes,
                warmup_seconds=self.config.monitor.warmup_seconds,
            )
            self._scheduler.start()

        return self.state

    def stop(self) -> None:
        """Stop the timer and flush the identifier store. Idempotent."""
        if self._scheduler is not None:
            self._scheduler.stop(wait=False)
            self._scheduler = None

        if self.state in (AggregatorState.READY, AggregatorState.RUNNING_PASS):
            self.dedup_store.save()

    @property
    def scheduler(self) -> Optional[FeedScheduler]:
        return self._scheduler

    @property
    def is_authenticated(self) -> bool:
        return self.state in (AggregatorState.READY, AggregatorState.RUNNING_PASS)

    # ------------------------------------------------------------------
    # Pass pipeline
    # ------------------------------------------------------------------

    def process_all(self) -> PassResult:
        """Run one full pass over every configured list.

        Returns:
            PassResult with the number of published items and feed location

        Raises:
            AuthRequired: If the source was never authenticated
            PassInProgress: If another pass is running
            PersistFailure: If the feed document could not be written
        """
        if self.state not in (AggregatorState.READY, AggregatorState.RUNNING_PASS):
            logger.warning("Source not authenticated - cannot fetch items")
            raise AuthRequired(f"Pass requested in state {self.state.value}")

        if not self._pass_lock.acquire(blocking=False):
            raise PassInProgress("A pass is already running")

        try:
            self.state = AggregatorState.RUNNING_PASS
            result = self._run_pass()
            self.last_result = result
            self.last_error = None
            return result
        except SocialRSSError as e:
            self.last_error = str(e)
            raise
        finally:
            self.state = AggregatorState.READY
            self._pass_lock.release()

    def _run_pass(self) -> PassResult:
        started_at = datetime.now(timezone.utc)
        max_per_list = self.config.monitor.max_per_list
        delay = self.config.monitor.inter_list_delay_seconds

        collected: list[Item] = []
        list_results: list[ListResult] = []
        added_ids: list[str] = []

        for index, list_id in enumerate(self.list_ids):
            logger.info(f"Processing list: {list_id}")
            start = time.monotonic()

            try:
                items = self._fetch_list_bounded(list_id, max_per_list)
            except FetchFailure as e:
                logger.error(f"Error processing list {list_id}: {e}")
                list_results.append(ListResult(
                    list_id=list_id,
                    success=False,
                    error=str(e),
                    fetch_time_seconds=time.monotonic() - start,
                ))
                continue

            fresh = []
            for item in items:
                # Repeated ids within a list are published once
                if self.dedup_store.has(item.id):
                    continue
                self.dedup_store.add(item.id)
                added_ids.append(item.id)
                fresh.append(item)
            collected.extend(fresh)

            list_results.append(ListResult(
                list_id=list_id,
                success=True,
                items_count=len(fresh),
                fetch_time_seconds=time.monotonic() - start,
            ))

            if delay and index < len(self.list_ids) - 1:
                self._sleep(delay)

        # sorted() is stable, so equal timestamps keep input order
        ranked = sorted(collected, key=lambda item: item.created_at, reverse=True)
        limited = ranked[: self.config.feed.max_entries]

        try:
            xml = self.feed_builder.build_xml(limited)
            location = self.feed_store.save(xml)
        except Exception as e:
            # Unpublished items must stay eligible for the next pass
            self.dedup_store.discard_many(added_ids)
            logger.error(f"Feed could not be persisted, pass rolled back: {e}")
            if isinstance(e, PersistFailure):
                raise
            raise PersistFailure(f"Feed rendering failed: {type(e).__name__}: {e}") from e

        self.dedup_store.save()

        result = PassResult(
            total_items=len(limited),
            location=location,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            lists=list_results,
        )
        logger.info(
            f"Pass finished: {result.total_items} items published from "
            f"{len(self.list_ids)} lists ({result.lists_failed} failed)"
        )
        return result

    def _fetch_list_bounded(self, list_id: str, max_items: int) -> list[Item]:
        """Run ``fetch_list`` with an upper bound on its duration.

        Each list gets its own worker, so an abandoned stalled fetch never
        delays the lists after it. The abandoned call is bounded by the
        source's own request timeout.
        """
        timeout = self.config.monitor.fetch_timeout_seconds
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"list-fetch-{list_id}")
        try:
            future = pool.submit(self.fetch_list, list_id, max_items)
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            raise FetchFailure(f"Fetching list {list_id} timed out after {timeout}s", list_id=list_id) from e
        except FetchFailure:
            raise
        except Exception as e:
            raise FetchFailure(f"{type(e).__name__}: {e}", list_id=list_id) from e
        finally:
            pool.shutdown(wait=False)

    def fetch_list(self, list_id: str, max_items: Optional[int] = None) -> list[Item]:
        """Fetch one list and return its unseen, filtered items.

        Args:
            list_id: List identifier
            max_items: Maximum raw items to request (configured default if omitted)

        Returns:
            Normalized items that passed the filters, in source order

        Raises:
            FetchFailure: If the list could not be fetched
        """
        max_items = max_items or self.config.monitor.max_per_list
        raws = self.source.fetch_list_items(list_id, max_items)

        unseen = [
            raw for raw in raws
            if raw is not None and raw.id and not self.dedup_store.has(raw.id.strip())
        ]

        if self.config.monitor.expand_threads:
            unseen = [self._expand_thread(raw) for raw in unseen]

        items = normalize_many(unseen)
        passed, _ = self.filter_engine.filter_items(items)
        logger.debug(f"List {list_id}: {len(raws)} fetched, {len(unseen)} unseen, {len(passed)} kept")
        return passed

    def _expand_thread(self, raw: RawItem) -> RawItem:
        try:
            full = self.source.fetch_item_detail(raw.id)
        except Exception as e:
            logger.warning(f"Failed to fetch thread for item {raw.id}: {e}")
            return raw

        if full is not None and full.thread is not None:
            return raw.model_copy(update={"thread": full.thread})
        return raw

    def _scheduled_pass(self) -> Optional[PassResult]:
        """Timer entry point; failures are logged, never raised."""
        try:
            return self.process_all()
        except PassInProgress:
            logger.info("Skipping scheduled update: a pass is already running")
        except SocialRSSError as e:
            logger.error(f"Scheduled RSS update failed: {e}")
        except Exception as e:
            logger.exception(f"Scheduled RSS update failed unexpectedly: {e}")
        return None
