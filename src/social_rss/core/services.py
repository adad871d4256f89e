"""
Facade service exposing the publication surface.

Front ends (HTTP routes, CLI commands, cron jobs) ONLY interact with
``FeedService``; they never touch the identifier store directly. Manual and
scheduled passes both go through ``Aggregator.process_all``, which refuses to
run two passes at once.

Example:
    service = create_feed_service(config)
    service.start()
    result = service.process_all()
    xml = service.get_feed_document()
    service.stop()
"""

import threading
import time
from dataclasses import asdict, dataclass
from typing import Optional

from social_rss.config import Config
from social_rss.core.aggregator import Aggregator, AggregatorState, PassResult
from social_rss.core.feed_store import FeedFileInfo
from social_rss.core.fetcher import ListSource, create_list_source
from social_rss.logger import get_logger

logger = get_logger(__name__)


@dataclass
class MonitoringInfo:
    list_count: int
    lists: list[str]
    interval_minutes: int
    max_per_list: int


@dataclass
class StatusSnapshot:
    """Point-in-time view of the service."""

    running: bool
    state: str
    feed_file: FeedFileInfo
    monitoring: MonitoringInfo
    last_pass: Optional[PassResult]
    last_error: Optional[str]
    uptime_seconds: float

    def to_dict(self) -> dict:
        return asdict(self)


class FeedService:
    """Publication surface over the aggregator."""

    def __init__(self, config: Config, source: Optional[ListSource] = None, aggregator: Optional[Aggregator] = None):
        """Initialize feed service.

        Args:
            config: Application configuration
            source: Upstream list source (built from config if omitted)
            aggregator: Preassembled aggregator (built from config if omitted)
        """
        self.config = config
        self.aggregator = aggregator or Aggregator(config, source or create_list_source(config.source))
        self._started_at = time.monotonic()
        self._running = False
        self._stop_lock = threading.Lock()

    def start(self, schedule: bool = True) -> AggregatorState:
        """Authenticate and start periodic passes."""
        logger.info("*** Starting RSS service ***")
        self._running = True
        return self.aggregator.start(schedule=schedule)

    def stop(self) -> None:
        """Stop timers, flush state and release the source. Idempotent."""
        with self._stop_lock:
            if not self._running:
                return
            logger.info("*** Stopping RSS service ***")
            self._running = False
            try:
                self.aggregator.stop()
            finally:
                self.aggregator.source.close()

    def process_all(self) -> PassResult:
        """Run one pass now. See ``Aggregator.process_all``."""
        return self.aggregator.process_all()

    def get_feed_document(self) -> bytes:
        """Latest persisted feed document.

        Raises:
            FeedNotFound: If no document has been generated yet
        """
        return self.aggregator.feed_store.load_raw()

    def get_status_snapshot(self) -> StatusSnapshot:
        monitor = self.config.monitor
        return StatusSnapshot(
            running=self._running,
            state=self.aggregator.state.value,
            feed_file=self.aggregator.feed_store.stat(),
            monitoring=MonitoringInfo(
                list_count=len(self.aggregator.list_ids),
                lists=list(self.aggregator.list_ids),
                interval_minutes=monitor.interval_minutes,
                max_per_list=monitor.max_per_list,
            ),
            last_pass=self.aggregator.last_result,
            last_error=self.aggregator.last_error,
            uptime_seconds=time.monotonic() - self._started_at,
        )


def create_feed_service(config: Config, source: Optional[ListSource] = None) -> FeedService:
    """Create a FeedService instance."""
    return FeedService(config, source=source)
