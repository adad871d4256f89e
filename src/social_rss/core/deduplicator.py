"""
Persisted set of item identifiers that have already been published.

Membership is the only gate preventing an item from being emitted twice.
The set grows for the life of the process and is never evicted.
"""

import json
from pathlib import Path
from typing import Iterable, Iterator, Union

from social_rss.core.files import write_atomic
from social_rss.logger import get_logger

logger = get_logger(__name__)


class DedupStore:
    """Identifier set backed by a JSON list on disk.

    Not safe for concurrent mutation; the aggregator runs one pass at a time.
    """

    def __init__(self, path: Union[str, Path]):
        """Initialize the store.

        Args:
            path: Location of the identifier snapshot
        """
        self.path = Path(path)
        self._ids: set[str] = set()
        # Insertion order is kept so snapshots stay stable across saves
        self._order: list[str] = []

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)

    def has(self, item_id: str) -> bool:
        return item_id in self._ids

    def add(self, item_id: str) -> None:
        if item_id and item_id not in self._ids:
            self._ids.add(item_id)
            self._order.append(item_id)

    def add_many(self, item_ids: Iterable[str]) -> None:
        for item_id in item_ids:
            self.add(item_id)

    def discard_many(self, item_ids: Iterable[str]) -> None:
        """Forget identifiers marked during a pass that was not published."""
        doomed = set(item_ids) & self._ids
        if doomed:
            self._ids -= doomed
            self._order = [item_id for item_id in self._order if item_id not in doomed]

    def load(self) -> int:
        """Restore the set from the snapshot.

        Best-effort: a missing, unreadable or malformed snapshot leaves an
        empty set and never raises.

        Returns:
            Number of identifiers loaded
        """
        self._ids = set()
        self._order = []

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.info(f"No identifier snapshot at {self.path}, starting empty")
            return 0
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read identifier snapshot {self.path}: {e}")
            return 0

        if not isinstance(data, list):
            logger.warning(f"Identifier snapshot {self.path} is not a list, ignoring it")
            return 0

        self.add_many(str(item_id) for item_id in data if isinstance(item_id, (str, int)))
        logger.info(f"Loaded {len(self)} processed identifiers from {self.path}")
        return len(self)

    def save(self) -> bool:
        """Persist the full snapshot.

        Failures are logged, not raised; the in-memory set stays intact.

        Returns:
            True if the snapshot was written
        """
        try:
            write_atomic(self.path, json.dumps(self._order, indent=2))
            logger.debug(f"Saved {len(self)} processed identifiers to {self.path}")
            return True
        except OSError as e:
            logger.error(f"Failed to save processed identifiers to {self.path}: {e}")
            return False


def create_dedup_store(path: Union[str, Path]) -> DedupStore:
    """Factory function to create a DedupStore."""
    return DedupStore(path)
