"""Recently-shown game tracking, partitioned by year bucket."""
from collections import OrderedDict
from typing import Dict, List, Optional


class RecentlyShownTracker:
    """Remembers the last *capacity* game ids returned for each bucket.

    A bucket is a string key, normally the selected release year or
    :attr:`ALL_BUCKET`.  Buckets are created on first use; once a bucket
    holds more than *capacity* ids the oldest one is evicted.  Recording an
    id that is already present moves it to the most-recent position.

    State lives only on the instance, so a fresh tracker (or :meth:`reset`)
    gives tests and restarts a clean slate.
    """

    DEFAULT_CAPACITY = 10
    ALL_BUCKET = 'all'

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._buckets: Dict[str, OrderedDict] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @classmethod
    def bucket_key(cls, year: Optional[int] = None) -> str:
        """Return the bucket name for *year* (``'all'`` when unknown)."""
        return str(year) if year else cls.ALL_BUCKET

    def contains(self, bucket: str, game_id) -> bool:
        """True if *game_id* was recently shown in *bucket*."""
        return str(game_id) in self._buckets.get(bucket, {})

    def ids(self, bucket: str) -> List[str]:
        """Return the bucket's ids, oldest first."""
        return list(self._buckets.get(bucket, {}))

    def record(self, bucket: str, game_id) -> None:
        """Mark *game_id* as shown in *bucket*, evicting the oldest if full."""
        entries = self._buckets.setdefault(bucket, OrderedDict())
        key = str(game_id)
        if key in entries:
            entries.move_to_end(key)
        else:
            entries[key] = None
        while len(entries) > self.capacity:
            entries.popitem(last=False)

    def reset(self, bucket: Optional[str] = None) -> None:
        """Forget one bucket, or every bucket when *bucket* is None."""
        if bucket is None:
            self._buckets.clear()
        else:
            self._buckets.pop(bucket, None)
