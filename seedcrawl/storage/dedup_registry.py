"""
Per-batch registry of visited sites and the duplicate groups found while
dispatching a batch.
"""

import logging
import threading
from collections import OrderedDict
from typing import Dict, Hashable, List


class DedupRegistry:
    """
    Tracks which canonical keys have been claimed during one batch.

    Every read-modify-write runs under a single lock, so admission is one
    atomic check-and-insert even when callers run on different threads.
    A registry belongs to exactly one batch; create a new one per run.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._visited: Dict[Hashable, bool] = {}
        self._duplicates: "OrderedDict[Hashable, List[str]]" = OrderedDict()

        self.stats = {
            'total_checks': 0,
            'admitted': 0,
            'duplicates': 0,
            'mirrored': 0
        }

    def try_admit(self, key: Hashable) -> bool:
        """
        Claim a key for fetching.

        Returns:
            True if the key was free and is now marked visited, False if it
            had already been claimed (directly or through its mirror scheme)
        """
        with self._lock:
            self.stats['total_checks'] += 1
            if self._visited.get(key):
                return False
            self._visited[key] = True
            self.stats['admitted'] += 1

        self.logger.debug(f"Admitted {key}")
        return True

    def mark_visited(self, key: Hashable):
        """Mark a key visited without an admission check."""
        with self._lock:
            if not self._visited.get(key):
                self.stats['mirrored'] += 1
            self._visited[key] = True

    def is_visited(self, key: Hashable) -> bool:
        with self._lock:
            return self._visited.get(key, False)

    def record_duplicate(self, key: Hashable, original_url: str):
        """Append an input string to the duplicate group of its key."""
        with self._lock:
            self._duplicates.setdefault(key, []).append(original_url)
            self.stats['duplicates'] += 1

        self.logger.debug(f"Duplicate of {key}: {original_url}")

    def duplicate_groups(self) -> Dict[str, List[str]]:
        """Snapshot of the duplicate groups in first-seen order."""
        with self._lock:
            return OrderedDict(
                (str(key), list(urls)) for key, urls in self._duplicates.items()
            )

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            stats = self.stats.copy()
            stats['visited_keys'] = len(self._visited)
        return stats

    def __len__(self) -> int:
        with self._lock:
            return len(self._visited)

    def __contains__(self, key: Hashable) -> bool:
        return self.is_visited(key)
