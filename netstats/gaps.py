from typing import Dict, List, Optional

from .config import MAX_BACKFILL
from .history import HistoryStore


class GapResolver:
    """Works out which heights a backfill request to a peer should ask for."""

    def __init__(self, store: HistoryStore, max_backfill: int = MAX_BACKFILL) -> None:
        self.store = store
        self.max_backfill = max_backfill

    def requires_update(self) -> bool:
        size = len(self.store)
        return 0 < size < self.store.max_history

    def missing_heights(self, heights: Optional[List[int]] = None) -> List[int]:
        if heights is None:
            heights = self.store.heights()
        if not heights:
            return []
        best = max(heights)
        present = set(heights)
        start = max(0, best - self.store.max_history)
        return [h for h in range(start, best + 1) if h not in present]

    def get_history_request_range(self) -> Optional[Dict[str, object]]:
        heights = self.store.heights()
        if not heights:
            return None
        # the range holds max_history + 1 heights (or starts at the never-stored 0),
        # so at least one is always missing
        missing = self.missing_heights(heights)
        high = missing[-1]
        low = high - min(self.max_backfill, self.store.max_history - len(heights) + 1) + 1
        return {
            "min": low,
            "max": high,
            "list": missing[-self.max_backfill:],
        }
