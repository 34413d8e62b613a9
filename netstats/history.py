import bisect
import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .config import MAX_HISTORY
from .models import BlockRecord, BlockReport, HistoryItem, InvalidBlockReport, PropagationRecord
from .utils import now_ms

logger = logging.getLogger(__name__)


class HistoryStore:
    """Bounded, height-indexed history of reported blocks.

    Heights are kept in an ascending ``bisect`` index next to a dict of items,
    so descending traversal, point lookups and "nearest lower height" are all
    cheap. Every mutation happens under ``_lock``; readers get copies through
    :meth:`snapshot` and :meth:`heights`.
    """

    def __init__(self, max_history: int = MAX_HISTORY, clock: Callable[[], int] = now_ms) -> None:
        if max_history <= 0:
            raise ValueError(f"max_history must be > 0, got {max_history}")
        self.max_history = max_history
        self.clock = clock
        self._items: Dict[int, HistoryItem] = {}
        self._heights: List[int] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._heights)

    def __contains__(self, height: object) -> bool:
        return height in self._items

    def add(self, block: Union[BlockReport, Mapping[str, Any]], node_id: str) -> Optional[BlockRecord]:
        """Record that ``node_id`` saw ``block`` and return the enriched record.

        Returns ``None`` when the report is invalid. Reports for heights below
        the retention window are enriched and returned but not stored.
        """
        if isinstance(block, BlockReport):
            report = block
        else:
            try:
                report = BlockReport.from_dict(block)
            except InvalidBlockReport as exc:
                logger.debug("rejected block report from %s: %s", node_id, exc)
                return None

        with self._lock:
            now = self.clock()
            item = self._items.get(report.number)
            if item is not None:
                return self._add_reporter(item, report, node_id, now)
            return self._add_height(report, node_id, now)

    def _add_reporter(self, item: HistoryItem, report: BlockReport, node_id: str, now: int) -> BlockRecord:
        entry = item.find(node_id)
        if entry is None:
            entry = PropagationRecord(
                node_id=node_id,
                received_at=now,
                propagation=now - item.block.received_at,
            )
            item.record(entry)
        return BlockRecord.from_report(
            report,
            arrived_at=item.block.arrived_at,
            received_at=entry.received_at,
            propagation=entry.propagation,
            inter_block_time=item.block.inter_block_time,
        )

    def _add_height(self, report: BlockReport, node_id: str, now: int) -> BlockRecord:
        best_number = self.best_block_number()
        inter_block_time = 0
        prev = self.prev_max_block(report.number)
        if prev is not None:
            if report.number < best_number:
                # late insert: arrival order says nothing, trust the miners' clocks
                inter_block_time = max((report.timestamp - prev.block.timestamp) * 1000, 0)
            else:
                inter_block_time = max(now - prev.block.arrived_at, 0)

        record = BlockRecord.from_report(report, arrived_at=now, received_at=now, inter_block_time=inter_block_time)

        if self._heights and report.number < best_number - self.max_history + 1:
            logger.debug(
                "block %d from %s is outside the retention window (best %d), not stored",
                report.number,
                node_id,
                best_number,
            )
            return record

        item = HistoryItem(height=report.number, block=record)
        item.record(PropagationRecord(node_id=node_id, received_at=now, propagation=0))
        self._save(item)
        return record

    def _save(self, item: HistoryItem) -> None:
        bisect.insort(self._heights, item.height)
        self._items[item.height] = item
        while len(self._heights) > self.max_history:
            lowest = self._heights.pop(0)
            del self._items[lowest]
            logger.debug("evicted block %d, window full at %d", lowest, self.max_history)

    def search(self, height: int) -> Optional[HistoryItem]:
        with self._lock:
            return self._items.get(height)

    def prev_max_block(self, height: int) -> Optional[HistoryItem]:
        with self._lock:
            idx = bisect.bisect_left(self._heights, height)
            if idx == 0:
                return None
            return self._items[self._heights[idx - 1]]

    def best_block(self) -> Optional[HistoryItem]:
        with self._lock:
            if not self._heights:
                return None
            return self._items[self._heights[-1]]

    def best_block_number(self) -> int:
        best = self.best_block()
        if best is None:
            return 0
        return best.height

    def heights(self) -> List[int]:
        with self._lock:
            return self._heights[::-1]

    def snapshot(self) -> Tuple[HistoryItem, ...]:
        """Point-in-time copy of every item, highest height first."""
        with self._lock:
            return tuple(self._items[h].copy() for h in reversed(self._heights))
