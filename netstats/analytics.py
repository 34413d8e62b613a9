"""Dashboard reducers over a snapshot of the history store.

Every reducer is a plain function of a sequence of items ordered by height,
highest first (the shape :meth:`HistoryStore.snapshot` returns), so a single
snapshot can feed a whole chart bundle. :class:`AnalyticsEngine` wraps them for
callers that only hold a store.
"""

from collections import Counter
from typing import Dict, List, Sequence

import numpy as np

from .config import (
    HASHRATE_WINDOW,
    MAX_BINS,
    MAX_PEER_PROPAGATION,
    MAX_PROPAGATION_RANGE,
    MAX_UNCLES_PER_BIN,
    MIN_PROPAGATION_RANGE,
    TOP_MINERS,
)
from .history import HistoryStore
from .models import HistoryItem
from .utils import round_half_up


def recent(items: Sequence[HistoryItem], count: int = MAX_BINS) -> List[HistoryItem]:
    """The ``count`` highest items, in ascending height order."""
    return list(items[:count])[::-1]


def node_propagation(
    items: Sequence[HistoryItem], node_id: str, window: int = MAX_PEER_PROPAGATION
) -> List[int]:
    propagation = [-1] * window
    if not items:
        return propagation
    best = items[0].height
    for item in recent(items, window):
        index = window - 1 - best + item.height
        if index > 0:
            entry = item.find(node_id)
            propagation[index] = entry.propagation if entry is not None else -1
    return propagation


def block_propagation(
    items: Sequence[HistoryItem],
    low: int = MIN_PROPAGATION_RANGE,
    high: int = MAX_PROPAGATION_RANGE,
    bins: int = MAX_BINS,
) -> Dict[str, object]:
    values = []
    for item in items:
        for entry in item.propagation.values():
            prop = min(high, entry.propagation)
            if prop >= low:
                values.append(prop)

    total = len(values)
    avg = round_half_up(sum(values) / total) if total else 0

    counts, edges = np.histogram(values, bins=bins, range=(low, high))
    histogram = []
    cumulative = 0
    for i, count in enumerate(counts):
        count = int(count)
        cumulative += count
        histogram.append({
            "x": float(edges[i]),
            "dx": float(edges[i + 1] - edges[i]),
            "y": count / total if total else 0.0,
            "frequency": count,
            "cumulative": cumulative,
            "cumpercent": cumulative / max(1, total),
        })

    return {"histogram": histogram, "avg": avg}


def uncle_count(
    items: Sequence[HistoryItem], per_bin: int = MAX_UNCLES_PER_BIN, bins: int = MAX_BINS
) -> List[int]:
    uncles = [item.block.uncle_count for item in items]
    result = [0] * bins
    for slot, start in enumerate(range(0, len(uncles), per_bin)):
        if slot >= bins:
            break
        result[slot] = sum(uncles[start:start + per_bin])
    return result


def block_times(items: Sequence[HistoryItem], count: int = MAX_BINS) -> List[int]:
    return [item.block.inter_block_time for item in recent(items, count)]


def difficulty(items: Sequence[HistoryItem], count: int = MAX_BINS) -> List[int]:
    return [item.block.difficulty for item in recent(items, count)]


def transactions_count(items: Sequence[HistoryItem], count: int = MAX_BINS) -> List[int]:
    return [item.block.transaction_count for item in recent(items, count)]


def gas_spending(items: Sequence[HistoryItem], count: int = MAX_BINS) -> List[int]:
    return [item.block.gas_used for item in recent(items, count)]


def avg_hashrate(items: Sequence[HistoryItem], window: int = HASHRATE_WINDOW) -> float:
    if not items:
        return 0.0
    times = [item.block.inter_block_time for item in items[:window]]
    avg_blocktime = sum(times) / len(times) / 1000
    if avg_blocktime == 0:
        return 0.0
    return items[0].block.difficulty / avg_blocktime


def miners_count(
    items: Sequence[HistoryItem], count: int = MAX_BINS, top: int = TOP_MINERS
) -> List[Dict[str, object]]:
    # most_common keeps first-seen order between equal counts
    counts = Counter(item.block.miner for item in items[:count])
    return [
        {"miner": miner, "name": None, "blocks": blocks}
        for miner, blocks in counts.most_common(top)
    ]


def charts(items: Sequence[HistoryItem]) -> Dict[str, object]:
    history = recent(items, MAX_BINS)
    blocktime = [item.block.inter_block_time / 1000 for item in history]
    return {
        "height": [item.height for item in history],
        "blocktime": blocktime,
        "avg_blocktime": sum(blocktime) / (len(blocktime) or 1),
        "difficulty": [item.block.difficulty for item in history],
        "uncles": [item.block.uncle_count for item in history],
        "transactions": [item.block.transaction_count for item in history],
        "gas_spending": [item.block.gas_used for item in history],
        "miner": [item.block.miner for item in history],
        "miners": miners_count(items),
        "propagation": block_propagation(items),
        "uncle_count": uncle_count(items),
        "avg_hashrate": avg_hashrate(items),
    }


class AnalyticsEngine:
    def __init__(self, store: HistoryStore) -> None:
        self.store = store

    def get_node_propagation(self, node_id: str) -> List[int]:
        return node_propagation(self.store.snapshot(), node_id)

    def get_block_propagation(self) -> Dict[str, object]:
        return block_propagation(self.store.snapshot())

    def get_uncle_count(self) -> List[int]:
        return uncle_count(self.store.snapshot())

    def get_block_times(self) -> List[int]:
        return block_times(self.store.snapshot())

    def get_difficulty(self) -> List[int]:
        return difficulty(self.store.snapshot())

    def get_transactions_count(self) -> List[int]:
        return transactions_count(self.store.snapshot())

    def get_gas_spending(self) -> List[int]:
        return gas_spending(self.store.snapshot())

    def get_avg_hashrate(self) -> float:
        return avg_hashrate(self.store.snapshot())

    def get_miners_count(self) -> List[Dict[str, object]]:
        return miners_count(self.store.snapshot())

    def get_charts(self) -> Dict[str, object]:
        return charts(self.store.snapshot())
