from .analytics import AnalyticsEngine
from .gaps import GapResolver
from .history import HistoryStore
from .models import BlockRecord, BlockReport, HistoryItem, InvalidBlockReport, PropagationRecord

__all__ = [
    "AnalyticsEngine",
    "BlockRecord",
    "BlockReport",
    "GapResolver",
    "HistoryItem",
    "HistoryStore",
    "InvalidBlockReport",
    "PropagationRecord",
    "analytics",
    "cli",
    "config",
    "gaps",
    "history",
    "models",
    "utils",
]
