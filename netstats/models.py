import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)


class InvalidBlockReport(ValueError):
    """Raised when a reported block lacks a required field or has a bad height."""


REQUIRED_FIELDS = ("number", "uncles", "transactions", "difficulty")


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidBlockReport(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            if text.lower().startswith("0x"):
                return int(text, 16)
            return int(text)
        except ValueError as exc:
            raise InvalidBlockReport(f"{name} must be an integer") from exc
    raise InvalidBlockReport(f"{name} must be an integer")


def _as_int_or_default(value: Any, name: str, default: int = 0) -> int:
    if value is None:
        return default
    try:
        return _as_int(value, name)
    except InvalidBlockReport:
        logger.debug("ignoring malformed %s %r, using %d", name, value, default)
        return default


def _as_list(value: Any, name: str) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    raise InvalidBlockReport(f"{name} must be a list")


@dataclass
class BlockReport:
    number: int
    difficulty: int
    transactions: List[Any]
    uncles: List[Any]
    hash: str = "0x?"
    gas_used: int = 0
    miner: str = ""
    timestamp: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.number, bool) or not isinstance(self.number, int):
            raise InvalidBlockReport(f"block number must be an integer, got {self.number!r}")
        if self.number <= 0:
            raise InvalidBlockReport(f"block number must be > 0, got {self.number}")
        if isinstance(self.difficulty, bool) or not isinstance(self.difficulty, int):
            raise InvalidBlockReport(f"difficulty must be an integer, got {self.difficulty!r}")
        if not isinstance(self.transactions, list):
            raise InvalidBlockReport("transactions must be a list")
        if not isinstance(self.uncles, list):
            raise InvalidBlockReport("uncles must be a list")

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "BlockReport":
        if not isinstance(data, Mapping):
            raise InvalidBlockReport("block must be an object")
        missing = [name for name in REQUIRED_FIELDS if data.get(name) is None]
        if missing:
            raise InvalidBlockReport(f"missing fields: {', '.join(missing)}")
        # only the height is strict; a present but unreadable number elsewhere falls back to 0
        return BlockReport(
            number=_as_int(data["number"], "number"),
            difficulty=_as_int_or_default(data["difficulty"], "difficulty"),
            transactions=_as_list(data["transactions"], "transactions"),
            uncles=_as_list(data["uncles"], "uncles"),
            hash=str(data.get("hash") or "0x?"),
            gas_used=_as_int_or_default(data.get("gasUsed", data.get("gas_used")), "gasUsed"),
            miner=str(data.get("miner") or ""),
            timestamp=_as_int_or_default(data.get("timestamp"), "timestamp"),
        )


@dataclass(frozen=True)
class BlockRecord:
    number: int
    hash: str
    arrived_at: int
    received_at: int
    propagation: int
    difficulty: int
    gas_used: int
    transaction_count: int
    uncle_count: int
    miner: str
    timestamp: int
    inter_block_time: int = 0

    @staticmethod
    def from_report(
        report: BlockReport,
        arrived_at: int,
        received_at: int,
        propagation: int = 0,
        inter_block_time: int = 0,
    ) -> "BlockRecord":
        return BlockRecord(
            number=report.number,
            hash=report.hash,
            arrived_at=arrived_at,
            received_at=received_at,
            propagation=propagation,
            difficulty=report.difficulty,
            gas_used=report.gas_used,
            transaction_count=len(report.transactions),
            uncle_count=len(report.uncles),
            miner=report.miner,
            timestamp=report.timestamp,
            inter_block_time=inter_block_time,
        )

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "hash": self.hash,
            "arrived_at": self.arrived_at,
            "received_at": self.received_at,
            "propagation": self.propagation,
            "difficulty": self.difficulty,
            "gas_used": self.gas_used,
            "transaction_count": self.transaction_count,
            "uncle_count": self.uncle_count,
            "miner": self.miner,
            "timestamp": self.timestamp,
            "inter_block_time": self.inter_block_time,
        }


@dataclass(frozen=True)
class PropagationRecord:
    node_id: str
    received_at: int
    propagation: int

    def to_dict(self) -> dict:
        return {
            "node_id": self.node_id,
            "received_at": self.received_at,
            "propagation": self.propagation,
        }


@dataclass
class HistoryItem:
    """A retained height: the canonical block plus one record per reporting node.

    ``propagation`` is keyed by node id and keeps insertion order, so the
    first entry is always the node that established the canonical record.
    """

    height: int
    block: BlockRecord
    propagation: Dict[str, PropagationRecord] = field(default_factory=dict)

    def find(self, node_id: str) -> Optional[PropagationRecord]:
        return self.propagation.get(node_id)

    def record(self, entry: PropagationRecord) -> None:
        self.propagation[entry.node_id] = entry

    def copy(self) -> "HistoryItem":
        return HistoryItem(height=self.height, block=self.block, propagation=dict(self.propagation))

    def to_dict(self) -> dict:
        return {
            "height": self.height,
            "block": self.block.to_dict(),
            "propagation": [p.to_dict() for p in self.propagation.values()],
        }
