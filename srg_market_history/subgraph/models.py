from dataclasses import dataclass
from typing import Dict, Any, Optional

from srg_market_history.subgraph import SubgraphResponseError


@dataclass(frozen=True)
class TransferRecord:
    """One transfer as returned by the subgraph, reduced to its block identity"""
    block_number: str
    block_timestamp: str

    @property
    def timestamp(self) -> int:
        return int(self.block_timestamp)

    @classmethod
    def from_graphql(cls, item: Dict[str, Any]) -> "TransferRecord":
        try:
            block_number = int(item["blockNumber"])
            block_timestamp = int(item["blockTimestamp"])
        except (KeyError, TypeError, ValueError) as e:
            raise SubgraphResponseError(f"Malformed transfer record: {item!r}") from e
        return cls(block_number=str(block_number), block_timestamp=str(block_timestamp))


@dataclass(frozen=True)
class MetricPoint:
    window_key: int
    block_number: str
    value: str


@dataclass(frozen=True)
class WindowResult:
    """Outcome of resolving one window: a point, or the reason there is none"""
    window_key: int
    point: Optional[MetricPoint] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.point is not None
