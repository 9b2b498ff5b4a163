"""A single cluster member and its connection statistics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from atlasdb.ids import NodeId

MIN_RELIABILITY_SCORE = 0.8
MAX_LATENCY = 500
_UNKNOWN_LATENCY = 999


@dataclass
class Node:
    """An individual node in the cluster."""

    id: NodeId
    address: str
    latency: int | None = None
    reliability_score: float = 0.0
    last_seen: int = 0

    def is_trusted(self) -> bool:
        """True when the node is reliable enough and answers fast enough."""
        latency = self.latency if self.latency is not None else _UNKNOWN_LATENCY
        return self.reliability_score > MIN_RELIABILITY_SCORE and latency < MAX_LATENCY

    def update_last_seen(self, timestamp: int) -> None:
        self.last_seen = timestamp

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "address": self.address,
            "latency": self.latency,
            "reliability_score": self.reliability_score,
            "last_seen": self.last_seen,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        return cls(
            id=NodeId(data["id"]),
            address=data["address"],
            latency=data.get("latency"),
            reliability_score=float(data["reliability_score"]),
            last_seen=int(data.get("last_seen", 0)),
        )