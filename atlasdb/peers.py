"""Tracking of known peers and their split into active and reserve sets."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from atlasdb.ids import NodeId
from atlasdb.node import Node

logger = logging.getLogger(__name__)

_U64_MAX = 2**64 - 1


class PeerEventKind(Enum):
    ALREADY_REGISTERED = "already_registered"
    PROMOTED = "promoted"
    DEMOTED = "demoted"
    REGISTERED = "registered"
    DROPPED = "dropped"
    UPDATED = "updated"
    NO_CHANGE = "no_change"


@dataclass(frozen=True)
class PeerEvent:
    """What a peer command changed, and for which peer."""

    kind: PeerEventKind
    node_id: NodeId | None = None


@dataclass(frozen=True)
class RegisterPeer:
    node_id: NodeId
    stats: Node


@dataclass(frozen=True)
class DropPeer:
    node_id: NodeId


@dataclass(frozen=True)
class RotatePeers:
    pass


@dataclass(frozen=True)
class UpdatePeerStats:
    node_id: NodeId
    stats: Node


PeerCommand = Union[RegisterPeer, DropPeer, RotatePeers, UpdatePeerStats]


def _latency_key(node: Node | None) -> tuple[int, int]:
    """Order latencies so that unknown latency sorts first, as an absent option does."""
    if node is None:
        return (1, _U64_MAX)
    if node.latency is None:
        return (0, 0)
    return (1, node.latency)


def _score(node: Node | None) -> int:
    return int(node.reliability_score * 100.0) if node is not None else 0


@dataclass
class PeerManager:
    """Keeps every known peer and a bounded set of active and reserve peers."""

    max_active: int
    max_reserve: int
    active_peers: set[NodeId] = field(default_factory=set)
    reserve_peers: set[NodeId] = field(default_factory=set)
    known_peers: dict[NodeId, Node] = field(default_factory=dict)

    def _register_peer(self, node_id: NodeId, stats: Node) -> None:
        self.known_peers[node_id] = stats
        if node_id in self.active_peers or node_id in self.reserve_peers:
            return
        if len(self.active_peers) < self.max_active:
            self.active_peers.add(node_id)
        elif len(self.reserve_peers) < self.max_reserve:
            self.reserve_peers.add(node_id)

    def update_stats(self, node_id: NodeId, new_stats: Node) -> PeerEvent:
        """Refresh a peer's statistics when the new ones are more recent."""
        current = self.known_peers.get(node_id)
        if current is None:
            self.known_peers[node_id] = dataclasses.replace(new_stats)
            return PeerEvent(PeerEventKind.REGISTERED, node_id)
        if new_stats.last_seen > current.last_seen:
            current.latency = new_stats.latency
            current.reliability_score = new_stats.reliability_score
            current.update_last_seen(new_stats.last_seen)
            return PeerEvent(PeerEventKind.UPDATED, node_id)
        return PeerEvent(PeerEventKind.NO_CHANGE)

    def _drop_peer(self, node_id: NodeId) -> None:
        self.active_peers.discard(node_id)
        self.reserve_peers.discard(node_id)
        self.known_peers.pop(node_id, None)

    def _find_worst_active_peer(self) -> NodeId | None:
        def key(node_id: NodeId) -> tuple[int, tuple[int, int]]:
            stats = self.known_peers.get(node_id)
            flag, value = _latency_key(stats)
            return (_score(stats), (-flag, -value))

        return min(self.active_peers, key=key, default=None)

    def _rotate_peers(self) -> tuple[NodeId | None, NodeId | None]:
        def key(node_id: NodeId) -> tuple[int, tuple[int, int]]:
            stats = self.known_peers.get(node_id)
            return (-_score(stats), _latency_key(stats))

        candidates = sorted(self.reserve_peers, key=key)
        promoted: NodeId | None = None
        demoted: NodeId | None = None

        for candidate in candidates:
            if len(self.active_peers) < self.max_active:
                continue
            worst = self._find_worst_active_peer()
            if worst is None:
                continue
            promoted, demoted = candidate, worst
            self.active_peers.discard(worst)
            self.active_peers.add(candidate)
            self.reserve_peers.discard(candidate)
            self.reserve_peers.add(worst)

        return promoted, demoted

    def get_peer_stats(self, node_id: NodeId) -> Node | None:
        """A copy of the statistics of a known peer, or None."""
        stats = self.known_peers.get(node_id)
        return dataclasses.replace(stats) if stats is not None else None

    def handle_command(self, command: PeerCommand) -> PeerEvent:
        """Apply a peer command and report what changed."""
        match command:
            case RegisterPeer(node_id=node_id, stats=stats):
                logger.debug("Registering peer: %s", node_id)
                if node_id in self.known_peers:
                    return PeerEvent(PeerEventKind.ALREADY_REGISTERED, node_id)
                self._register_peer(node_id, stats)
                return PeerEvent(PeerEventKind.REGISTERED, node_id)
            case DropPeer(node_id=node_id):
                logger.debug("Dropping peer: %s", node_id)
                self._drop_peer(node_id)
                return PeerEvent(PeerEventKind.DROPPED, node_id)
            case RotatePeers():
                logger.debug("Rotating peers")
                promoted, demoted = self._rotate_peers()
                if promoted is not None:
                    return PeerEvent(PeerEventKind.PROMOTED, promoted)
                if demoted is not None:
                    return PeerEvent(PeerEventKind.DEMOTED, demoted)
                return PeerEvent(PeerEventKind.NO_CHANGE)
            case UpdatePeerStats(node_id=node_id, stats=stats):
                logger.debug("Updating stats for peer: %s", node_id)
                return self.update_stats(node_id, stats)
        raise TypeError(f"unknown peer command: {command!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "active_peers": sorted(str(p) for p in self.active_peers),
            "reserve_peers": sorted(str(p) for p in self.reserve_peers),
            "known_peers": {str(k): v.to_dict() for k, v in self.known_peers.items()},
            "max_active": self.max_active,
            "max_reserve": self.max_reserve,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PeerManager:
        return cls(
            max_active=int(data["max_active"]),
            max_reserve=int(data["max_reserve"]),
            active_peers={NodeId(p) for p in data.get("active_peers", [])},
            reserve_peers={NodeId(p) for p in data.get("reserve_peers", [])},
            known_peers={
                NodeId(k): Node.from_dict(v)
                for k, v in data.get("known_peers", {}).items()
            },
        )