"""Node configuration file and the cluster built from it."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from atlasdb.auth import Authenticator
from atlasdb.cluster import Cluster
from atlasdb.engine import ConsensusEngine
from atlasdb.env import AtlasEnv
from atlasdb.errors import ConfigError
from atlasdb.graph import Graph
from atlasdb.ids import NodeId
from atlasdb.network import NetworkAdapter
from atlasdb.peers import PeerManager
from atlasdb.storage import Storage
from atlasdb.vote import ConsensusResult


def _noop_callback(_: ConsensusResult) -> None:
    return None


@dataclass
class Config:
    """Everything needed to start a node."""

    node_id: NodeId
    address: str
    port: int
    quorum_ratio: float
    graph: Graph
    storage: Storage
    peer_manager: PeerManager

    def build_cluster_env(self, network: NetworkAdapter, auth: Authenticator) -> Cluster:
        """Build the cluster, loading stored proposals and votes into the engine."""
        engine = ConsensusEngine(self.peer_manager, self.quorum_ratio)
        for proposal in self.storage.proposals:
            engine.pool.add(proposal)
            engine.registry.register_proposal(proposal.id)
        engine.registry.replace(self.storage.votes)

        env = AtlasEnv(
            network,
            _noop_callback,
            self.peer_manager,
            graph=self.graph,
            storage=self.storage,
            engine=engine,
        )
        return Cluster(
            env, network, self.node_id, auth, address=f"{self.address}:{self.port}"
        )

    def save_to_file(self, path: str | Path) -> None:
        Path(path).write_text(
            json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
        )

    @classmethod
    def load_from_file(cls, path: str | Path) -> Config:
        text = Path(path).read_text(encoding="utf-8")
        try:
            return cls.from_dict(json.loads(text))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise ConfigError(f"{path}: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_id": str(self.node_id),
            "address": self.address,
            "port": self.port,
            "quorum_ratio": self.quorum_ratio,
            "graph": self.graph.to_dict(),
            "storage": self.storage.to_dict(),
            "peer_manager": self.peer_manager.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        port = int(data["port"])
        if not 0 <= port <= 0xFFFF:
            raise ConfigError(f"port out of range: {port}")
        return cls(
            node_id=NodeId(data["node_id"]),
            address=data["address"],
            port=port,
            quorum_ratio=float(data["quorum_ratio"]),
            graph=Graph.from_dict(data["graph"]),
            storage=Storage.from_dict(data["storage"]),
            peer_manager=PeerManager.from_dict(data["peer_manager"]),
        )