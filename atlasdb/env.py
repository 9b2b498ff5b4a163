"""A node's local environment: graph, ledger, consensus engine and its configuration."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from atlasdb.engine import ConsensusEngine
from atlasdb.errors import ConfigError
from atlasdb.graph import Edge, Graph
from atlasdb.ids import NodeId
from atlasdb.network import NetworkAdapter
from atlasdb.peers import PeerManager
from atlasdb.proposal import Proposal
from atlasdb.storage import Storage, save_audit
from atlasdb.vote import ConsensusResult, Vote

Callback = Callable[[ConsensusResult], None]
VoteMap = dict[str, dict[NodeId, Vote]]

DEFAULT_QUORUM_RATIO = 70.0
DEFAULT_CONFIG_PATH = "config.json"


def _noop_callback(_: ConsensusResult) -> None:
    return None


class AtlasEnv:
    """Everything a node keeps locally."""

    def __init__(
        self,
        network: NetworkAdapter,
        callback: Callback,
        peer_manager: PeerManager,
        *,
        graph: Graph | None = None,
        storage: Storage | None = None,
        engine: ConsensusEngine | None = None,
    ) -> None:
        self.network = network
        self.callback = callback
        self.peer_manager = peer_manager
        self.graph = graph if graph is not None else Graph()
        self.storage = storage if storage is not None else Storage()
        self.engine = (
            engine
            if engine is not None
            else ConsensusEngine(peer_manager, DEFAULT_QUORUM_RATIO)
        )

    def evaluate_all(self) -> list[tuple[str, ConsensusResult]]:
        """Evaluate every proposal and record each result in storage."""
        outcome = []
        for result in self.engine.evaluate_proposals():
            self.storage.log_result(result.proposal_id, result)
            outcome.append((result.proposal_id, result))
        return outcome

    def apply_if_approved(
        self, proposal: Proposal, result: ConsensusResult
    ) -> Edge | None:
        """Apply an approved ``add_edge`` proposal to the graph; return the new edge."""
        if not result.approved:
            print("❌ Proposal rejected — graph remains unchanged.")
            return None
        try:
            data = json.loads(proposal.content)
        except ValueError:
            return None
        if not isinstance(data, dict) or data.get("action") != "add_edge":
            return None

        def text(key: str, default: str) -> str:
            value = data.get(key)
            return value if isinstance(value, str) else default

        edge = Edge(text("from", ""), text("to", ""), text("label", "related_to"))
        self.graph.add_edge(edge)
        print(f"✅ Edge added to graph: [{edge.source}] --{edge.label}--> [{edge.target}]")
        return edge

    def export_audit(self, path: str | Path) -> None:
        """Write the audit file; a failure is reported on stderr, not raised."""
        try:
            save_audit(path, self.storage.to_audit())
        except OSError as err:
            print(f"Warning: failed to export audit data to {path}: {err}", file=sys.stderr)

    def get_nodes(self) -> set[NodeId]:
        return set(self.peer_manager.active_peers)

    def print(self) -> None:
        self.graph.print_graph()
        self.storage.print_summary()

    @classmethod
    def from_config(
        cls, network: NetworkAdapter, path: str | Path = DEFAULT_CONFIG_PATH
    ) -> AtlasEnv:
        return EnvConfig.load_from_file(path).build_env(network)

    def get_proposals(self) -> dict[str, Proposal]:
        return dict(self.engine.pool.items())


def _votes_to_dict(votes: VoteMap) -> dict[str, dict[str, str]]:
    return {
        pid: {str(node): str(vote) for node, vote in by_node.items()}
        for pid, by_node in votes.items()
    }


def _votes_from_dict(data: dict[str, dict[str, str]]) -> VoteMap:
    return {
        pid: {NodeId(node): Vote[vote.upper()] for node, vote in by_node.items()}
        for pid, by_node in data.items()
    }


@dataclass
class EnvConfig:
    """Persisted description of a node environment."""

    graph: Graph
    storage: Storage
    peer_manager: PeerManager
    quorum_ratio: float
    proposals: list[Proposal] = field(default_factory=list)
    votes: VoteMap = field(default_factory=dict)

    def save_to_file(self, path: str | Path) -> None:
        Path(path).write_text(
            json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
        )

    @classmethod
    def load_from_file(cls, path: str | Path) -> EnvConfig:
        text = Path(path).read_text(encoding="utf-8")
        try:
            return cls.from_dict(json.loads(text))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise ConfigError(f"{path}: {exc}") from exc

    def build_env(self, network: NetworkAdapter) -> AtlasEnv:
        """Create the environment; it shares this config's peer manager."""
        engine = ConsensusEngine(self.peer_manager, self.quorum_ratio)
        return AtlasEnv(
            network,
            _noop_callback,
            self.peer_manager,
            graph=self.graph,
            storage=self.storage,
            engine=engine,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "graph": self.graph.to_dict(),
            "storage": self.storage.to_dict(),
            "peer_manager": self.peer_manager.to_dict(),
            "proposals": [p.to_dict() for p in self.proposals],
            "votes": _votes_to_dict(self.votes),
            "quorum_ratio": self.quorum_ratio,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EnvConfig:
        return cls(
            graph=Graph.from_dict(data["graph"]),
            storage=Storage.from_dict(data["storage"]),
            peer_manager=PeerManager.from_dict(data["peer_manager"]),
            quorum_ratio=float(data["quorum_ratio"]),
            proposals=[Proposal.from_dict(p) for p in data.get("proposals", [])],
            votes=_votes_from_dict(data.get("votes", {})),
        )