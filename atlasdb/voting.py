"""Proposal pool, vote registry and quorum evaluation."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator, ItemsView
from dataclasses import dataclass, field

from atlasdb.ids import NodeId
from atlasdb.proposal import Proposal
from atlasdb.vote import ConsensusResult, Vote

logger = logging.getLogger(__name__)


@dataclass
class ProposalPool:
    """In-memory store of proposals keyed by id."""

    _proposals: dict[str, Proposal] = field(default_factory=dict)

    def add(self, proposal: Proposal) -> None:
        """Add a proposal, replacing (with a warning) one with the same id."""
        if proposal.id in self._proposals:
            logger.warning("Proposal with id %s already exists in the pool", proposal.id)
        self._proposals[proposal.id] = proposal

    def clear(self) -> None:
        self._proposals.clear()

    def find_by_id(self, proposal_id: str) -> Proposal | None:
        return self._proposals.get(proposal_id)

    def items(self) -> ItemsView[str, Proposal]:
        return self._proposals.items()

    def __len__(self) -> int:
        return len(self._proposals)

    def __contains__(self, proposal_id: object) -> bool:
        return proposal_id in self._proposals

    def __iter__(self) -> Iterator[str]:
        return iter(self._proposals)


@dataclass
class VoteRegistry:
    """Votes of each node for each proposal."""

    _votes: dict[str, dict[NodeId, Vote]] = field(default_factory=dict)

    def register_proposal(self, proposal_id: str) -> None:
        """Start an empty vote map for a proposal if it has none."""
        self._votes.setdefault(proposal_id, {})

    def register_vote(self, proposal_id: str, node: NodeId, vote: Vote) -> None:
        self._votes.setdefault(proposal_id, {})[node] = vote

    def count_yes(self, proposal_id: str) -> int:
        votes = self._votes.get(proposal_id, {})
        return sum(1 for v in votes.values() if v is Vote.YES)

    def get_votes(self, proposal_id: str) -> dict[NodeId, Vote] | None:
        return self._votes.get(proposal_id)

    def replace(self, new_votes: dict[str, dict[NodeId, Vote]]) -> None:
        """Replace every recorded vote, for loading external state."""
        self._votes = {pid: dict(votes) for pid, votes in new_votes.items()}

    def __iter__(self) -> Iterator[str]:
        return iter(self._votes)

    def __len__(self) -> int:
        return len(self._votes)

    def __contains__(self, proposal_id: object) -> bool:
        return proposal_id in self._votes


@dataclass
class ConsensusEvaluator:
    """Decides proposals by counting Yes votes against a quorum."""

    quorum_ratio: float

    def evaluate(
        self, registry: VoteRegistry, active_nodes: Iterable[NodeId]
    ) -> list[ConsensusResult]:
        """Evaluate every proposal in the registry."""
        active_count = len(set(active_nodes))
        quorum_count = math.ceil(active_count * self.quorum_ratio)
        print(
            f"🗳️ Avaliando consenso (nós ativos: {active_count}, "
            f"quorum: {self.quorum_ratio:.2f} → {quorum_count})"
        )

        results = []
        for proposal_id in registry:
            yes_votes = registry.count_yes(proposal_id)
            approved = yes_votes >= quorum_count
            results.append(
                ConsensusResult(
                    approved=approved,
                    votes_received=yes_votes,
                    proposal_id=proposal_id,
                )
            )
            verdict = "✅ APROVADA" if approved else "❌ REJEITADA"
            print(
                f"🗳️ Proposta [{proposal_id}]: {yes_votes}/{quorum_count} "
                f"votos 'Yes' — {verdict}"
            )
        return results