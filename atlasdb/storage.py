"""Ledger of proposals, votes and results, and its audit file."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from atlasdb.errors import StorageError
from atlasdb.ids import NodeId
from atlasdb.proposal import Proposal
from atlasdb.vote import ConsensusResult, Vote

VoteMap = dict[str, dict[NodeId, Vote]]


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


def _ledger_to_dict(
    proposals: list[Proposal], votes: VoteMap, results: dict[str, ConsensusResult]
) -> dict[str, Any]:
    return {
        "proposals": [p.to_dict() for p in proposals],
        "votes": _votes_to_dict(votes),
        "results": {pid: r.to_dict() for pid, r in results.items()},
    }


def _ledger_from_dict(
    data: dict[str, Any],
) -> tuple[list[Proposal], VoteMap, dict[str, ConsensusResult]]:
    return (
        [Proposal.from_dict(p) for p in data.get("proposals", [])],
        _votes_from_dict(data.get("votes", {})),
        {
            pid: ConsensusResult.from_dict(r)
            for pid, r in data.get("results", {}).items()
        },
    )


@dataclass
class AuditData:
    """Full audit record of a consensus session."""

    proposals: list[Proposal] = field(default_factory=list)
    votes: VoteMap = field(default_factory=dict)
    results: dict[str, ConsensusResult] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return _ledger_to_dict(self.proposals, self.votes, self.results)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditData:
        return cls(*_ledger_from_dict(data))


@dataclass
class Storage:
    """In-memory ledger of proposals, vote traces and consensus outcomes."""

    proposals: list[Proposal] = field(default_factory=list)
    votes: VoteMap = field(default_factory=dict)
    results: dict[str, ConsensusResult] = field(default_factory=dict)

    def log_proposal(self, proposal: Proposal) -> None:
        print(f"📝 Storing proposal [{proposal.id}]")
        self.proposals.append(proposal)

    def log_vote(self, proposal_id: str, node: NodeId, vote: Vote) -> None:
        print(f"🧾 Logging vote from [{node}] on [{proposal_id}]")
        self.votes.setdefault(proposal_id, {})[node] = vote

    def log_result(self, proposal_id: str, result: ConsensusResult) -> None:
        verdict = "✅ APPROVED" if result.approved else "❌ REJECTED"
        print(f"📌 Storing result for proposal [{proposal_id}]: {verdict}")
        self.results[proposal_id] = result

    def print_summary(self) -> None:
        print("\n📋 FINAL SUMMARY")
        for prop in self.proposals:
            result = self.results.get(prop.id)
            if result is None:
                status = "⏳ NO RESULT"
            elif result.approved:
                status = "✅ APPROVED"
            else:
                status = "❌ REJECTED"
            print(f'- [{prop.id}] "{prop.content}" → {status}')

    def to_audit(self) -> AuditData:
        return AuditData(
            proposals=copy.deepcopy(self.proposals),
            votes=copy.deepcopy(self.votes),
            results=copy.deepcopy(self.results),
        )

    def apply_audit(self, data: AuditData) -> None:
        self.proposals = data.proposals
        self.votes = data.votes
        self.results = data.results

    def to_dict(self) -> dict[str, Any]:
        return _ledger_to_dict(self.proposals, self.votes, self.results)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Storage:
        return cls(*_ledger_from_dict(data))


def save_audit(path: str | Path, data: AuditData) -> None:
    """Write audit data to ``path`` as pretty-printed JSON."""
    Path(path).write_text(
        json.dumps(data.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
    )


def load_audit(path: str | Path) -> AuditData:
    """Read audit data written by :func:`save_audit`."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        return AuditData.from_dict(json.loads(text))
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise StorageError(f"invalid audit file {path}: {exc}") from exc