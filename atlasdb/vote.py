"""Votes and consensus outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class Vote(IntEnum):
    """A node's vote on a proposal; the integer values are the wire values."""

    YES = 0
    NO = 1
    ABSTAIN = 2

    def __str__(self) -> str:
        return self.name.capitalize()


@dataclass
class ConsensusResult:
    """Outcome of the consensus evaluation of one proposal."""

    approved: bool
    votes_received: int
    proposal_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "approved": self.approved,
            "votes_received": self.votes_received,
            "proposal_id": self.proposal_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConsensusResult:
        return cls(
            approved=bool(data["approved"]),
            votes_received=int(data["votes_received"]),
            proposal_id=data["proposal_id"],
        )