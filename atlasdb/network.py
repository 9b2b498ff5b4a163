"""Messages exchanged between nodes and the transport interface that carries them."""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Union

from atlasdb.ids import NodeId
from atlasdb.node import Node
from atlasdb.proposal import Proposal, VoteMessage
from atlasdb.vote import Vote


def _encode_str(text: str) -> bytes:
    data = text.encode("utf-8")
    return struct.pack("<Q", len(data)) + data


@dataclass
class VoteEnvelope:
    """A single signed vote travelling between nodes."""

    proposal_id: str
    vote: Vote
    voter: NodeId
    public_key: bytes = b""
    signature: bytes = b""


@dataclass
class VoteData:
    """The part of a vote that is signed."""

    proposal_id: str
    vote: Vote
    voter: NodeId

    def into_proto(self, public_key: bytes, signature: bytes) -> VoteMessage:
        return VoteMessage(
            proposal_id=self.proposal_id,
            voter_id=str(self.voter),
            vote=int(self.vote),
            signature=bytes(signature),
            public_key=bytes(public_key),
        )

    @classmethod
    def from_proto(cls, msg: VoteMessage) -> VoteData:
        """Read a vote message; an unknown vote value counts as an abstention."""
        try:
            vote = Vote(msg.vote)
        except ValueError:
            vote = Vote.ABSTAIN
        return cls(proposal_id=msg.proposal_id, vote=vote, voter=NodeId(msg.voter_id))

    def into_cluster_message(self, public_key: bytes, signature: bytes) -> VoteEnvelope:
        return VoteEnvelope(
            proposal_id=self.proposal_id,
            vote=self.vote,
            voter=self.voter,
            public_key=bytes(public_key),
            signature=bytes(signature),
        )

    def signing_bytes(self) -> bytes:
        """Length-prefixed id, little-endian vote index, length-prefixed voter."""
        return (
            _encode_str(self.proposal_id)
            + struct.pack("<I", int(self.vote))
            + _encode_str(str(self.voter))
        )


@dataclass
class ProposalEnvelope:
    proposal: Proposal


@dataclass
class VoteBatch:
    votes: list[VoteData] = field(default_factory=list)
    public_key: bytes = b""
    signature: bytes = b""


@dataclass
class Heartbeat:
    sender: NodeId
    receiver: NodeId
    from_node: NodeId
    timestamp: int


ClusterMessage = Union[ProposalEnvelope, VoteEnvelope, VoteBatch, Heartbeat]
MessageHandler = Callable[[ClusterMessage], None]


class NetworkAdapter(ABC):
    """Transport used by a node to reach its peers.

    Implementations raise :class:`atlasdb.errors.NetworkError` on failure.
    """

    @abstractmethod
    def address(self) -> str:
        """The ``host:port`` this node listens on."""

    @abstractmethod
    async def broadcast(self, msg: ClusterMessage) -> None:
        """Send a message to every reachable peer."""

    @abstractmethod
    async def send_to(self, target: Node, msg: ClusterMessage) -> ClusterMessage:
        """Send a message to one peer and return what was sent."""

    @abstractmethod
    async def send_votes(self, target: Node, votes: ClusterMessage) -> None:
        """Deliver votes to a peer."""

    @abstractmethod
    async def send_proposal(self, target: Node, proposal: Proposal) -> None:
        """Deliver a proposal to a peer."""

    @abstractmethod
    def set_message_handler(self, handler: MessageHandler) -> None:
        """Install the function called for each incoming message."""

    @abstractmethod
    async def send_heartbeat(self, sender: NodeId, receiver: Node) -> ClusterMessage:
        """Send a heartbeat and return the heartbeat message."""