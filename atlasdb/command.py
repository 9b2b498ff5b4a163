"""Commands that can be run against a cluster."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from atlasdb.ids import NodeId
from atlasdb.proposal import HeartbeatMessage, Proposal, ProposalMessage, VoteMessage

if TYPE_CHECKING:
    from atlasdb.cluster import Cluster


class CommandKind(Enum):
    # operations
    ADD_PROPOSAL = "add_proposal"
    BROADCAST_HEARTBEAT = "broadcast_heartbeat"
    BROADCAST_PROPOSALS = "broadcast_proposals"
    SEND_VOTE = "send_vote"
    # decisions
    EVALUATE_PROPOSALS = "evaluate_proposals"
    COMMIT_PROPOSAL = "commit_proposal"
    REJECT_PROPOSAL = "reject_proposal"
    # ingest
    HANDLE_HEARTBEAT = "handle_heartbeat"
    HANDLE_PROPOSAL = "handle_proposal"
    HANDLE_VOTE = "handle_vote"
    # state
    SYNC_STATE = "sync_state"
    GOSSIP_STATE = "gossip_state"
    # shutdown
    SHUTDOWN = "shutdown"


_PAYLOAD_TYPES: dict[CommandKind, type] = {
    CommandKind.ADD_PROPOSAL: Proposal,
    CommandKind.COMMIT_PROPOSAL: str,
    CommandKind.REJECT_PROPOSAL: str,
    CommandKind.HANDLE_HEARTBEAT: HeartbeatMessage,
    CommandKind.HANDLE_PROPOSAL: ProposalMessage,
    CommandKind.HANDLE_VOTE: VoteMessage,
    CommandKind.SYNC_STATE: NodeId,
}

_TIMEOUTS: dict[CommandKind, float] = {
    CommandKind.ADD_PROPOSAL: 30.0,
    CommandKind.BROADCAST_HEARTBEAT: 30.0,
    CommandKind.BROADCAST_PROPOSALS: 30.0,
    CommandKind.HANDLE_HEARTBEAT: 10.0,
    CommandKind.HANDLE_PROPOSAL: 10.0,
    CommandKind.HANDLE_VOTE: 10.0,
    CommandKind.SEND_VOTE: 10.0,
    CommandKind.EVALUATE_PROPOSALS: 15.0,
    CommandKind.COMMIT_PROPOSAL: 15.0,
    CommandKind.REJECT_PROPOSAL: 15.0,
    CommandKind.SYNC_STATE: 20.0,
    CommandKind.GOSSIP_STATE: 20.0,
    CommandKind.SHUTDOWN: 5.0,
}


@dataclass(frozen=True)
class ClusterCommand:
    """A unit of work for a cluster, with the payload its kind requires."""

    kind: CommandKind
    payload: Any = None

    def __post_init__(self) -> None:
        expected = _PAYLOAD_TYPES.get(self.kind)
        if expected is None:
            if self.payload is not None:
                raise TypeError(f"{self.kind.name} takes no payload")
        elif not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.kind.name} needs a {expected.__name__} payload, "
                f"got {type(self.payload).__name__}"
            )

    def timeout(self) -> float:
        """Default time limit for this command, in seconds."""
        return _TIMEOUTS[self.kind]

    async def execute(self, cluster: Cluster) -> None:
        """Run the command; errors from the cluster propagate.

        Commit, reject, sync and gossip commands are accepted and change nothing.
        """
        match self.kind:
            case CommandKind.ADD_PROPOSAL:
                cluster.add_proposal(self.payload)
            case CommandKind.BROADCAST_HEARTBEAT:
                await cluster.broadcast_heartbeats()
            case CommandKind.BROADCAST_PROPOSALS:
                await cluster.broadcast_proposals()
            case CommandKind.SEND_VOTE:
                await cluster.vote_proposals()
            case CommandKind.EVALUATE_PROPOSALS:
                cluster.evaluate_proposals()
            case CommandKind.HANDLE_HEARTBEAT:
                cluster.handle_heartbeat(self.payload)
            case CommandKind.HANDLE_PROPOSAL:
                cluster.handle_proposal(self.payload)
            case CommandKind.HANDLE_VOTE:
                cluster.handle_vote(self.payload)
            case CommandKind.SHUTDOWN:
                cluster.shutdown()
            case (
                CommandKind.COMMIT_PROPOSAL
                | CommandKind.REJECT_PROPOSAL
                | CommandKind.SYNC_STATE
                | CommandKind.GOSSIP_STATE
            ):
                return None