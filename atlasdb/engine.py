"""Consensus engine: proposals, votes and their propagation to peers."""

from __future__ import annotations

from dataclasses import InitVar, dataclass, field

from atlasdb.errors import ConsensusError, NetworkError
from atlasdb.ids import NodeId
from atlasdb.network import ClusterMessage, NetworkAdapter
from atlasdb.node import Node
from atlasdb.peers import PeerManager
from atlasdb.proposal import Ack, Proposal, VoteMessage
from atlasdb.vote import ConsensusResult, Vote
from atlasdb.voting import ConsensusEvaluator, ProposalPool, VoteRegistry


@dataclass
class ConsensusEngine:
    """Holds proposals and votes and decides them against the active peers."""

    peer_manager: PeerManager
    quorum_ratio: InitVar[float]
    pool: ProposalPool = field(default_factory=ProposalPool)
    registry: VoteRegistry = field(default_factory=VoteRegistry)
    evaluator: ConsensusEvaluator = field(init=False)

    def __post_init__(self, quorum_ratio: float) -> None:
        self.evaluator = ConsensusEvaluator(quorum_ratio)

    def add_proposal(self, proposal: Proposal) -> None:
        """Add a proposal to the pool and open its vote record."""
        self.pool.add(proposal)
        self.registry.register_proposal(proposal.id)

    async def submit_proposal(
        self, proposal: Proposal, network: NetworkAdapter
    ) -> list[Ack]:
        """Send a proposal to every active peer except its proposer.

        One acknowledgement per peer; delivery failures are reported as
        acknowledgements with ``received`` false.
        """
        results: list[Ack] = []
        for peer in self.active_nodes():
            if peer == proposal.proposer:
                continue
            stats = self.peer_manager.get_peer_stats(peer)
            if stats is None:
                results.append(Ack(False, f"Peer {peer} não encontrado"))
                continue
            try:
                await network.send_proposal(stats, proposal)
            except NetworkError as exc:
                results.append(Ack(False, f"Erro ao enviar para {peer}: {exc}"))
            else:
                results.append(Ack(True, f"Proposta recebida por {peer}"))
        return results

    def receive_vote(self, vote_msg: VoteMessage) -> None:
        """Record a vote from an active peer; others are ignored."""
        voter = NodeId(vote_msg.voter_id)
        if voter not in self.active_nodes():
            print(f"⚠️ Ignorado voto de nó inativo: [{voter}]")
            return
        try:
            vote = Vote(vote_msg.vote)
        except ValueError:
            print(f"⚠️ Voto inválido ignorado: {vote_msg.vote}")
            return
        self.registry.register_vote(vote_msg.proposal_id, voter, vote)
        print(f"📥 [{voter}] votou {vote} na proposta [{vote_msg.proposal_id}]")

    async def vote_proposals(
        self, vote_batch: ClusterMessage, network: NetworkAdapter, proposer: Node
    ) -> Ack:
        """Send votes to the proposer of the proposal."""
        try:
            await network.send_votes(proposer, vote_batch)
        except NetworkError as exc:
            raise ConsensusError(f"Erro ao enviar votos: {exc}") from exc
        return Ack(True, f"Votos enviados por {proposer.id}")

    def evaluate_proposals(self) -> list[ConsensusResult]:
        return self.evaluator.evaluate(self.registry, self.active_nodes())

    def active_nodes(self) -> set[NodeId]:
        """A snapshot of the currently active peers."""
        return set(self.peer_manager.active_peers)