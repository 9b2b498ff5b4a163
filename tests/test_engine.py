import pytest

from atlasdb.engine import ConsensusEngine
from atlasdb.errors import ConsensusError, SendError
from atlasdb.ids import NodeId
from atlasdb.network import Heartbeat, NetworkAdapter, VoteData
from atlasdb.node import Node
from atlasdb.peers import PeerManager, RegisterPeer
from atlasdb.proposal import Proposal, VoteMessage
from atlasdb.vote import Vote


class FakeNetwork(NetworkAdapter):
    def __init__(self, fail=False):
        self.fail = fail
        self.proposals = []
        self.votes = []
        self.sent = []
        self.handler = None

    def address(self):
        return "127.0.0.1:50052"

    async def broadcast(self, msg):
        self.sent.append(msg)

    async def send_to(self, target, msg):
        self.sent.append(msg)
        return msg

    async def send_votes(self, target, votes):
        if self.fail:
            raise SendError("boom")
        self.votes.append((target.id, votes))

    async def send_proposal(self, target, proposal):
        if self.fail:
            raise SendError("boom")
        self.proposals.append((target.id, proposal.id))

    def set_message_handler(self, handler):
        self.handler = handler

    async def send_heartbeat(self, sender, receiver):
        return Heartbeat(sender, receiver.id, sender, 0)


def make_manager(*ids):
    manager = PeerManager(max_active=10, max_reserve=5)
    for port, name in enumerate(ids, start=6000):
        node_id = NodeId(name)
        manager.handle_command(RegisterPeer(node_id, Node(node_id, f"127.0.0.1:{port}")))
    return manager


def vote_msg(pid, voter, vote):
    return VoteMessage(proposal_id=pid, voter_id=voter, vote=int(vote))


def test_add_proposal_registers_pool_and_registry():
    engine = ConsensusEngine(make_manager(), 0.5)
    engine.add_proposal(Proposal("p1", NodeId("a"), "x"))
    assert engine.pool.find_by_id("p1").content == "x"
    assert engine.registry.get_votes("p1") == {}


def test_receive_vote_from_active_node():
    engine = ConsensusEngine(make_manager("a", "b"), 0.5)
    engine.add_proposal(Proposal("p1", NodeId("a"), "x"))
    engine.receive_vote(vote_msg("p1", "b", Vote.YES))
    assert engine.registry.get_votes("p1") == {NodeId("b"): Vote.YES}


def test_receive_vote_from_inactive_node_is_ignored():
    engine = ConsensusEngine(make_manager("a"), 0.5)
    engine.add_proposal(Proposal("p1", NodeId("a"), "x"))
    engine.receive_vote(vote_msg("p1", "stranger", Vote.YES))
    assert engine.registry.get_votes("p1") == {}


def test_receive_invalid_vote_is_ignored():
    engine = ConsensusEngine(make_manager("a"), 0.5)
    engine.add_proposal(Proposal("p1", NodeId("a"), "x"))
    engine.receive_vote(VoteMessage(proposal_id="p1", voter_id="a", vote=9))
    assert engine.registry.get_votes("p1") == {}


def test_evaluate_proposals_against_quorum():
    engine = ConsensusEngine(make_manager("a", "b", "c"), 0.5)
    engine.add_proposal(Proposal("ok", NodeId("a"), "x"))
    engine.add_proposal(Proposal("weak", NodeId("a"), "y"))
    engine.receive_vote(vote_msg("ok", "a", Vote.YES))
    engine.receive_vote(vote_msg("ok", "b", Vote.YES))
    engine.receive_vote(vote_msg("weak", "a", Vote.YES))
    engine.receive_vote(vote_msg("weak", "b", Vote.NO))
    results = {r.proposal_id: r for r in engine.evaluate_proposals()}
    assert results["ok"].approved is True
    assert results["ok"].votes_received == 2
    assert results["weak"].approved is False
    assert results["weak"].votes_received == 1


def test_active_nodes_is_a_snapshot():
    manager = make_manager("a")
    engine = ConsensusEngine(manager, 0.5)
    nodes = engine.active_nodes()
    nodes.add(NodeId("z"))
    assert engine.active_nodes() == {NodeId("a")}


@pytest.mark.asyncio
async def test_submit_proposal_skips_proposer():
    engine = ConsensusEngine(make_manager("a", "b", "c"), 0.5)
    network = FakeNetwork()
    acks = await engine.submit_proposal(Proposal("p1", NodeId("a"), "x"), network)
    assert sorted(str(target) for target, _ in network.proposals) == ["b", "c"]
    assert len(acks) == 2
    assert all(ack.received for ack in acks)


@pytest.mark.asyncio
async def test_submit_proposal_reports_failures():
    engine = ConsensusEngine(make_manager("a", "b"), 0.5)
    acks = await engine.submit_proposal(
        Proposal("p1", NodeId("a"), "x"), FakeNetwork(fail=True)
    )
    assert len(acks) == 1
    assert acks[0].received is False
    assert acks[0].message.startswith("Erro ao enviar para b")


@pytest.mark.asyncio
async def test_submit_proposal_unknown_peer_stats():
    manager = make_manager("a")
    manager.active_peers.add(NodeId("ghost"))
    engine = ConsensusEngine(manager, 0.5)
    acks = await engine.submit_proposal(Proposal("p1", NodeId("a"), "x"), FakeNetwork())
    assert [(a.received, a.message) for a in acks] == [(False, "Peer ghost não encontrado")]


@pytest.mark.asyncio
async def test_vote_proposals_sends_to_proposer():
    engine = ConsensusEngine(make_manager("n2"), 0.5)
    network = FakeNetwork()
    proposer = Node(NodeId("n2"), "127.0.0.1:7000")
    envelope = VoteData("p1", Vote.YES, NodeId("n1")).into_cluster_message(b"", b"")
    ack = await engine.vote_proposals(envelope, network, proposer)
    assert ack.received is True
    assert ack.message == "Votos enviados por n2"
    assert network.votes == [(NodeId("n2"), envelope)]


@pytest.mark.asyncio
async def test_vote_proposals_failure_raises():
    engine = ConsensusEngine(make_manager(), 0.5)
    proposer = Node(NodeId("n2"), "127.0.0.1:7000")
    envelope = VoteData("p1", Vote.NO, NodeId("n1")).into_cluster_message(b"", b"")
    with pytest.raises(ConsensusError):
        await engine.vote_proposals(envelope, FakeNetwork(fail=True), proposer)