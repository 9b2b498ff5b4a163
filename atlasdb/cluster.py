"""A cluster member: its environment, peers, heartbeats, proposals and votes."""

from __future__ import annotations

import copy
import ipaddress
import time
from collections.abc import Callable

from atlasdb.auth import Authenticator
from atlasdb.env import AtlasEnv
from atlasdb.errors import AtlasError, AuthError, ConfigError, ConsensusError, NetworkError
from atlasdb.graph import Graph
from atlasdb.ids import NodeId
from atlasdb.network import ClusterMessage, NetworkAdapter, VoteData
from atlasdb.node import Node
from atlasdb.peers import PeerEvent, PeerEventKind, RegisterPeer, UpdatePeerStats
from atlasdb.proposal import SIGNATURE_LENGTH, Ack, HeartbeatMessage, Proposal, ProposalMessage, VoteMessage
from atlasdb.storage import Storage
from atlasdb.vote import ConsensusResult, Vote

PASSWORD = "password"

ShutdownHook = Callable[[], None]


def _now() -> int:
    return int(time.time())


def _split_socket_address(address: str) -> tuple[str, int]:
    """Split ``ip:port`` into its parts, rejecting anything that is not an IP socket address."""
    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise ConfigError(f"invalid address {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        ip = ipaddress.ip_address(host)
        port = int(port_text)
    except ValueError as exc:
        raise ConfigError(f"invalid address {address!r}") from exc
    if not 0 <= port <= 0xFFFF:
        raise ConfigError(f"invalid port in address {address!r}")
    return str(ip), port


class Cluster:
    """The local node together with its environment and view of the peers."""

    def __init__(
        self,
        env: AtlasEnv,
        network: NetworkAdapter,
        node_id: NodeId,
        auth: Authenticator,
        *,
        address: str | None = None,
        on_shutdown: ShutdownHook | None = None,
    ) -> None:
        self.local_env = env
        self.network = network
        self.local_node = Node(
            node_id, address if address is not None else network.address(), None, 0.0
        )
        self.peer_manager = env.peer_manager
        self.auth = auth
        self.on_shutdown = on_shutdown

    # --- state -------------------------------------------------------------

    def save_state(self, path) -> None:
        """Write this node's identity, quorum and peers as a configuration file."""
        from atlasdb.config import Config

        host, port = _split_socket_address(self.local_node.address)
        config = Config(
            node_id=self.local_node.id,
            address=host,
            port=port,
            quorum_ratio=self.local_env.engine.evaluator.quorum_ratio,
            graph=Graph(),
            storage=Storage(),
            peer_manager=copy.deepcopy(self.peer_manager),
        )
        config.save_to_file(path)

    # --- heartbeats --------------------------------------------------------

    async def _send_heartbeat(self, to: NodeId) -> Ack:
        timestamp = _now()
        snapshot = self.peer_manager.get_peer_stats(to)
        if snapshot is None:
            raise AtlasError(f"Peer {to} not found")

        print(f"⏱️ Heartbeat enviado para [{to}] em [{timestamp}]")
        try:
            await self.network.send_heartbeat(self.local_node.id, copy.copy(snapshot))
        except NetworkError as exc:
            print(f"❌ Erro de rede ao enviar heartbeat para [{to}]: {exc}")
            raise
        print(f"✅ Heartbeat enviado com sucesso para [{to}] em [{timestamp}]")

        snapshot.update_last_seen(timestamp)
        event = self.peer_manager.update_stats(to, snapshot)
        if event.kind is PeerEventKind.REGISTERED:
            print(f"📒 Peer [{to}] registrado em [{timestamp}]")
        elif event.kind is PeerEventKind.UPDATED:
            print(f"📥 Stats do nó [{to}] atualizadas para [{timestamp}]")

        return Ack(True, f"✅ Heartbeat enviado com sucesso para {to}")

    async def broadcast_heartbeats(self) -> None:
        """Send a heartbeat to every active peer; raise if any of them failed."""
        peers = list(self.peer_manager.active_peers)
        errors = []
        for peer_id in peers:
            if peer_id == self.local_node.id:
                continue
            try:
                await self._send_heartbeat(peer_id)
            except AtlasError as exc:
                errors.append(f"Failed to send heartbeat to {peer_id}: {exc}")
        if errors:
            raise NetworkError(f"Some heartbeats failed: {', '.join(errors)}")

    def handle_heartbeat(self, msg: HeartbeatMessage) -> Ack:
        """Refresh the last-seen time of a known peer that sent a heartbeat."""
        timestamp = _now()
        print(f"⏱️ Heartbeat recebido de [{msg.from_node}] em [{msg.timestamp}]")
        sender = NodeId(msg.from_node)
        node = self.peer_manager.get_peer_stats(sender)
        if node is not None:
            node.update_last_seen(timestamp)
            self.peer_manager.handle_command(UpdatePeerStats(sender, node))
        return Ack(True, f"ACK recebido por {self.local_node.id} em {timestamp}")

    # --- peers -------------------------------------------------------------

    def add_node(self, node_id: NodeId, stats: Node) -> PeerEvent | None:
        """Register a peer; the local node itself is ignored."""
        if node_id == self.local_node.id:
            return None
        return self.peer_manager.handle_command(RegisterPeer(node_id, stats))

    def peer_count(self) -> int:
        return len(self.peer_manager.active_peers)

    def is_peer_active(self, peer_id: NodeId) -> bool:
        """True when the peer is known to this node."""
        return self.peer_manager.get_peer_stats(peer_id) is not None

    # --- proposals ---------------------------------------------------------

    def add_proposal(self, proposal: Proposal) -> None:
        self.local_env.engine.add_proposal(proposal)

    async def broadcast_proposals(self) -> list[Ack]:
        """Submit every pooled proposal once per active peer other than this node."""
        peers = list(self.peer_manager.active_peers)
        proposals = list(self.local_env.engine.pool.items())
        acks: list[Ack] = []
        for _, proposal in proposals:
            for peer_id in peers:
                if peer_id == self.local_node.id:
                    continue
                acks.extend(
                    await self.local_env.engine.submit_proposal(proposal, self.network)
                )
        return acks

    def handle_proposal(self, msg: ProposalMessage) -> Ack:
        """Accept an incoming proposal when its signature verifies."""
        try:
            proposal = Proposal.from_proto(msg)
        except ValueError as exc:
            raise AtlasError(f"Failed to parse proposal: {exc}") from exc

        try:
            is_valid = self.auth.verify(proposal.signing_bytes(), proposal.signature)
        except AuthError as exc:
            print(f"⚠️ Failed to verify signature: {exc}")
            return Ack(False, f"Assinatura inválida: {exc}")

        if not is_valid:
            print("⚠️ Failed to verify signature")
            return Ack(False, f"Assinatura da proposta {proposal.id} inválida")

        self.local_env.engine.add_proposal(proposal)
        return Ack(True, f"Proposta {proposal.id} recebida por {self.local_node.id}")

    def evaluate_proposals(self) -> list[ConsensusResult]:
        print("🗳️ Avaliando consenso")
        return self.local_env.engine.evaluate_proposals()

    # --- voting ------------------------------------------------------------

    async def vote_proposals(self) -> None:
        """Vote on every pooled proposal and send each vote to its proposer."""
        for _, proposal in list(self.local_env.engine.pool.items()):
            try:
                valid = self.auth.verify(proposal.signing_bytes(), proposal.signature)
                vote = Vote.YES if valid else Vote.NO
            except AuthError:
                vote = Vote.ABSTAIN

            vote_data = VoteData(proposal.id, vote, self.local_node.id)
            signature = self.auth.sign(vote_data.signing_bytes(), PASSWORD)
            envelope = vote_data.into_cluster_message(b"", signature)

            await self._vote_proposal(envelope, proposal.proposer)
            print("Sending Votes...")

    async def _vote_proposal(self, vote: ClusterMessage, proposer_id: NodeId) -> None:
        proposer = self.peer_manager.get_peer_stats(proposer_id)
        if proposer is None:
            raise AtlasError(f"Proposer node {proposer_id} not found")
        try:
            await self.local_env.engine.vote_proposals(vote, self.network, proposer)
        except ConsensusError as exc:
            raise ConsensusError(f"Erro ao votar propostas: {exc.detail}") from exc

    def handle_vote(self, msg: VoteMessage) -> Ack:
        """Record an incoming vote when its signature verifies."""
        vote_data = VoteData.from_proto(msg)
        if len(msg.signature) != SIGNATURE_LENGTH:
            raise AuthError("Assinatura com tamanho inválido")

        try:
            is_valid = self.auth.verify(vote_data.signing_bytes(), bytes(msg.signature))
        except AuthError as exc:
            return Ack(False, f"Assinatura inválida: {exc}")

        registry = self.local_env.engine.registry
        snapshot = {pid: registry.get_votes(pid) for pid in registry}
        print(f"Votes {self.local_node.id} {snapshot}")

        if not is_valid:
            return Ack(False, f"Votos {msg.proposal_id} inválidos")

        self.local_env.engine.receive_vote(msg)
        return Ack(True, f"Votos {msg.proposal_id} recebidos por {self.local_node.id}")

    # --- shutdown ----------------------------------------------------------

    def shutdown(self) -> bool:
        """Fire the shutdown hook once; False when it was already used or never set."""
        hook, self.on_shutdown = self.on_shutdown, None
        if hook is None:
            print("⚠️ shutdown_sender já foi usado ou não estava configurado")
            return False
        hook()
        print("🔴 gRPC shutdown enviado com sucesso")
        return True


class ClusterBuilder:
    """Step-by-step construction of a :class:`Cluster`."""

    def __init__(self) -> None:
        self._env: AtlasEnv | None = None
        self._network: NetworkAdapter | None = None
        self._node_id: NodeId | None = None
        self._auth: Authenticator | None = None

    def with_env(self, env: AtlasEnv) -> ClusterBuilder:
        self._env = env
        return self

    def with_network(self, network: NetworkAdapter) -> ClusterBuilder:
        self._network = network
        return self

    def with_node_id(self, node_id: NodeId) -> ClusterBuilder:
        self._node_id = node_id
        return self

    def with_auth(self, auth: Authenticator) -> ClusterBuilder:
        self._auth = auth
        return self

    def build(self) -> Cluster:
        if self._env is None:
            raise ConfigError("Missing env")
        if self._network is None:
            raise ConfigError("Missing network")
        if self._node_id is None:
            raise ConfigError("Missing node_id")
        if self._auth is None:
            raise ConfigError("Missing auth")
        return Cluster(self._env, self._network, self._node_id, self._auth)