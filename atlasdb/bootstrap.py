"""Creating a node's first configuration and loading its environment."""

from __future__ import annotations

import ipaddress
import socket
from pathlib import Path

from atlasdb.config import Config
from atlasdb.env import AtlasEnv, EnvConfig
from atlasdb.graph import Graph
from atlasdb.ids import NodeId
from atlasdb.network import NetworkAdapter
from atlasdb.peers import PeerManager
from atlasdb.storage import Storage

DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_PORT = 50052
DEFAULT_QUORUM_RATIO = 0.5
DEFAULT_MAX_ACTIVE = 10
DEFAULT_MAX_RESERVE = 5
_PROBE_ADDRESS = ("8.8.8.8", 80)


def get_local_ip() -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    """The address of the interface used for outbound traffic; no packet is sent."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("0.0.0.0", 0))
        sock.connect(_PROBE_ADDRESS)
        return ipaddress.ip_address(sock.getsockname()[0])


def init(
    path: str | Path | None = None,
    node_id: str | None = None,
    config: Config | None = None,
) -> Config:
    """Write a configuration file, the default one unless ``config`` is given."""
    if config is None:
        config = Config(
            node_id=NodeId(node_id or ""),
            address=str(get_local_ip()),
            port=DEFAULT_PORT,
            quorum_ratio=DEFAULT_QUORUM_RATIO,
            graph=Graph(),
            storage=Storage(),
            peer_manager=PeerManager(DEFAULT_MAX_ACTIVE, DEFAULT_MAX_RESERVE),
        )
    config.save_to_file(path or DEFAULT_CONFIG_PATH)
    return config


def load_env(path: str | Path, network: NetworkAdapter) -> AtlasEnv:
    """Build a node environment from an environment configuration file."""
    return EnvConfig.load_from_file(path).build_env(network)