# atlasdb

A small distributed graph store. Each node of a cluster keeps a local
directed graph, exchanges signed proposals to change it, votes on them and
approves a proposal once its "yes" votes from active peers reach a quorum.

The package is pure Python with no third-party runtime dependencies. The
network transport is pluggable: implement `NetworkAdapter` to connect
cluster nodes over whatever channel you use.

## What is inside

| Module                | Purpose                                                         |
|-----------------------|-----------------------------------------------------------------|
| `atlasdb.ids`         | `NodeId`, the identifier of a cluster node                      |
| `atlasdb.errors`      | `AtlasError` and its subclasses (`NetworkError`, `ConfigError`, ...) |
| `atlasdb.node`        | `Node`: address, latency, reliability and last-seen time        |
| `atlasdb.graph`       | `Vertex`, `Edge` and `Graph`                                    |
| `atlasdb.vote`        | `Vote` and `ConsensusResult`                                    |
| `atlasdb.proposal`    | `Proposal` and the wire messages (`ProposalMessage`, `VoteMessage`, `HeartbeatMessage`, `Ack`) |
| `atlasdb.auth`        | `Authenticator` and the mock `SimpleAuthenticator`              |
| `atlasdb.peers`       | `PeerManager` with active/reserve peers and rotation            |
| `atlasdb.voting`      | `ProposalPool`, `VoteRegistry`, `ConsensusEvaluator`            |
| `atlasdb.storage`     | `Storage`, `AuditData`, `save_audit`, `load_audit`              |
| `atlasdb.network`     | `NetworkAdapter` and the cluster messages                       |
| `atlasdb.engine`      | `ConsensusEngine`, tying pool, registry and evaluator together  |
| `atlasdb.env`         | `AtlasEnv` and its JSON-backed `EnvConfig`                      |
| `atlasdb.cluster`     | `Cluster` and `ClusterBuilder`                                  |
| `atlasdb.config`      | `Config`, the persisted node configuration                      |
| `atlasdb.command`     | `ClusterCommand` and `CommandKind`                              |
| `atlasdb.bus`         | `CommandBus`, a bounded asynchronous job queue                  |
| `atlasdb.scheduler`   | `Scheduler` and `spawn_scheduler` for one-off and recurring commands |
| `atlasdb.bootstrap`   | `init`, `load_env`, `get_local_ip`                              |

Install with the test extra to run the test suite:

```
pip install .[test]
pytest
```

## A local graph

```python
from atlasdb.graph import Edge, Graph, Vertex

graph = Graph()
graph.add_vertex(Vertex("a", "City").with_property("name", "Alpha"))
graph.add_vertex(Vertex("b", "City"))
graph.add_edge(Edge("a", "b", "road"))

[v.id for v in graph.neighbors_of("a")]   # ['b']
graph.print_graph()
```

Adding a vertex whose id already exists replaces the old one.
`neighbors_of` follows outgoing edges only and skips targets that are not
vertices of the graph.

## Storage and audit files

```python
from atlasdb.ids import NodeId
from atlasdb.storage import Storage, load_audit, save_audit
from atlasdb.vote import ConsensusResult, Vote

store = Storage()
store.log_vote("p1", NodeId("n1"), Vote.YES)
store.log_result("p1", ConsensusResult(approved=True, votes_received=1, proposal_id="p1"))

save_audit("audit.json", store.to_audit())
restored = Storage()
restored.apply_audit(load_audit("audit.json"))
```

Audit files are pretty-printed JSON holding the proposals, the votes per
proposal and node, and the final results. `load_audit` raises
`StorageError` when the file does not hold valid audit data.

## Signing

`SimpleAuthenticator` produces a 64-character hexadecimal signature of a
message followed by the authenticator's key. Its digest (`mock_digest32`)
is a mixing function for tests and demonstrations; it is **not**
cryptographic.

```python
from atlasdb.auth import SimpleAuthenticator

auth = SimpleAuthenticator(b"placeholder")
password = "password"
signature = auth.sign(b"hello", password)   # 64 ASCII hex bytes
auth.verify(b"hello", signature)            # True
```

A proposal's signature covers `Proposal.signing_bytes()` and a vote's
covers `VoteData.signing_bytes()`.

## Peers

`PeerManager` keeps every known peer plus up to `max_active` active peers
and `max_reserve` reserve peers. Commands are plain objects passed to
`handle_command`, which returns a `PeerEvent`:

```python
from atlasdb.ids import NodeId
from atlasdb.node import Node
from atlasdb.peers import PeerManager, RegisterPeer, RotatePeers

peers = PeerManager(10, 5)
node = Node(NodeId("n1"), "10.0.0.2:50052", 20, 0.9)
peers.handle_command(RegisterPeer(NodeId("n1"), node))   # REGISTERED
peers.handle_command(RotatePeers())                      # NO_CHANGE
```

A new peer becomes active while there is room, then reserve; beyond that
it is only known. `RotatePeers` acts only when the active set is full: it
takes the reserve peers in order of reliability (then latency) and swaps
each one with the weakest active peer at that moment.

## Consensus

A proposal is approved when its "yes" votes reach
`ceil(active_peers * quorum_ratio)`. `ConsensusEngine` holds the pool of
proposals and the vote registry and only accepts votes from active peers.
`AtlasEnv` wraps an engine together with the graph and the storage;
`AtlasEnv.evaluate_all` records each result in storage, and
`AtlasEnv.apply_if_approved` adds an edge to the graph when an approved
proposal's JSON content reads
`{"action": "add_edge", "from": ..., "to": ..., "label": ...}`
(`label` defaults to `related_to`). An `AtlasEnv` created directly uses a
quorum ratio of `70.0`; one built by `EnvConfig.build_env` uses the
configured ratio.

## Running a cluster node

`bootstrap.init()` writes a starting `config.json` (port 50052, quorum
ratio 0.5, 10 active and 5 reserve peer slots, the address from
`get_local_ip()`); `Config.load_from_file` reads it back and
`Config.build_cluster_env` turns it into a `Cluster` bound to your
`NetworkAdapter` and `Authenticator`. `ClusterBuilder` builds a `Cluster`
from an environment, network, node id and authenticator.

Work is submitted to a cluster as `ClusterCommand`s through a
`CommandBus` (created inside a running event loop), which runs up to
`max_concurrency` commands at once with a 60-second limit each and keeps a
`JobInfo` record per job. `spawn_scheduler(bus)` starts a `Scheduler`
that hands due jobs to the bus, for example a heartbeat every few seconds:

```python
from atlasdb.command import ClusterCommand, CommandKind

scheduler.enqueue_every(5.0, 0.5, ClusterCommand(CommandKind.BROADCAST_HEARTBEAT))
```

The `COMMIT_PROPOSAL`, `REJECT_PROPOSAL`, `SYNC_STATE` and `GOSSIP_STATE`
commands are accepted and change nothing.

## What the package does not do

- It ships no network transport: there is no `NetworkAdapter`
  implementation and no server listening for other nodes. Incoming
  messages must be passed to `Cluster.handle_heartbeat`,
  `Cluster.handle_proposal` and `Cluster.handle_vote` by your own code.
  `Cluster.shutdown` only calls the `on_shutdown` hook you supply.
- It has no command-line program; everything is used as a library.
- State lives in memory and in the JSON files written by `save_audit`,
  `EnvConfig.save_to_file`, `Config.save_to_file` and
  `Cluster.save_state`; there is no database storage.