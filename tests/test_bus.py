import asyncio
import time
from contextlib import asynccontextmanager

import pytest

from atlasdb.auth import SimpleAuthenticator
from atlasdb.bus import CommandBus, JobStatus, QueueFullError
from atlasdb.cluster import Cluster
from atlasdb.command import ClusterCommand, CommandKind
from atlasdb.env import AtlasEnv
from atlasdb.errors import AtlasError, SendError
from atlasdb.ids import NodeId
from atlasdb.network import Heartbeat, NetworkAdapter
from atlasdb.node import Node
from atlasdb.peers import PeerManager


class FakeNetwork(NetworkAdapter):
    def __init__(self, delay=0.0, fail=False):
        self.delay = delay
        self.fail = fail
        self.handler = None

    def address(self):
        return "127.0.0.1:50052"

    async def broadcast(self, msg):
        return None

    async def send_to(self, target, msg):
        return msg

    async def send_votes(self, target, votes):
        return None

    async def send_proposal(self, target, proposal):
        return None

    def set_message_handler(self, handler):
        self.handler = handler

    async def send_heartbeat(self, sender, receiver):
        await asyncio.sleep(self.delay)
        if self.fail:
            raise SendError("unreachable")
        return Heartbeat(sender, receiver.id, sender, 0)


def make_cluster(network=None):
    network = network or FakeNetwork()
    env = AtlasEnv(network, lambda _result: None, PeerManager(10, 5))
    cluster = Cluster(env, network, NodeId("local"), SimpleAuthenticator(b"secret"))
    cluster.add_node(NodeId("peer-1"), Node(NodeId("peer-1"), "127.0.0.1:6000", 10, 0.9))
    return cluster


@asynccontextmanager
async def running_bus(network=None, **kwargs):
    bus = CommandBus(make_cluster(network), **kwargs)
    try:
        yield bus
    finally:
        await bus.close()


async def wait_for_status(bus, job_id, statuses, limit=3.0):
    deadline = time.monotonic() + limit
    while time.monotonic() < deadline:
        for info in bus.list_jobs():
            if info.id == job_id and info.status in statuses:
                return info
        await asyncio.sleep(0.01)
    raise AssertionError("job did not reach the expected status")


EVALUATE = ClusterCommand(CommandKind.EVALUATE_PROPOSALS)
HEARTBEAT = ClusterCommand(CommandKind.BROADCAST_HEARTBEAT)


@pytest.mark.asyncio
async def test_job_completes():
    async with running_bus() as bus:
        job_id = await bus.enqueue(EVALUATE)
        info = await wait_for_status(bus, job_id, {JobStatus.COMPLETED})
        assert info.err_msg is None
        assert info.started_at is not None
        assert info.finished_at >= info.started_at
        assert "EVALUATE_PROPOSALS" in info.description


@pytest.mark.asyncio
async def test_job_failure_is_recorded():
    async with running_bus(FakeNetwork(fail=True)) as bus:
        job_id = await bus.enqueue(HEARTBEAT)
        info = await wait_for_status(bus, job_id, {JobStatus.FAILED})
        assert "Some heartbeats failed" in info.err_msg


@pytest.mark.asyncio
async def test_job_timeout_is_recorded():
    async with running_bus(FakeNetwork(delay=1.0), job_timeout=0.05) as bus:
        job_id = await bus.enqueue(HEARTBEAT)
        info = await wait_for_status(bus, job_id, {JobStatus.TIMED_OUT})
        assert str(job_id) in info.err_msg
        assert "timeout" in info.err_msg


@pytest.mark.asyncio
async def test_try_enqueue_full_queue_rolls_back():
    async with running_bus(queue_cap=1) as bus:
        first = bus.try_enqueue(EVALUATE)
        with pytest.raises(QueueFullError) as excinfo:
            bus.try_enqueue(HEARTBEAT)
        assert excinfo.value.command is HEARTBEAT
        assert [info.id for info in bus.list_jobs()] == [first]


@pytest.mark.asyncio
async def test_second_job_waits_for_concurrency_slot():
    async with running_bus(FakeNetwork(delay=0.5), max_concurrency=1) as bus:
        slow = await bus.enqueue(HEARTBEAT)
        queued = await bus.enqueue(EVALUATE)
        await wait_for_status(bus, slow, {JobStatus.RUNNING})
        assert queued in {info.id for info in bus.list_pending_jobs()}
        info = await wait_for_status(bus, queued, {JobStatus.COMPLETED})
        assert info.status is JobStatus.COMPLETED


@pytest.mark.asyncio
async def test_closed_bus_rejects_commands():
    bus = CommandBus(make_cluster())
    await bus.close()
    assert bus.closed
    with pytest.raises(AtlasError):
        await bus.enqueue(EVALUATE)
    with pytest.raises(QueueFullError):
        bus.try_enqueue(EVALUATE)
    assert bus.list_jobs() == []


@pytest.mark.asyncio
async def test_invalid_capacity():
    with pytest.raises(ValueError):
        CommandBus(make_cluster(), queue_cap=0)