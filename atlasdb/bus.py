"""Bounded job queue that runs cluster commands with limited concurrency."""

from __future__ import annotations

import asyncio
import dataclasses
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from atlasdb.command import ClusterCommand
from atlasdb.errors import AtlasError

if TYPE_CHECKING:
    from atlasdb.cluster import Cluster

JOB_TIMEOUT = 60.0


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ClusterConfig:
    queue_cap: int = 100
    max_concurrency: int = 5
    heartbeat_interval_s: int = 5
    heartbeat_timeout_s: int = 5


class JobStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class JobInfo:
    """Progress record of one enqueued command."""

    id: uuid.UUID
    description: str
    status: JobStatus = JobStatus.PENDING
    enqueued_at: datetime = dataclasses.field(default_factory=_now)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    err_msg: str | None = None


class QueueFullError(AtlasError):
    """A command could not be queued; the command is handed back."""

    template = "Command not enqueued: {detail}"

    def __init__(self, command: ClusterCommand, detail: str) -> None:
        self.command = command
        super().__init__(detail)


class CommandBus:
    """Queues commands and runs them against a cluster in the background.

    Must be created while an event loop is running.
    """

    def __init__(
        self,
        cluster: Cluster,
        queue_cap: int = 100,
        max_concurrency: int = 5,
        *,
        job_timeout: float = JOB_TIMEOUT,
    ) -> None:
        if queue_cap < 1:
            raise ValueError("queue_cap must be at least 1")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._cluster = cluster
        self._queue: asyncio.Queue[tuple[uuid.UUID, ClusterCommand]] = asyncio.Queue(
            maxsize=queue_cap
        )
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._jobs: dict[uuid.UUID, JobInfo] = {}
        self._job_timeout = job_timeout
        self._running: set[asyncio.Task[None]] = set()
        self._closed = False
        self._dispatcher = asyncio.get_running_loop().create_task(self._dispatch())

    @property
    def closed(self) -> bool:
        return self._closed

    def _register(self, cmd: ClusterCommand) -> uuid.UUID:
        job_id = uuid.uuid4()
        self._jobs[job_id] = JobInfo(job_id, repr(cmd))
        return job_id

    def _finish(self, job_id: uuid.UUID, status: JobStatus, err: str | None = None) -> None:
        info = self._jobs.get(job_id)
        if info is not None:
            info.status = status
            info.finished_at = _now()
            info.err_msg = err

    async def _dispatch(self) -> None:
        while True:
            job_id, cmd = await self._queue.get()
            await self._semaphore.acquire()
            info = self._jobs.get(job_id)
            if info is not None:
                info.status = JobStatus.RUNNING
                info.started_at = _now()
            task = asyncio.get_running_loop().create_task(self._run(job_id, cmd))
            self._running.add(task)
            task.add_done_callback(self._running.discard)

    async def _run(self, job_id: uuid.UUID, cmd: ClusterCommand) -> None:
        try:
            await asyncio.wait_for(cmd.execute(self._cluster), self._job_timeout)
        except asyncio.TimeoutError:
            self._finish(
                job_id,
                JobStatus.TIMED_OUT,
                f"Job {job_id} timeout ({self._job_timeout:g}s)",
            )
        except asyncio.CancelledError:
            self._finish(job_id, JobStatus.FAILED, "Command bus closed")
            raise
        except Exception as exc:
            self._finish(job_id, JobStatus.FAILED, str(exc))
        else:
            self._finish(job_id, JobStatus.COMPLETED)
        finally:
            self._semaphore.release()

    async def enqueue(self, cmd: ClusterCommand) -> uuid.UUID:
        """Queue a command, waiting for room; return its job id."""
        job_id = self._register(cmd)
        if self._closed:
            del self._jobs[job_id]
            raise AtlasError("enqueue failed: command bus is closed")
        await self._queue.put((job_id, cmd))
        return job_id

    def try_enqueue(self, cmd: ClusterCommand) -> uuid.UUID:
        """Queue a command without waiting; raise QueueFullError when it cannot."""
        job_id = self._register(cmd)
        if self._closed:
            del self._jobs[job_id]
            raise QueueFullError(cmd, "command bus is closed")
        try:
            self._queue.put_nowait((job_id, cmd))
        except asyncio.QueueFull:
            del self._jobs[job_id]
            raise QueueFullError(cmd, "queue is full") from None
        return job_id

    def list_jobs(self) -> list[JobInfo]:
        return [dataclasses.replace(info) for info in self._jobs.values()]

    def list_pending_jobs(self) -> list[JobInfo]:
        return [
            dataclasses.replace(info)
            for info in self._jobs.values()
            if info.status is JobStatus.PENDING
        ]

    async def close(self) -> None:
        """Stop taking jobs and cancel the ones still running."""
        if self._closed:
            return
        self._closed = True
        tasks = [self._dispatcher, *self._running]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)