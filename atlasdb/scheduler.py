"""Delayed and recurring commands fed into a command bus."""

from __future__ import annotations

import asyncio
import random
import time
import uuid
from dataclasses import dataclass
from enum import Enum

from atlasdb.bus import CommandBus
from atlasdb.command import ClusterCommand
from atlasdb.errors import AtlasError

TICK_INTERVAL = 0.2


class JobKind(Enum):
    ONE_OFF = "one_off"
    FIXED_INTERVAL = "fixed_interval"


@dataclass
class ScheduleSpec:
    """How a job repeats; intervals and jitter are in seconds."""

    kind: JobKind
    max_retries: int = 0
    backoff_base: float = 0.0
    interval: float | None = None
    jitter: float | None = None

    def __post_init__(self) -> None:
        if self.kind is JobKind.FIXED_INTERVAL and self.interval is None:
            raise ValueError("a fixed-interval job needs an interval")


@dataclass
class ScheduledJob:
    """A command waiting for its next run time (monotonic clock)."""

    id: uuid.UUID
    cmd: ClusterCommand
    spec: ScheduleSpec
    next_run: float
    active: bool = True
    retries: int = 0

    def bump_next_run(self) -> None:
        """Deactivate a one-off job, or move a recurring one to its next run."""
        if self.spec.kind is JobKind.ONE_OFF:
            self.active = False
            return
        next_run = time.monotonic() + self.spec.interval
        if self.spec.jitter is not None:
            max_ms = int(self.spec.jitter * 1000)
            if max_ms > 0:
                next_run += random.randint(0, max_ms) / 1000
        self.next_run = next_run


def _check_duration(name: str, value: float) -> None:
    if value < 0:
        raise ValueError(f"{name} must not be negative")


class Scheduler:
    """Keeps scheduled jobs; :func:`spawn_scheduler` runs them."""

    def __init__(self) -> None:
        self.jobs: dict[uuid.UUID, ScheduledJob] = {}
        self._runner: asyncio.Task[None] | None = None

    def enqueue_once(self, cmd: ClusterCommand) -> uuid.UUID:
        return self.enqueue_after(0.0, cmd)

    def enqueue_after(self, delay: float, cmd: ClusterCommand) -> uuid.UUID:
        """Run a command once, ``delay`` seconds from now."""
        _check_duration("delay", delay)
        job_id = uuid.uuid4()
        self.jobs[job_id] = ScheduledJob(
            id=job_id,
            cmd=cmd,
            spec=ScheduleSpec(JobKind.ONE_OFF, max_retries=0, backoff_base=0.0),
            next_run=time.monotonic() + delay,
        )
        return job_id

    def enqueue_every(
        self, interval: float, jitter: float | None, cmd: ClusterCommand
    ) -> uuid.UUID:
        """Run a command every ``interval`` seconds, plus up to ``jitter`` seconds."""
        _check_duration("interval", interval)
        if jitter is not None:
            _check_duration("jitter", jitter)
        job_id = uuid.uuid4()
        self.jobs[job_id] = ScheduledJob(
            id=job_id,
            cmd=cmd,
            spec=ScheduleSpec(
                JobKind.FIXED_INTERVAL,
                max_retries=0,
                backoff_base=1.0,
                interval=interval,
                jitter=jitter,
            ),
            next_run=time.monotonic() + interval,
        )
        return job_id

    def cancel(self, job_id: uuid.UUID) -> bool:
        job = self.jobs.get(job_id)
        if job is None:
            return False
        job.active = False
        return True

    def update_interval(
        self, job_id: uuid.UUID, new_interval: float, new_jitter: float | None
    ) -> bool:
        """Change the period of a recurring job; False for unknown or one-off jobs."""
        job = self.jobs.get(job_id)
        if job is None or job.spec.kind is not JobKind.FIXED_INTERVAL:
            return False
        _check_duration("interval", new_interval)
        job.spec.interval = new_interval
        job.spec.jitter = new_jitter
        job.next_run = time.monotonic() + new_interval
        return True

    def _take_due(self) -> list[ScheduledJob]:
        now = time.monotonic()
        due_ids = [
            job_id
            for job_id, job in self.jobs.items()
            if job.active and now >= job.next_run
        ]
        return [self.jobs.pop(job_id) for job_id in due_ids]

    def _reinsert(self, job: ScheduledJob) -> None:
        self.jobs[job.id] = job


async def _submit(bus: CommandBus, cmd: ClusterCommand) -> None:
    try:
        await bus.enqueue(cmd)
    except AtlasError:
        pass


def spawn_scheduler(bus: CommandBus) -> Scheduler:
    """Start a scheduler that hands due jobs to ``bus`` until the bus closes."""
    scheduler = Scheduler()
    loop = asyncio.get_running_loop()
    submissions: set[asyncio.Task[None]] = set()

    async def run() -> None:
        while not bus.closed:
            for job in scheduler._take_due():
                task = loop.create_task(_submit(bus, job.cmd))
                submissions.add(task)
                task.add_done_callback(submissions.discard)
                job.bump_next_run()
                if job.active:
                    scheduler._reinsert(job)
            await asyncio.sleep(TICK_INTERVAL)

    scheduler._runner = loop.create_task(run())
    return scheduler