"""Asynchronous runtime that applies game events to a session one at a time."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from geocoins.models import Cell, Point
from geocoins.session import Direction, GameSession


class EventKind(str, Enum):
    """Triggers that may mutate session state."""

    MOVE = "move"
    STEP = "step"
    POSITION = "position"
    COLLECT = "collect"
    DEPOSIT = "deposit"
    RESET = "reset"


class EventJobStatus(str, Enum):
    """Lifecycle states for submitted events."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class EventJob:
    """Represents event execution state and its result."""

    id: str
    kind: EventKind
    args: dict[str, Any]
    submitted_at: datetime
    status: EventJobStatus
    result: Any = None
    error: str | None = None
    finished_at: datetime | None = field(default=None)


class EventRuntime:
    """Queue-backed runtime; a single worker runs each event handler to completion."""

    def __init__(
        self,
        session: GameSession,
        *,
        shutdown_timeout_seconds: float = 5.0,
        max_queue_size: int = 1_000,
        logger: logging.Logger | None = None,
    ) -> None:
        self._session = session
        self._shutdown_timeout_seconds = shutdown_timeout_seconds
        self._logger = logger or logging.getLogger("geocoins.event_runtime")

        self._jobs: dict[str, EventJob] = {}
        self._history: deque[EventJob] = deque(maxlen=max_queue_size)
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_queue_size)
        self._worker_task: asyncio.Task[None] | None = None

    @property
    def session(self) -> GameSession:
        return self._session

    async def start(self) -> None:
        """Start the worker loop once for this runtime."""
        if self._worker_task and not self._worker_task.done():
            return

        if not self._session.started:
            self._session.start()
        self._worker_task = asyncio.create_task(self._worker_loop(), name="event-runtime-worker")
        self._logger.info("event_runtime_started", extra={"queue_maxsize": self._queue.maxsize})

    async def stop(self) -> bool:
        """Drain queued events, stop the worker and write the session snapshot.

        Returns ``False`` if the session was never started (nothing is written)
        or if the snapshot write did not finish within the shutdown timeout;
        the write is not rolled back.
        """
        if self._worker_task:
            await self._queue.join()
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
            finally:
                self._worker_task = None

        if not self._session.started:
            self._logger.info("event_runtime_stopped_unstarted")
            return False

        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._session.shutdown),
                timeout=self._shutdown_timeout_seconds,
            )
        except asyncio.TimeoutError:
            self._logger.warning("snapshot_write_timeout", extra={"timeout": self._shutdown_timeout_seconds})
            return False

        self._logger.info("event_runtime_stopped")
        return True

    def submit(self, kind: EventKind | str, **args: Any) -> str:
        """Queue an event and return the associated job id."""
        job_id = uuid4().hex
        job = EventJob(
            id=job_id,
            kind=EventKind(kind),
            args=args,
            submitted_at=datetime.now(timezone.utc),
            status=EventJobStatus.QUEUED,
        )
        self._jobs[job_id] = job
        self._queue.put_nowait(job_id)
        self._logger.debug(
            "event_submitted",
            extra={"job_id": job_id, "kind": job.kind.value, "queue_size": self._queue.qsize()},
        )
        return job_id

    def on_position(self, point: Point) -> str:
        """Callback for a location sensor; updates are queued like any other event."""
        return self.submit(EventKind.POSITION, point=point)

    def get_job(self, job_id: str) -> EventJob:
        """Return job state for the given id."""
        if job_id not in self._jobs:
            raise KeyError(f"Unknown event job id: {job_id}")
        return self._jobs[job_id]

    def list_recent_jobs(self, limit: int = 20) -> list[EventJob]:
        return list(self._history)[:limit]

    async def join(self) -> None:
        await self._queue.join()

    async def _worker_loop(self) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                self._execute_job(job_id)
            finally:
                self._queue.task_done()

    def _execute_job(self, job_id: str) -> None:
        job = self._jobs[job_id]
        job.status = EventJobStatus.RUNNING
        try:
            job.result = self._dispatch(job.kind, job.args)
            job.status = EventJobStatus.SUCCEEDED
        except Exception as exc:  # noqa: BLE001 - runtime should capture handler failures.
            job.error = f"{type(exc).__name__}: {exc}"
            job.status = EventJobStatus.FAILED
            self._logger.exception("event_failed", extra={"job_id": job.id, "kind": job.kind.value})
        job.finished_at = datetime.now(timezone.utc)
        self._history.appendleft(job)

    def _dispatch(self, kind: EventKind, args: dict[str, Any]) -> Any:
        session = self._session
        if kind is EventKind.MOVE:
            return session.move_to(args["point"])
        if kind is EventKind.POSITION:
            return session.on_position(args["point"])
        if kind is EventKind.STEP:
            return session.step(Direction(args["direction"]))
        if kind is EventKind.COLLECT:
            return session.collect(self._cell(args), args.get("index", 0))
        if kind is EventKind.DEPOSIT:
            return session.deposit(self._cell(args))
        if kind is EventKind.RESET:
            return session.reset()
        raise ValueError(f"Unsupported event kind: {kind}")

    def _cell(self, args: dict[str, Any]) -> Cell:
        cell = args.get("cell")
        if isinstance(cell, Cell):
            return self._session.board.canonical_cell_for((cell.x, cell.y))
        return self._session.board.canonical_cell_for((args["x"], args["y"]))
