"""Process supervisor — keep N worker processes alive.

In clustered mode the first process becomes the coordinator. It forks
one worker per CPU (or the configured count), never serves requests
itself, and replaces every worker that exits so the pool stays at its
target size.

Usage::

    supervisor = Supervisor(run_worker_target, workers=4)
    supervisor.run()  # blocks until SIGINT/SIGTERM

``process_factory`` and ``wait`` are injectable so the restart logic can
be exercised without forking.
"""

from __future__ import annotations

import logging
import multiprocessing
import os
import signal
import threading
import time
from collections.abc import Callable, Sequence
from enum import Enum
from multiprocessing.connection import wait as wait_sentinels
from typing import Any, Protocol

from warbler.errors import ErrorKind

logger = logging.getLogger("warbler.supervisor")


class Role(Enum):
    COORDINATOR = "coordinator"
    WORKER = "worker"


_role = Role.WORKER


def current_role() -> Role:
    """Role of this process. A process that was never supervised is a worker."""
    return _role


class WorkerProcess(Protocol):
    """The slice of ``multiprocessing.Process`` the supervisor uses."""

    @property
    def pid(self) -> int | None: ...

    @property
    def exitcode(self) -> int | None: ...

    @property
    def sentinel(self) -> int: ...

    def start(self) -> None: ...

    def is_alive(self) -> bool: ...

    def terminate(self) -> None: ...

    def join(self, timeout: float | None = None) -> None: ...


type ProcessFactory = Callable[[Callable[[], None]], WorkerProcess]
type Waiter = Callable[[Sequence[WorkerProcess], float | None], list[WorkerProcess]]


def _enter_worker(target: Callable[[], None]) -> None:
    global _role
    _role = Role.WORKER
    # The coordinator's handlers must not run in the child
    signal.signal(signal.SIGTERM, signal.SIG_DFL)
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    target()


def fork_process(target: Callable[[], None]) -> WorkerProcess:
    """Default factory: a forked ``multiprocessing.Process``.

    Fork keeps the already-imported app in the child; platforms without
    fork fall back to the default start method.
    """
    methods = multiprocessing.get_all_start_methods()
    ctx = multiprocessing.get_context("fork" if "fork" in methods else None)
    return ctx.Process(target=_enter_worker, args=(target,), name="warbler-worker")


def wait_for_exit(processes: Sequence[WorkerProcess], timeout: float | None) -> list[WorkerProcess]:
    """Block until at least one process exits or *timeout* passes."""
    if not processes:
        if timeout:
            time.sleep(timeout)
        return []
    ready = wait_sentinels([p.sentinel for p in processes], timeout)
    return [p for p in processes if p.sentinel in ready]


class Supervisor:
    """Fork ``workers`` processes running *target* and keep that many alive.

    Args:
        target: Zero-argument callable each worker runs (normally
            ``run_worker`` bound to the app).
        workers: Target pool size; ``None`` or 0 means ``os.cpu_count()``.
        restart_delay: Seconds to pause before replacing a dead worker.
        process_factory: Creates an unstarted worker process.
        wait: Returns the processes that exited within a timeout.
        sleep: Used for ``restart_delay``.
    """

    __slots__ = (
        "_factory",
        "_lock",
        "_sleep",
        "_stopping",
        "_target",
        "_wait",
        "_workers",
        "restart_delay",
        "size",
    )

    def __init__(
        self,
        target: Callable[[], None],
        workers: int | None = None,
        *,
        restart_delay: float = 0.0,
        process_factory: ProcessFactory = fork_process,
        wait: Waiter = wait_for_exit,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> None:
        self._target = target
        self.size = workers or os.cpu_count() or 1
        self.restart_delay = restart_delay
        self._factory = process_factory
        self._wait = wait
        self._sleep = sleep
        self._workers: list[WorkerProcess] = []
        self._stopping = threading.Event()
        self._lock = threading.Lock()

    @property
    def workers(self) -> list[WorkerProcess]:
        """Currently supervised processes (a copy)."""
        with self._lock:
            return list(self._workers)

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    def _spawn(self) -> WorkerProcess:
        process = self._factory(self._target)
        process.start()
        with self._lock:
            self._workers.append(process)
        logger.info("worker %s started", process.pid)
        return process

    def start(self) -> None:
        """Fork workers until the pool is at its target size."""
        global _role
        _role = Role.COORDINATOR
        logger.info("coordinator %d starting %d workers", os.getpid(), self.size)
        while len(self.workers) < self.size and not self.stopping:
            self._spawn()

    def reap(self, timeout: float | None = None) -> list[WorkerProcess]:
        """Wait up to *timeout* for exits; replace every worker that died.

        Returns the processes that were reaped.
        """
        current = self.workers
        exited = self._wait(current, timeout)
        dead = [p for p in current if p in exited or not p.is_alive()]

        for process in dead:
            process.join(0)
            with self._lock:
                if process in self._workers:
                    self._workers.remove(process)
            if self.stopping:
                continue
            logger.warning(
                "worker %s died (exit code %s), restarting",
                process.pid,
                process.exitcode,
                extra={
                    "pid": process.pid,
                    "exitcode": process.exitcode,
                    "kind": ErrorKind.WORKER_CRASH.value,
                    "stage": "supervise",
                },
            )
            if self.restart_delay > 0:
                self._sleep(self.restart_delay)
            if not self.stopping:
                self._spawn()
        return dead

    def request_stop(self) -> None:
        """Ask ``run()`` to exit after the current reap."""
        self._stopping.set()

    def run(self, *, poll_interval: float = 1.0) -> None:
        """Start the pool and supervise it until stopped.

        SIGTERM and SIGINT stop the loop when called from the main thread.
        """
        previous: dict[int, Any] = {}
        if threading.current_thread() is threading.main_thread():
            for sig in (signal.SIGTERM, signal.SIGINT):
                previous[sig] = signal.signal(sig, lambda signum, frame: self.request_stop())

        self.start()
        try:
            while not self.stopping:
                self.reap(poll_interval)
        finally:
            self.stop()
            for sig, handler in previous.items():
                if handler is not None:
                    signal.signal(sig, handler)

    def stop(self, timeout: float = 5.0) -> None:
        """Terminate and join every worker."""
        self._stopping.set()
        workers = self.workers
        for process in workers:
            if process.is_alive():
                process.terminate()
        for process in workers:
            process.join(timeout)
        with self._lock:
            self._workers.clear()
        if workers:
            logger.info("coordinator %d stopped %d workers", os.getpid(), len(workers))
