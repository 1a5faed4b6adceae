"""Bounded worker pool with per-task interruption tokens and a grace-period shutdown."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable

log = logging.getLogger("dispatch")


class WorkerPool:
    """
    Owns a ThreadPoolExecutor for the lifetime between start() and shutdown().

    Every task receives its own threading.Event; interrupt(future) sets it, and
    shutdown() sets all outstanding ones once the grace period runs out.
    """

    def __init__(self, max_workers: int = 2, shutdown_grace_seconds: float = 5.0, name: str = "dispatch") -> None:
        self.max_workers = max_workers
        self.shutdown_grace_seconds = shutdown_grace_seconds
        self.name = name
        self._executor: ThreadPoolExecutor | None = None
        self._tokens: dict[Future, threading.Event] = {}
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._executor is not None

    def start(self) -> "WorkerPool":
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix=self.name)
                log.info("worker pool started (%s workers)", self.max_workers)
        return self

    def submit(self, fn: Callable[[threading.Event], Any]) -> Future:
        token = threading.Event()
        with self._lock:
            if self._executor is None:
                raise RuntimeError("worker pool is not running")
            future = self._executor.submit(fn, token)
            self._tokens[future] = token
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._tokens.pop(future, None)

    def interrupt(self, future: Future) -> bool:
        with self._lock:
            token = self._tokens.get(future)
        if token is None or future.done():
            return False
        token.set()
        return True

    def shutdown(self) -> bool:
        """Drain within the grace period; returns False if tasks had to be interrupted."""
        with self._lock:
            executor = self._executor
            self._executor = None
            pending = list(self._tokens)
        if executor is None:
            return True
        executor.shutdown(wait=False)
        _, not_done = wait(pending, timeout=self.shutdown_grace_seconds)
        if not not_done:
            log.info("worker pool drained")
            return True
        log.warning("worker pool: %s task(s) still running after %.1fs, interrupting", len(not_done), self.shutdown_grace_seconds)
        # cancel queued work first so no worker picks it up once the running tasks are released
        executor.shutdown(wait=False, cancel_futures=True)
        with self._lock:
            tokens = list(self._tokens.values())
        for token in tokens:
            token.set()
        return False

    def __enter__(self) -> "WorkerPool":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.shutdown()
