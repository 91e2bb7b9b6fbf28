"""Bounded worker pool for accepted client sockets."""

from __future__ import annotations

import queue
import threading
import time
from collections.abc import Callable

ClientAddress = tuple[str, int]
ClientJob = tuple[object, ClientAddress]
ClientHandler = Callable[[object, ClientAddress], None]


class ThreadPool:
    """Fixed-size set of worker threads fed from a bounded queue."""

    def __init__(
        self,
        worker_count: int,
        queue_size: int,
        handler: ClientHandler,
        *,
        reject: ClientHandler | None = None,
        name_prefix: str = "static-worker",
    ) -> None:
        if worker_count <= 0:
            raise ValueError("worker_count must be positive")
        if queue_size <= 0:
            raise ValueError("queue_size must be positive")

        self._handler = handler
        self._reject = reject
        self._queue: queue.Queue[ClientJob | None] = queue.Queue(maxsize=queue_size)
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []
        self._worker_count = worker_count
        self._name_prefix = name_prefix
        self._shutdown_lock = threading.Lock()
        self._shutdown_started = False

    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def threads(self) -> tuple[threading.Thread, ...]:
        return tuple(self._threads)

    def start(self) -> None:
        for index in range(self._worker_count):
            worker = threading.Thread(
                target=self._worker_loop,
                name=f"{self._name_prefix}-{index}",
                daemon=True,
            )
            self._threads.append(worker)
            worker.start()

    def submit(self, client_socket: object, address: ClientAddress) -> bool:
        """Queue a connection; False means the pool is stopping or full."""
        if self._stop_event.is_set():
            return False
        try:
            self._queue.put_nowait((client_socket, address))
        except queue.Full:
            return False
        return True

    def shutdown(self, timeout: float = 1.0) -> None:
        """Stop the workers, rejecting connections that never reached one.

        Jobs already picked up by a worker run to completion; ``timeout`` bounds
        the total wait for them.
        """
        with self._shutdown_lock:
            if self._shutdown_started:
                return
            self._shutdown_started = True

        self._stop_event.set()
        if self._reject is not None:
            for client_socket, address in self._drain_pending():
                self._reject(client_socket, address)

        for _ in self._threads:
            self._queue.put(None)

        deadline = time.monotonic() + timeout
        for thread in self._threads:
            thread.join(timeout=max(0.0, deadline - time.monotonic()))

    def _drain_pending(self) -> list[ClientJob]:
        pending: list[ClientJob] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return pending
            if item is not None:
                pending.append(item)
            self._queue.task_done()

    def _worker_loop(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                client_socket, address = item
                self._handler(client_socket, address)
            finally:
                self._queue.task_done()
