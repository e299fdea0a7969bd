"""bounded worker pool that renders per-module report pages"""

import logging
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .core import ModuleSummary
from .render import write_profile_file

DEFAULT_JOBS = 4
# requests allowed to wait for a free worker before submit() blocks
HANDOFF_SLOTS = 1

_STOP = object()


@dataclass(frozen=True)
class RenderRequest:
    """everything a worker needs to produce one module page"""

    item: ModuleSummary
    output_path: Path
    source_path: Path


@dataclass
class RenderFailure:
    """a request that could not be rendered"""

    module: str
    output_path: Path
    error: Exception

    def __str__(self) -> str:
        return f"{self.module}: {self.error}"


def render_request(request: RenderRequest):
    """default renderer: annotate the source file and write the page"""
    write_profile_file(request.output_path, request.item, request.source_path)


class RenderDispatcher:
    """
    fixed pool of render workers fed through a bounded queue

    submit() blocks while every worker is busy and the handoff slot is taken,
    so the producer cannot run ahead of rendering. join() is the completion
    barrier: it returns once every submitted request has finished, whether it
    succeeded or failed. failures never stop other requests.
    """

    def __init__(
        self,
        jobs: int = DEFAULT_JOBS,
        render: Callable[[RenderRequest], object] = render_request,
        logger: Optional[logging.Logger] = None,
    ):
        if jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {jobs}")
        self.jobs = jobs
        self.logger = logger or logging.getLogger("covhtml")
        self._render = render
        self._queue: "queue.Queue" = queue.Queue(maxsize=HANDOFF_SLOTS)
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._failures: List[RenderFailure] = []
        self._dispatched = 0
        self._completed = 0
        self._workers: List[threading.Thread] = []
        self._closed = False

    def __enter__(self) -> "RenderDispatcher":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.cancel()
        self.close()

    def start(self):
        """spawn the worker threads"""
        if self._workers:
            return
        for i in range(self.jobs):
            worker = threading.Thread(
                target=self._work, name=f"render-worker-{i}", daemon=True
            )
            worker.start()
            self._workers.append(worker)

    def submit(self, request: RenderRequest):
        """
        hand a request to the pool, waiting for room if necessary

        the handoff queue holds HANDOFF_SLOTS (one) request, so the caller can
        run at most one request ahead of the busy workers before blocking.
        this is not a strict rendezvous: put() returns once the request is
        queued, not when a worker has picked it up.
        """
        if self._closed:
            raise RuntimeError("dispatcher is closed")
        if self._cancelled.is_set():
            raise RuntimeError("dispatcher was cancelled")
        if not self._workers:
            self.start()
        with self._lock:
            self._dispatched += 1
        self._queue.put(request)

    def join(self) -> List[RenderFailure]:
        """wait until every submitted request has completed"""
        self._queue.join()
        return self.failures

    def cancel(self):
        """drop queued requests and make workers skip anything not yet started"""
        self._cancelled.set()
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            self._finish_request()
            self._queue.task_done()

    def close(self):
        """stop the workers after they finish their current request"""
        if self._closed:
            return
        self._closed = True
        for _ in self._workers:
            self._queue.put(_STOP)
        for worker in self._workers:
            worker.join()
        self._workers = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def failures(self) -> List[RenderFailure]:
        with self._lock:
            return list(self._failures)

    @property
    def pending(self) -> int:
        """requests submitted but not yet completed"""
        with self._lock:
            return self._dispatched - self._completed

    def _finish_request(self):
        with self._lock:
            self._completed += 1

    def _work(self):
        while True:
            request = self._queue.get()
            try:
                if request is _STOP:
                    return
                if self._cancelled.is_set():
                    self.logger.debug("skipping %s after cancel", request.output_path)
                else:
                    self._process(request)
                self._finish_request()
            finally:
                self._queue.task_done()

    def _process(self, request: RenderRequest):
        self.logger.debug("worker: %s -> %s", request.item.module, request.output_path)
        try:
            self._render(request)
        except Exception as e:
            failure = RenderFailure(request.item.module, request.output_path, e)
            with self._lock:
                self._failures.append(failure)
            self.logger.warning("failed to render %s: %s", request.item.display_file, e)
