"""
=============================================================================
THREAD POOL
=============================================================================

A bounded group of worker threads pulling connection-handling tasks from a
bounded queue.

=============================================================================
WHY NOT A THREAD (OR PROCESS) PER CONNECTION?
=============================================================================

    for conn in accept_connections():
        Thread(target=handle, args=(conn,)).start()

Spawning one unit per connection has no upper bound. A connection flood
becomes a thread flood, and each thread carries its own stack. Forking is
worse still. A pool caps the damage:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop ──submit──►  [ task queue (bounded) ]                  │
    │                                 │      │      │                      │
    │                                 ▼      ▼      ▼                      │
    │                             Worker  Worker  Worker  (min..max)       │
    │                                                                      │
    │   queue full?  submit() returns False at once; the accept loop       │
    │                answers 503 and moves on. It never blocks.            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SCALING AND SHUTDOWN
=============================================================================

    start()      creates min_workers threads
    submit()     adds a worker (up to max_workers) when every worker is
                 busy and tasks are waiting
    shutdown()   optionally waits for the queue to drain, hands whatever is
                 still queued to on_discard, then puts one None
                 ("poison pill") per worker on the queue

Workers never share per-connection state. Each task owns its connection
from the moment it is dequeued until it returns.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A deferred function call: ``func(*args, **kwargs)``.

    Attributes:
        func: The function to execute.
        args: Positional arguments.
        kwargs: Keyword arguments.
        submitted_at: Enqueue time, for queue-wait logging.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that executes tasks from the shared queue.

        1. Wait for a task (with idle_timeout so shutdown is noticed)
        2. None means stop
        3. Run the task; log and swallow its exception so the worker survives
        4. task_done(), back to 1
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 1.0):
        # daemon=True: a stuck worker does not keep the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        waited = start_time - task.submitted_at
        if waited > 1.0:
            logger.debug(f"Worker {self.worker_id} picked up task after {waited:.2f}s in queue")

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s")
        except Exception as e:
            # One bad connection must not take the worker down with it
            self.tasks_failed += 1
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Signal the worker to stop after its current task."""
        self._shutdown.set()


class ThreadPool:
    """
    Bounded thread pool.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)
        pool.start()

        if not pool.submit(handle, args=(conn,)):
            reject(conn)            # queue full

        pool.shutdown(wait=True, timeout=30.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0,
        on_discard: Optional[Callable[[Task], None]] = None
    ):
        """
        Args:
            min_workers: Workers created at start().
            max_workers: Hard cap on workers.
            queue_size: Maximum tasks waiting for a worker.
            idle_timeout: How often idle workers check for shutdown.
            on_discard: Called with each task still queued when shutdown()
                        gives up on it, so its resources can be released.
        """
        if min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if max_workers < min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout
        self.on_discard = on_discard

        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue(maxsize=queue_size)

        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # Protects _workers
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutdown

    def start(self):
        """Create the minimum number of workers. Idempotent."""
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers (max {self.max_workers})")

        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()

        self._shutdown = False
        self._started = True

    def _add_worker(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout,
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> bool:
        """
        Queue a task without blocking.

        Returns:
            True if the task was queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        try:
            self._task_queue.put_nowait(task)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add a worker when every worker is busy and tasks are waiting."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return

            busy = sum(1 for w in self._workers if w.state == WorkerState.BUSY)
            if busy == len(self._workers) and self._task_queue.qsize() > 0:
                logger.debug(f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers")
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Wait for queued tasks to finish before stopping workers.
            timeout: Upper bound on that wait, in seconds.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while self._task_queue.unfinished_tasks:
                if deadline and time.time() > deadline:
                    logger.warning("Thread pool shutdown timeout, abandoning queued tasks")
                    break
                time.sleep(0.05)

        discarded = self._discard_queued()
        if discarded:
            logger.info(f"Discarded {discarded} queued task(s)")

        # Poison pills; a full queue means workers exit via the shutdown flag
        for worker in self._workers:
            worker.shutdown()
            try:
                self._task_queue.put_nowait(None)
            except queue.Full:
                pass

        for worker in self._workers:
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()
        self._started = False

        logger.info("Thread pool shutdown complete")

    def _discard_queued(self) -> int:
        """Empty the queue, passing each task to on_discard. Returns the count."""
        discarded = 0

        while True:
            try:
                task = self._task_queue.get_nowait()
            except queue.Empty:
                return discarded

            try:
                if task is not None:
                    discarded += 1
                    if self.on_discard:
                        self.on_discard(task)
            except Exception as e:
                logger.exception(f"Discarding queued task failed: {e}")
            finally:
                self._task_queue.task_done()

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def queue_size(self) -> int:
        """Tasks currently waiting for a worker."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
            },
            "tasks": {
                "queued": self._task_queue.qsize(),
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
