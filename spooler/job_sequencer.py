"""
Print job sequencer

Single authoritative owner of the pending job queue.

Goals:
- Any number of threads may submit; prints happen strictly one at a time, FIFO
- submit() never waits for the printer; each caller gets its own Future
- One job's failure is delivered to that job only, the next job still runs
- clear() drops queued jobs without touching the one being printed

The queue and the "dispatching" flag belong to one worker thread. Other threads
talk to it only through the inbox, so a submit that lands while the queue is
draining is always picked up.
"""

import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum, auto
from queue import Queue
from typing import Callable, Deque, Optional

from spooler.errors import QueueClearedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Job:
    payload: str
    handle: Future


class MessageType(Enum):
    SUBMIT = auto()
    CLEAR = auto()
    DONE = auto()
    STOP = auto()


class Message:
    def __init__(
            self,
            message_type: MessageType,
            job: Optional[Job] = None,
            outcome: Optional[Future] = None,
            reply: Optional[Future] = None,
    ):
        self.message_type = message_type
        self.job = job
        self.outcome = outcome
        self.reply = reply


class JobSequencer:
    def __init__(self, print_function: Callable[[str], None]):
        self._print_function = print_function

        self._inbox: Queue = Queue()
        self._lifecycle_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

        # Owned by the worker thread
        self._pending: Deque[Job] = deque()
        self._in_flight: Optional[Job] = None
        self._dispatching = False
        self._stopping = False

        # At most one print call is ever running
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="print-dispatch")

    # ---------- Public API ----------

    def submit(self, payload: str) -> Future:
        if not isinstance(payload, str) or not payload.strip():
            raise ValueError("Print data cannot be empty")

        handle: Future = Future()
        # Jobs cannot be cancelled once submitted.
        handle.set_running_or_notify_cancel()

        with self._lifecycle_lock:
            if self._closed:
                raise RuntimeError("Job sequencer is closed")
            self._start_worker()
            self._inbox.put(Message(MessageType.SUBMIT, job=Job(payload, handle)))

        return handle

    def clear(self) -> int:
        """Reject every queued job with QueueClearedError. Returns how many were dropped."""
        if threading.current_thread() is self._thread:
            return self._reject_pending()

        reply: Future = Future()
        with self._lifecycle_lock:
            if self._thread is None or self._closed:
                return 0
            self._inbox.put(Message(MessageType.CLEAR, reply=reply))
        return reply.result()

    def close(self, timeout: Optional[float] = None) -> None:
        """
        Stop the worker once the in-flight job (if any) has finished.

        Jobs still queued are rejected with QueueClearedError.
        """
        with self._lifecycle_lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
            if thread is None:
                self._executor.shutdown(wait=False)
                return
            self._inbox.put(Message(MessageType.STOP))

        if thread is not threading.current_thread():
            thread.join(timeout)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_dispatching(self) -> bool:
        return self._dispatching

    # ---------- Worker ----------

    def _start_worker(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="print-sequencer", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while True:
            message = self._inbox.get()
            try:
                self._handle_message(message)
                self._dispatch_next()
            except Exception:
                # Keep the worker alive; one bad message must not strand the queue.
                logger.exception("Job sequencer error")

            if self._stopping and self._in_flight is None:
                break

        self._dispatching = False
        self._executor.shutdown(wait=False)

    def _handle_message(self, message: Message) -> None:
        if message.message_type == MessageType.SUBMIT:
            self._pending.append(message.job)
            logger.debug("Print job queued (%d waiting)", len(self._pending))

        elif message.message_type == MessageType.CLEAR:
            message.reply.set_result(self._reject_pending())

        elif message.message_type == MessageType.DONE:
            self._in_flight = None
            self._complete(message.job, message.outcome)

        elif message.message_type == MessageType.STOP:
            self._stopping = True
            self._reject_pending("Print queue was shut down")

    def _dispatch_next(self) -> None:
        if self._in_flight is not None:
            return

        if not self._pending or self._stopping:
            self._dispatching = False
            return

        job = self._pending.popleft()
        self._in_flight = job
        self._dispatching = True
        logger.info("Processing print job (%d jobs remaining in queue)", len(self._pending))

        outcome = self._executor.submit(self._print_function, job.payload)
        outcome.add_done_callback(
            lambda f, job=job: self._inbox.put(Message(MessageType.DONE, job=job, outcome=f))
        )

    def _complete(self, job: Job, outcome: Future) -> None:
        # Callbacks on the caller's handle run here, on the worker thread.
        error = outcome.exception()
        if error is None:
            logger.info("Print job completed")
            job.handle.set_result(None)
        else:
            logger.error("Print job failed: %s", error)
            job.handle.set_exception(error)

    def _reject_pending(self, reason: Optional[str] = None) -> int:
        jobs = list(self._pending)
        self._pending.clear()
        for job in jobs:
            error = QueueClearedError(reason) if reason else QueueClearedError()
            job.handle.set_exception(error)
        if jobs:
            logger.info("Rejected %d queued print jobs", len(jobs))
        return len(jobs)
