"""Bounded, cancellable execution of an action plan."""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, List, Sequence

from ..config import SyncOptions
from .actions import Action, action_path
from .events import ActionEvent, EventKind
from .reporting import Reporter

STOPPED_EARLY_NOTE = "Stopped early due to failures. (Use --keep-going to keep going.)"

# seconds between checks of the cancellation and closed flags
POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class SchedulerResult:
    enqueued_all: bool
    num_failed: int

    @property
    def ok(self) -> bool:
        return self.num_failed == 0


class Scheduler:
    """
    Runs actions on `options.jobs` worker threads.

    Actions are handed over one at a time through a queue of capacity one.
    When an action fails and keep_going is off, the cancellation event is set:
    the producer stops handing out actions, workers finish what they are
    running and exit, and the remaining actions are never started or reported.
    """

    def __init__(
        self,
        options: SyncOptions,
        execute: Callable[[Action], ActionEvent],
        reporter: Reporter,
    ):
        self.options = options
        self.execute = execute
        self.reporter = reporter
        self.logger = logging.getLogger('repotree.sync.scheduler')

        self._queue: "queue.Queue[Action]" = queue.Queue(maxsize=1)
        self._cancel = threading.Event()
        self._closed = threading.Event()
        self._lock = threading.Lock()
        self._started = 0
        self._num_failed = 0

    def num_failed(self) -> int:
        with self._lock:
            return self._num_failed

    def _worker(self) -> None:
        while True:
            try:
                action = self._queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                if self._closed.is_set() or self._cancel.is_set():
                    return
                continue

            if self._cancel.is_set():
                # dequeued after cancellation; never started
                return

            with self._lock:
                self._started += 1

            try:
                event = self.execute(action)
            except Exception as e:
                self.logger.error(f"Unexpected error executing {action}: {e}", exc_info=True)
                event = ActionEvent(EventKind.FAILED, str(action_path(action)), str(e))

            stop = False
            if event.kind is EventKind.FAILED:
                with self._lock:
                    self._num_failed += 1
                if not self.options.keep_going:
                    # cancel before reporting so no peer starts another action
                    self._cancel.set()
                    stop = True

            self.reporter.handle_event(event)
            if stop:
                return

    def _produce(self, actions: Sequence[Action]) -> bool:
        """Hand actions to the workers; False when cancelled before the last one."""
        for action in actions:
            while True:
                if self._cancel.is_set():
                    return False
                try:
                    self._queue.put(action, timeout=POLL_INTERVAL)
                    break
                except queue.Full:
                    continue
        return True

    def run(self, actions: Sequence[Action]) -> SchedulerResult:
        """Execute every action (or until cancelled) and report the summary."""
        workers: List[threading.Thread] = [
            threading.Thread(target=self._worker, name=f"repotree-worker-{i}", daemon=True)
            for i in range(self.options.jobs)
        ]

        self.logger.debug(f"Running {len(actions)} actions on {len(workers)} workers")
        self.reporter.draw_initial()
        for worker in workers:
            worker.start()

        enqueued_all = self._produce(actions)
        self._closed.set()

        for worker in workers:
            worker.join()

        # an action handed over just before cancellation is dropped, not run
        enqueued_all = enqueued_all and self._started == len(actions)

        self.reporter.done("" if enqueued_all else STOPPED_EARLY_NOTE)

        result = SchedulerResult(enqueued_all=enqueued_all, num_failed=self.num_failed())
        self.logger.debug(f"Run finished: {result}")
        return result
