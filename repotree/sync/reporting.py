"""
Progress reporting for sync runs.

Reporters receive one ActionEvent per executed action and print a summary at
the end. Worker threads never call a reporter directly; SerializingReporter
relays their events through a single consumer thread.
"""

import queue
import sys
import threading
from abc import ABC, abstractmethod
from collections import Counter
from typing import Any, Dict, List, Optional, TextIO, Tuple

from .events import ActionEvent, EventKind

PROGRESS_BAR_WIDTH = 60

# ANSI control sequences
CLEAR_TO_EOL = "\x1b[0K"
UP_ONE_LINE = "\x1b[1F"
UP_TWO_LINES = "\x1b[2F"


class Reporter(ABC):
    """Consumer of action events."""

    def draw_initial(self) -> None:
        """Called once before the first event."""

    @abstractmethod
    def handle_event(self, event: ActionEvent) -> None:
        ...

    @abstractmethod
    def done(self, note: str = "") -> None:
        """Called once after the last event."""

    @abstractmethod
    def num_failed(self) -> int:
        ...


def summary_line(counts: Counter, total: int) -> str:
    """Summary such as "Done! 2 cloned, 1 FAILED, 5 total", zero counts omitted."""
    parts = [f"{counts[kind]} {kind.title}" for kind in EventKind if counts[kind] > 0]
    parts.append(f"{total} total")
    return "Done! " + ", ".join(parts)


class PlainReporter(Reporter):
    """One line per event, suitable for logs and non-terminal output."""

    def __init__(self, total: int, name_width: int = 0, output: Optional[TextIO] = None):
        self.output = output or sys.stdout
        self.total = total
        self.count_width = len(str(total))
        self.name_width = name_width

        self.counts: Counter = Counter()
        self.completed = 0
        self.caveats = 0

    def handle_event(self, event: ActionEvent) -> None:
        self.completed += 1
        self.counts[event.kind] += 1

        self.output.write(
            f"[{self.completed:>{self.count_width}}/{self.total}] "
            f"{event.kind.label} {event.name.ljust(self.name_width)} {event.message}\n"
        )

        self.caveats += len(event.caveats)
        for caveat in event.caveats:
            self.output.write(f"  {caveat}\n")

    def done(self, note: str = "") -> None:
        if note:
            self.output.write(f"{note}\n")

        self.output.write(summary_line(self.counts, self.total) + "\n")

        if self.caveats > 0:
            word = "caveat" if self.caveats == 1 else "caveats"
            self.output.write(f"See {self.caveats} {word} above.\n")
        self.output.flush()

    def num_failed(self) -> int:
        return self.counts[EventKind.FAILED]


class AnsiReporter(Reporter):
    """
    Terminal reporter with a progress bar.

    Keeps two lines at the bottom of the output: the progress bar and the most
    recent event. Failed and ignored events, and every caveat, are listed again
    after the summary.
    """

    def __init__(self, total: int, name_width: int = 0, output: Optional[TextIO] = None):
        self.output = output or sys.stdout
        self.total = total
        self.count_width = len(str(total))
        self.name_width = name_width

        self.completed = 0
        self.counts: Counter = Counter()
        self.failed: List[ActionEvent] = []
        self.ignored: List[ActionEvent] = []
        self.caveats: Dict[str, Tuple[str, ...]] = {}

    def _progress_line(self) -> None:
        filled = PROGRESS_BAR_WIDTH * self.completed // self.total if self.total else PROGRESS_BAR_WIDTH
        bar = "=" * filled
        self.output.write(
            f"{self.completed:>{self.count_width}}/{self.total} "
            f"[{bar:<{PROGRESS_BAR_WIDTH}}]{CLEAR_TO_EOL}\n"
        )

    def _event_line(self, event: ActionEvent) -> str:
        return f"{event.kind.label} {event.name.ljust(self.name_width)} {event.message}"

    def draw_initial(self) -> None:
        self._progress_line()
        self.output.write("\n")
        self.output.flush()

    def handle_event(self, event: ActionEvent) -> None:
        self.completed += 1
        self.counts[event.kind] += 1

        self.output.write(UP_TWO_LINES)
        self._progress_line()

        if event.kind is EventKind.FAILED:
            self.failed.append(event)
        elif event.kind is EventKind.IGNORED:
            self.ignored.append(event)

        if event.caveats:
            self.caveats[event.name] = event.caveats

        self.output.write(f"{self._event_line(event)}{CLEAR_TO_EOL}\n")
        self.output.flush()

    def done(self, note: str = "") -> None:
        # overwrite the last event line
        self.output.write(UP_ONE_LINE + CLEAR_TO_EOL)

        if note:
            self.output.write(f"{note}\n")

        self.output.write(summary_line(self.counts, self.total) + "\n")

        for event in self.failed + self.ignored:
            self.output.write(f"  {self._event_line(event)}\n")

        if self.caveats:
            self.output.write("Caveats:\n")
            for name in sorted(self.caveats):
                for caveat in self.caveats[name]:
                    self.output.write(f"  {name}: {caveat}\n")
        self.output.flush()

    def num_failed(self) -> int:
        return len(self.failed)


class CollectingReporter(Reporter):
    """Keeps events in memory, for callers that want structured results."""

    def __init__(self, total: int = 0):
        self.total = total
        self.events: List[ActionEvent] = []
        self.note = ""
        self.finished = False

    def handle_event(self, event: ActionEvent) -> None:
        self.events.append(event)

    def done(self, note: str = "") -> None:
        self.note = note
        self.finished = True

    def num_failed(self) -> int:
        return sum(1 for event in self.events if event.kind is EventKind.FAILED)

    def summary(self) -> Dict[str, Any]:
        counts = Counter(event.kind for event in self.events)
        return {
            "total": self.total,
            "completed": len(self.events),
            "counts": {kind.name.lower(): counts[kind] for kind in EventKind},
            "note": self.note,
            "summary": summary_line(counts, self.total),
        }


class SerializingReporter(Reporter):
    """
    Thread-safe front for another reporter.

    handle_event() may be called from any thread; a single consumer thread
    delivers events to the wrapped reporter in arrival order. done() drains
    the relay before delegating.
    """

    _STOP = object()

    def __init__(self, inner: Reporter):
        self.inner = inner
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread = threading.Thread(target=self._relay, name="repotree-reporter", daemon=True)
        self._thread.start()

    def _relay(self) -> None:
        while True:
            event = self._queue.get()
            if event is self._STOP:
                break
            self.inner.handle_event(event)

    def draw_initial(self) -> None:
        self.inner.draw_initial()

    def handle_event(self, event: ActionEvent) -> None:
        self._queue.put(event)

    def done(self, note: str = "") -> None:
        self._queue.put(self._STOP)
        self._thread.join()
        self.inner.done(note)

    def num_failed(self) -> int:
        return self.inner.num_failed()


def select_reporter(
    total: int, name_width: int, dry_run: bool, output: Optional[TextIO] = None
) -> Reporter:
    """ANSI progress display on a terminal (except for dry runs), plain lines otherwise."""
    output = output or sys.stdout
    is_terminal = hasattr(output, "isatty") and output.isatty()

    if is_terminal and not dry_run:
        return AnsiReporter(total, name_width, output)
    return PlainReporter(total, name_width, output)
