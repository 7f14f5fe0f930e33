#!/usr/bin/env python3
"""
Unit tests for progress reporters.
"""

import io
import sys
import unittest
from pathlib import Path

# Add the project root to the path so we can import repotree modules
sys.path.insert(0, str(Path(__file__).parent))

from repotree.sync import (
    ActionEvent, AnsiReporter, CollectingReporter, EventKind, PlainReporter,
    SerializingReporter, select_reporter
)


class FakeTerminal(io.StringIO):
    def isatty(self):
        return True


class TestEventKind(unittest.TestCase):

    def test_labels_have_equal_width(self):
        labels = {kind: kind.label for kind in EventKind}
        print(f"  Labels: {labels}")
        self.assertEqual({len(label) for label in labels.values()}, {4})
        self.assertEqual(EventKind.CLONED.label, "new ")
        self.assertEqual(EventKind.FAILED.title, "FAILED")
        self.assertEqual(EventKind.UNCHANGED.title, "unchanged")

    def test_event_to_dict(self):
        event = ActionEvent(EventKind.UPDATED, "org/a", "updated", ('deleted "x"',))
        self.assertEqual(event.to_dict(), {
            "kind": "updated", "name": "org/a", "message": "updated", "caveats": ['deleted "x"'],
        })


class TestPlainReporter(unittest.TestCase):

    def test_output(self):
        output = io.StringIO()
        reporter = PlainReporter(12, name_width=5, output=output)

        reporter.draw_initial()
        reporter.handle_event(ActionEvent(EventKind.CLONED, "org/a", "cloned from https://x/a"))
        reporter.handle_event(ActionEvent(EventKind.UPDATED, "b", "updated", ('deleted "old"',)))
        reporter.handle_event(ActionEvent(EventKind.FAILED, "c", "boom"))
        reporter.done()

        lines = output.getvalue().splitlines()
        print("  " + "\n  ".join(lines))
        self.assertEqual(lines, [
            "[ 1/12] new  org/a cloned from https://x/a",
            "[ 2/12] upd  b     updated",
            '  deleted "old"',
            "[ 3/12] FAIL c     boom",
            "Done! 1 cloned, 1 FAILED, 1 updated, 12 total",
            "See 1 caveat above.",
        ])
        self.assertEqual(reporter.num_failed(), 1)

    def test_note_and_plural_caveats(self):
        output = io.StringIO()
        reporter = PlainReporter(1, output=output)

        reporter.handle_event(ActionEvent(EventKind.UPDATED, "a", "updated", ("one", "two")))
        reporter.done("Stopped early.")

        lines = output.getvalue().splitlines()
        self.assertEqual(lines[-3:], ["Stopped early.", "Done! 1 updated, 1 total", "See 2 caveats above."])

    def test_nothing_to_do(self):
        output = io.StringIO()
        PlainReporter(0, output=output).done()
        self.assertEqual(output.getvalue(), "Done! 0 total\n")


class TestAnsiReporter(unittest.TestCase):

    def test_lists_failures_and_caveats_at_end(self):
        output = io.StringIO()
        reporter = AnsiReporter(3, name_width=1, output=output)

        reporter.draw_initial()
        reporter.handle_event(ActionEvent(EventKind.FAILED, "a", "boom"))
        reporter.handle_event(ActionEvent(EventKind.IGNORED, "b", "keeping extra repo"))
        reporter.handle_event(ActionEvent(EventKind.UPDATED, "c", "updated", ('deleted "x"',)))
        reporter.done()

        text = output.getvalue()
        self.assertIn("3/3 [" + "=" * 60 + "]", text)
        tail = text.split("Done! ", 1)[1].splitlines()
        self.assertEqual(tail, [
            "1 FAILED, 1 ignored, 1 updated, 3 total",
            "  FAIL a boom",
            "  ign  b keeping extra repo",
            "Caveats:",
            '  c: deleted "x"',
        ])
        self.assertEqual(reporter.num_failed(), 1)

    def test_partial_progress_bar(self):
        output = io.StringIO()
        reporter = AnsiReporter(4, output=output)
        reporter.handle_event(ActionEvent(EventKind.UNCHANGED, "a", "no updates"))
        self.assertIn("1/4 [" + "=" * 15 + " " * 45 + "]", output.getvalue())


class TestCollectingReporter(unittest.TestCase):

    def test_summary(self):
        reporter = CollectingReporter(3)
        reporter.handle_event(ActionEvent(EventKind.CLONED, "a", "would clone from x"))
        reporter.handle_event(ActionEvent(EventKind.FAILED, "b", "boom"))
        reporter.done("stopped")

        summary = reporter.summary()
        self.assertEqual(summary["total"], 3)
        self.assertEqual(summary["completed"], 2)
        self.assertEqual(summary["counts"]["cloned"], 1)
        self.assertEqual(summary["counts"]["failed"], 1)
        self.assertEqual(summary["counts"]["removed"], 0)
        self.assertEqual(summary["note"], "stopped")
        self.assertEqual(summary["summary"], "Done! 1 cloned, 1 FAILED, 3 total")
        self.assertEqual(reporter.num_failed(), 1)


class TestSerializingReporter(unittest.TestCase):

    def test_relays_in_order_then_finishes(self):
        inner = CollectingReporter(100)
        reporter = SerializingReporter(inner)

        events = [ActionEvent(EventKind.UPDATED, f"r{i}", "updated") for i in range(100)]
        for event in events:
            reporter.handle_event(event)
        reporter.done("note")

        self.assertEqual(inner.events, events)
        self.assertEqual(inner.note, "note")
        self.assertEqual(reporter.num_failed(), 0)


class TestSelectReporter(unittest.TestCase):

    def test_selection(self):
        self.assertIsInstance(select_reporter(1, 0, dry_run=False, output=FakeTerminal()), AnsiReporter)
        self.assertIsInstance(select_reporter(1, 0, dry_run=True, output=FakeTerminal()), PlainReporter)
        self.assertIsInstance(select_reporter(1, 0, dry_run=False, output=io.StringIO()), PlainReporter)


if __name__ == "__main__":
    unittest.main(verbosity=2)
