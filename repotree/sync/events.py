"""Events emitted once per executed action."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Tuple


class EventKind(Enum):
    """Outcome of one action, with its fixed-width label."""
    CLONED = "new "
    FAILED = "FAIL"
    IGNORED = "ign "
    REMOVED = "rm  "
    UNCHANGED = "ok  "
    UPDATED = "upd "

    @property
    def label(self) -> str:
        return self.value

    @property
    def title(self) -> str:
        """Name used in summaries, e.g. "cloned" or "FAILED"."""
        if self is EventKind.FAILED:
            return "FAILED"
        return self.name.lower()


@dataclass(frozen=True)
class ActionEvent:
    kind: EventKind
    name: str
    message: str
    caveats: Tuple[str, ...] = ()

    def named(self, name: str) -> "ActionEvent":
        return replace(self, name=name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.name.lower(),
            "name": self.name,
            "message": self.message,
            "caveats": list(self.caveats),
        }
