"""
window_match.py  –  Pick the live window that corresponds to a snapshot
=======================================================================

Tiers are evaluated in order and the first hit wins:

    id          platform handle; most precise, only compared when both
                sides carry a non-empty handle of the same type
    process_id  usually one editor window per process
    title       least reliable (titles change, may be duplicated)

Within a tier the first window in enumeration order is taken.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from window_models import LiveWindow, WindowSnapshot


def _id_equal(snapshot: WindowSnapshot, window: LiveWindow) -> bool:
    a, b = snapshot.id, window.id
    if a is None or b is None or a == "" or b == "":
        return False
    if isinstance(a, bool) or isinstance(b, bool):
        return False
    return type(a) is type(b) and a == b


def _pid_equal(snapshot: WindowSnapshot, window: LiveWindow) -> bool:
    return bool(snapshot.process_id) and snapshot.process_id == window.process_id


def _title_equal(snapshot: WindowSnapshot, window: LiveWindow) -> bool:
    return bool(snapshot.title) and snapshot.title == window.title


Predicate = Callable[[WindowSnapshot, LiveWindow], bool]

TIERS: Tuple[Tuple[str, Predicate], ...] = (
    ("id",         _id_equal),
    ("process_id", _pid_equal),
    ("title",      _title_equal),
)


@dataclass(frozen=True)
class Matched:
    window: LiveWindow
    tier:   str

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class NoMatch:
    def __bool__(self) -> bool:
        return False


MatchResult = Union[Matched, NoMatch]


def match(snapshot: Optional[WindowSnapshot],
          windows: Sequence[LiveWindow]) -> MatchResult:
    if snapshot is None or not snapshot.is_usable():
        return NoMatch()
    for tier, predicate in TIERS:
        for window in windows:
            if predicate(snapshot, window):
                return Matched(window, tier)
    return NoMatch()


def explain(snapshot: WindowSnapshot, windows: Sequence[LiveWindow]) -> List[str]:
    """[DIAG] lines showing which tiers each live window satisfies."""
    lines = [f"[DIAG] Target: {snapshot.describe()}"]
    if not windows:
        lines.append("[DIAG]   No live windows")
        return lines
    for i, window in enumerate(windows, 1):
        hits = [tier for tier, predicate in TIERS if predicate(snapshot, window)]
        lines.append(
            f"[DIAG]   #{i} {window.describe()} "
            f"tiers={','.join(hits) if hits else '-'}"
        )
    result = match(snapshot, windows)
    if result:
        lines.append(f"[DIAG] Selected via {result.tier}: {result.window.describe()}")
    else:
        lines.append("[DIAG] No match; falling back to application activation")
    return lines
