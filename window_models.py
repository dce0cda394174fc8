"""
window_models.py  –  Window identity records shared by capture and restore
==========================================================================

WindowSnapshot is what we remember at capture time; LiveWindow is what the
platform backend reports at restore time.  Both carry the same identity
attributes so the matcher can compare them field by field.

On-disk shape (one JSON object per session file):

    {"id": 42, "title": "Doc A", "processId": 1234,
     "owner": "Cursor", "platform": "linux"}
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Dict, Optional, Union

WindowId = Union[int, str]

PLATFORMS = ("macos", "linux", "windows", "unknown")


def current_platform(name: Optional[str] = None) -> str:
    """Map sys.platform onto the capture-time platform tag."""
    name = sys.platform if name is None else name
    if name in PLATFORMS:
        return name
    if name == "darwin":
        return "macos"
    if name.startswith("linux"):
        return "linux"
    if name in ("win32", "cygwin", "msys"):
        return "windows"
    return "unknown"


def _clean_id(value) -> Optional[WindowId]:
    # bool is an int subclass; a stray true/false is not a handle
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return value or None
    return None


def _clean_pid(value) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        pid = int(value)
    except (TypeError, ValueError):
        return None
    return pid or None


@dataclass
class WindowSnapshot:
    id:         Optional[WindowId] = None
    title:      str = ""
    process_id: Optional[int] = None
    owner:      str = ""
    platform:   str = "unknown"

    def is_usable(self) -> bool:
        """At least one of id / title / process_id must be present."""
        return bool(
            _clean_id(self.id) is not None
            or self.title
            or _clean_pid(self.process_id)
        )

    def to_dict(self) -> Dict:
        return {
            "id":        self.id,
            "title":     self.title,
            "processId": self.process_id,
            "owner":     self.owner,
            "platform":  self.platform,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "WindowSnapshot":
        if not isinstance(data, dict):
            raise TypeError(f"snapshot must be a JSON object, got {type(data).__name__}")
        platform = str(data.get("platform") or "unknown")
        return cls(
            id=_clean_id(data.get("id")),
            title=str(data.get("title") or ""),
            process_id=_clean_pid(data.get("processId")),
            owner=str(data.get("owner") or ""),
            platform=platform if platform in PLATFORMS else "unknown",
        )

    def describe(self) -> str:
        return (f"id={self.id!r} pid={self.process_id} "
                f"owner={self.owner!r} title={self.title!r}")


@dataclass
class LiveWindow:
    """A window as currently reported by the OS.  Never persisted."""
    id:         Optional[WindowId] = None
    title:      str = ""
    process_id: Optional[int] = None
    owner:      str = ""
    platform:   str = "unknown"

    def snapshot(self) -> WindowSnapshot:
        return WindowSnapshot(
            id=self.id,
            title=self.title,
            process_id=self.process_id,
            owner=self.owner,
            platform=self.platform,
        )

    def describe(self) -> str:
        return (f"id={self.id!r} pid={self.process_id} "
                f"owner={self.owner!r} title={self.title!r}")
