"""
window_store.py  –  One JSON file per pending session
=====================================================

A record is written when a prompt is submitted and read back (then deleted)
when the agent responds.  Anything that can't be parsed is treated exactly
like a missing record.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, unquote

from window_models import WindowSnapshot

log = logging.getLogger("activate_window")

SUFFIX = ".json"


@dataclass
class SessionRecord:
    session_id: str
    snapshot:   WindowSnapshot
    path:       Path
    saved_at:   float = 0.0


class SessionStore:
    def __init__(self, root) -> None:
        self.root = Path(root).expanduser()

    def path_for(self, session_id: str) -> Path:
        # quote("/") -> %2F, so ids can never point outside root
        return self.root / f"{quote(session_id, safe='')}{SUFFIX}"

    def save(self, session_id: str, snapshot: Optional[WindowSnapshot]) -> bool:
        if not session_id:
            log.debug("save skipped: empty session id")
            return False
        if snapshot is None or not snapshot.is_usable():
            log.debug("save skipped for %s: no usable snapshot", session_id)
            return False

        path = self.path_for(session_id)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self.root), suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(snapshot.to_dict(), f, ensure_ascii=False)
                os.replace(tmp, path)
            except BaseException:
                try:
                    os.unlink(tmp)
                except OSError:
                    pass
                raise
        except OSError as exc:
            log.error("Could not write session %s -> %s: %s", session_id, path, exc)
            return False
        log.debug("Saved session %s: %s", session_id, snapshot.describe())
        return True

    def _read(self, path: Path, session_id: str) -> Optional[SessionRecord]:
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            snapshot = WindowSnapshot.from_dict(data)
            saved_at = path.stat().st_mtime
        except FileNotFoundError:
            return None
        except (OSError, ValueError, TypeError) as exc:
            log.warning("Ignoring unreadable session file %s: %s", path, exc)
            return None
        if not snapshot.is_usable():
            log.warning("Ignoring session %s: snapshot has no identity fields", session_id)
            return None
        return SessionRecord(session_id, snapshot, path, saved_at)

    def load(self, session_id: str) -> Optional[SessionRecord]:
        if not session_id:
            return None
        return self._read(self.path_for(session_id), session_id)

    def delete(self, session_id: str) -> bool:
        if not session_id:
            return False
        path = self.path_for(session_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            log.error("Could not delete session file %s: %s", path, exc)
            return False
        log.debug("Deleted session %s", session_id)
        return True

    def records(self) -> List[SessionRecord]:
        if not self.root.is_dir():
            return []
        found = []
        for path in self.root.glob(f"*{SUFFIX}"):
            session_id = unquote(path.name[: -len(SUFFIX)])
            record = self._read(path, session_id)
            if record is not None:
                found.append(record)
        found.sort(key=lambda r: r.saved_at)
        return found

    def prune(self, max_age_seconds: float, now: Optional[float] = None) -> int:
        """Delete session files older than max_age_seconds.  Returns the count.

        Unreadable files are aged by mtime too, so corrupt leftovers go away.
        """
        if not self.root.is_dir():
            return 0
        now = time.time() if now is None else now
        removed = 0
        for path in self.root.glob(f"*{SUFFIX}"):
            try:
                age = now - path.stat().st_mtime
                if age < max_age_seconds:
                    continue
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                log.error("Could not prune %s: %s", path, exc)
                continue
            removed += 1
        return removed
