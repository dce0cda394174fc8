"""
activate_window.py  –  Bring the editor window back after the agent replies
===========================================================================

Runs as an editor hook.  The editor pipes one JSON payload to stdin:

    {"conversation_id": "...", "hook_event_name": "beforeSubmitPrompt", ...}

beforeSubmitPrompt   remember the focused window under conversation_id,
                     answer {"continue": true}
afterAgentResponse   load that record, find the same window among the live
                     ones (id -> pid -> title), raise it, delete the record
anything else        raise any editor window

Every failure degrades to "raise any editor window" or to doing nothing; the
hook always exits 0 so the editor is never blocked.

Other commands (diagnostics / housekeeping):

    activate-window windows [--json]
    activate-window sessions
    activate-window prune --older-than-days N
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from hook_config import HookConfig, load_config, setup_logging
from window_match import explain, match
from window_platform import WindowBackend, select_backend
from window_store import SessionStore

log = logging.getLogger("activate_window")

CAPTURE = "capture"
RESTORE = "restore"
OTHER   = "other"

CONTINUE: Dict = {"continue": True}


class PayloadError(ValueError):
    """The hook payload could not be decoded."""


@dataclass
class HookEvent:
    event_name: str
    kind:       str
    session_id: str


# ══════════════════════════════════════════════════════════════════════════
#  Payload decoding
# ══════════════════════════════════════════════════════════════════════════
def decode_payload(text: str, config: Optional[HookConfig] = None) -> HookEvent:
    config = config or HookConfig()
    if not (text or "").strip():
        raise PayloadError("empty hook payload")
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise PayloadError(f"invalid JSON payload: {exc}") from exc
    if not isinstance(data, dict):
        raise PayloadError(f"payload must be a JSON object, got {type(data).__name__}")

    name = data.get("hook_event_name")
    name = name if isinstance(name, str) else ""
    sid  = data.get("conversation_id")
    sid  = sid if isinstance(sid, str) else ""

    if name in config.capture_events:
        kind = CAPTURE
    elif name in config.restore_events:
        kind = RESTORE
    else:
        kind = OTHER
    return HookEvent(event_name=name, kind=kind, session_id=sid)


# ══════════════════════════════════════════════════════════════════════════
#  Dispatcher
# ══════════════════════════════════════════════════════════════════════════
class HookDispatcher:
    def __init__(self, backend: WindowBackend, store: SessionStore,
                 diagnostics: bool = False) -> None:
        self.backend     = backend
        self.store       = store
        self.diagnostics = diagnostics

    def fallback(self) -> None:
        self.backend.activate(None)

    def capture(self, session_id: str) -> Dict:
        """idle -> captured.  Always lets the prompt through."""
        if not session_id:
            log.debug("capture: no conversation_id, nothing to remember")
            return dict(CONTINUE)
        snapshot = self.backend.capture_active()
        if snapshot is None:
            log.info("capture: no focused window for %s", session_id)
        else:
            self.store.save(session_id, snapshot)
        return dict(CONTINUE)

    def restore(self, session_id: str) -> None:
        """captured -> idle (or absent -> idle).  One attempt, no retry."""
        record = self.store.load(session_id)
        if record is None:
            log.info("restore: no saved window for %r, activating %s",
                     session_id, self.backend.app_name)
            self.fallback()
            # clears an unreadable leftover so a repeat restore sees nothing
            self.store.delete(session_id)
            return
        try:
            windows = self.backend.list_windows()
            if self.diagnostics:
                for line in explain(record.snapshot, windows):
                    print(line, file=sys.stderr)
            result = match(record.snapshot, windows)
            if result:
                log.debug("restore: matched via %s", result.tier)
                self.backend.activate(result.window, windows)
            else:
                log.info("restore: no live window matches %s", record.snapshot.describe())
                self.backend.activate(None, windows)
        finally:
            self.store.delete(session_id)

    def dispatch(self, event: HookEvent) -> Optional[Dict]:
        if event.kind == CAPTURE:
            return self.capture(event.session_id)
        if event.kind == RESTORE:
            self.restore(event.session_id)
            return None
        log.debug("unhandled hook event %r, activating %s",
                  event.event_name, self.backend.app_name)
        self.fallback()
        return None


def run_hook(text: str, dispatcher: HookDispatcher,
             config: Optional[HookConfig] = None) -> Optional[Dict]:
    """Decode + dispatch.  Never raises; returns the response to print, if any."""
    try:
        event = decode_payload(text, config)
    except PayloadError as exc:
        log.error("Error reading/parsing JSON input: %s", exc)
        _safe_fallback(dispatcher)
        return None

    try:
        return dispatcher.dispatch(event)
    except Exception as exc:
        log.error("Unexpected error handling %s: %s", event.event_name, exc)
        _safe_fallback(dispatcher)
        return dict(CONTINUE) if event.kind == CAPTURE else None


def _safe_fallback(dispatcher: HookDispatcher) -> None:
    try:
        dispatcher.fallback()
    except Exception as exc:
        log.error("Fallback activation failed: %s", exc)


# ══════════════════════════════════════════════════════════════════════════
#  Commands
# ══════════════════════════════════════════════════════════════════════════
def build_dispatcher(config: HookConfig, diagnostics: bool = False,
                     backend: Optional[WindowBackend] = None) -> HookDispatcher:
    backend = backend or select_backend(app_name=config.app_name,
                                        app_keyword=config.app_keyword,
                                        timeout=config.command_timeout)
    return HookDispatcher(backend, SessionStore(config.storage_dir),
                          diagnostics=diagnostics)


def cmd_hook(dispatcher: HookDispatcher, config: HookConfig) -> int:
    try:
        text = sys.stdin.read()
    except (OSError, ValueError) as exc:
        log.error("Could not read stdin: %s", exc)
        text = ""
    response = run_hook(text, dispatcher, config)
    if response is not None:
        print(json.dumps(response, indent=2))
    return 0


def cmd_windows(backend: WindowBackend, as_json: bool = False) -> int:
    active  = backend.capture_active()
    windows = backend.list_windows()
    if as_json:
        print(json.dumps({
            "active":  active.to_dict() if active else None,
            "windows": [w.snapshot().to_dict() for w in windows],
        }, indent=2, ensure_ascii=False))
        return 0
    if active:
        print(f"Focused: {active.describe()}")
    else:
        print("Focused: (none)")
    if not windows:
        print("No windows reported.")
        return 0
    focused = match(active, windows) if active else None
    for i, w in enumerate(windows, 1):
        mark = "*" if focused and w is focused.window else " "
        app  = " [app]" if backend.is_app_window(w) else ""
        print(f" {mark}[{i}] {w.describe()}{app}")
    return 0


def cmd_sessions(store: SessionStore) -> int:
    records = store.records()
    if not records:
        print(f"No saved sessions in {store.root}")
        return 0
    for r in records:
        saved = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(r.saved_at))
        print(f"  {r.session_id}  saved={saved}  {r.snapshot.describe()}")
    return 0


def cmd_prune(store: SessionStore, days: float) -> int:
    if days < 0:
        print("--older-than-days must be >= 0", file=sys.stderr)
        return 2
    removed = store.prune(days * 86400)
    print(f"Removed {removed} session file(s) from {store.root}")
    return 0


# ══════════════════════════════════════════════════════════════════════════
#  CLI entry point
# ══════════════════════════════════════════════════════════════════════════
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="activate-window",
        description="Restore editor window focus after an agent response.",
    )
    p.add_argument("--config", default=None,
                   help="JSON config file (default ~/.cursor/hooks/activate-window.json)")
    p.add_argument("--storage-dir", default=None,
                   help="Directory holding per-session window records")
    p.add_argument("--verbose", "-v", action="store_true")
    p.add_argument("--diagnostics", action="store_true",
                   help="Print window matching details to stderr on restore")

    s = p.add_subparsers(dest="cmd")
    s.add_parser("hook", help="Handle one hook payload from stdin (default)")

    sp = s.add_parser("windows", help="List live windows as the backend sees them")
    sp.add_argument("--json", action="store_true")

    s.add_parser("sessions", help="List saved session records")

    sp = s.add_parser("prune", help="Delete orphaned session records")
    sp.add_argument("--older-than-days", type=float, default=7.0)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args   = build_parser().parse_args(argv)
    config = load_config(args.config)
    if args.storage_dir:
        config.storage_dir = Path(args.storage_dir).expanduser()
    setup_logging("DEBUG" if args.verbose else config.log_level, config.log_path)

    cmd = args.cmd or "hook"
    if cmd == "sessions":
        return cmd_sessions(SessionStore(config.storage_dir))
    if cmd == "prune":
        return cmd_prune(SessionStore(config.storage_dir), args.older_than_days)

    dispatcher = build_dispatcher(config, diagnostics=args.diagnostics)
    if cmd == "windows":
        return cmd_windows(dispatcher.backend, as_json=args.json)
    return cmd_hook(dispatcher, config)


if __name__ == "__main__":
    sys.exit(main())
