"""
window_platform.py  –  Query and raise OS windows (macOS / Linux / Windows)
===========================================================================

Every backend implements the same small contract:

    capture_active()  -> WindowSnapshot | None   window holding input focus
    list_windows()    -> [LiveWindow]            visible top-level windows
    activate(window)  -> bool                    raise window, or the editor
    activate_app()    -> bool                    raise any editor window

None of these raise.  A failure is logged and reported as None / [] / False
so the hook can always fall through to the next, safer step.

Backends
  · macOS    System Events via osascript.  Titles + process ids only; the
             accessibility bridge exposes no stable numeric handle.
  · Linux    xdotool, else wmctrl (+ xprop for the active window).  Tools are
             looked up on every call, first one present wins.
  · Windows  pywin32 (GetForegroundWindow / EnumWindows / SetForegroundWindow).
  · other    NullBackend: remembers nothing, raises nothing.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import sys
from typing import Callable, List, Optional, Sequence

import psutil

from window_models import LiveWindow, WindowSnapshot, current_platform

log = logging.getLogger("activate_window")

Runner = Callable[[Sequence[str], float], Optional[str]]
Which  = Callable[[str], Optional[str]]


# ══════════════════════════════════════════════════════════════════════════
#  Tiny helpers
# ══════════════════════════════════════════════════════════════════════════
def run_command(cmd: Sequence[str], timeout: float) -> Optional[str]:
    """Run a helper process; stdout on success, None on any failure."""
    try:
        # window titles are not always valid UTF-8 (legacy WM_NAME)
        p = subprocess.run(list(cmd), capture_output=True, text=True,
                           encoding="utf-8", errors="replace",
                           timeout=timeout, check=False)
    except subprocess.TimeoutExpired:
        log.warning("%s timed out after %.1fs", cmd[0], timeout)
        return None
    except OSError as exc:
        log.warning("Could not run %s: %s", cmd[0], exc)
        return None
    if p.returncode != 0:
        log.debug("%s exited %s: %s", " ".join(cmd[:2]), p.returncode,
                  (p.stderr or "").strip())
        return None
    return p.stdout or ""


def _proc_name(pid: Optional[int]) -> str:
    if not pid:
        return ""
    try:
        return psutil.Process(pid).name() or ""
    except (psutil.Error, ValueError):
        return ""


def _to_int(text: str, base: int = 10) -> Optional[int]:
    try:
        return int(str(text).strip(), base)
    except (TypeError, ValueError):
        return None


def _applescript_str(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


# ══════════════════════════════════════════════════════════════════════════
#  Base / null backend
# ══════════════════════════════════════════════════════════════════════════
class WindowBackend:
    """Shared activation logic.  The base class doubles as the null backend."""

    platform = "unknown"

    def __init__(self, app_name: str = "Cursor", app_keyword: str = "",
                 timeout: float = 5.0, runner: Optional[Runner] = None,
                 which: Optional[Which] = None) -> None:
        self.app_name    = app_name
        self.app_keyword = (app_keyword or app_name).lower()
        self.timeout     = timeout
        self.runner      = runner or run_command
        self.which       = which or shutil.which

    def _run(self, *cmd: str) -> Optional[str]:
        return self.runner(cmd, self.timeout)

    # ── query ────────────────────────────────────────────────────────────
    def _capture_active(self) -> Optional[WindowSnapshot]:
        return None

    def _list_windows(self) -> List[LiveWindow]:
        return []

    def capture_active(self) -> Optional[WindowSnapshot]:
        try:
            snap = self._capture_active()
        except Exception as exc:
            log.error("Error getting front window: %s", exc)
            return None
        if snap is None or not snap.is_usable():
            return None
        return snap

    def list_windows(self) -> List[LiveWindow]:
        try:
            return self._list_windows()
        except Exception as exc:
            log.error("Error listing windows: %s", exc)
            return []

    # ── activation ───────────────────────────────────────────────────────
    def _raise_window(self, window: LiveWindow) -> bool:
        return False

    def is_app_window(self, window: LiveWindow) -> bool:
        kw = self.app_keyword
        return bool(kw) and (kw in (window.title or "").lower()
                             or kw in (window.owner or "").lower())

    def find_app_window(self, windows: Sequence[LiveWindow]) -> Optional[LiveWindow]:
        for w in windows:
            if self.is_app_window(w):
                return w
        return None

    def activate_app(self, windows: Optional[Sequence[LiveWindow]] = None) -> bool:
        """Raise any editor window.  Reuses `windows` when the caller has them."""
        if windows is None:
            windows = self.list_windows()
        target = self.find_app_window(windows)
        if target is None:
            log.info("No %s window found to activate", self.app_name)
            return False
        try:
            return bool(self._raise_window(target))
        except Exception as exc:
            log.error("Error activating %s: %s", self.app_name, exc)
            return False

    def activate(self, window: Optional[LiveWindow] = None,
                 windows: Optional[Sequence[LiveWindow]] = None) -> bool:
        if window is None:
            return self.activate_app(windows)
        try:
            if self._raise_window(window):
                log.debug("Activated %s", window.describe())
                return True
        except Exception as exc:
            log.error("Error activating window %s: %s", window.describe(), exc)
        return self.activate_app(windows)


NullBackend = WindowBackend


# ══════════════════════════════════════════════════════════════════════════
#  macOS
# ══════════════════════════════════════════════════════════════════════════
_MAC_FRONT = """
tell application "System Events"
    set p to first application process whose frontmost is true
    set t to ""
    try
        set t to name of window 1 of p
    end try
    return (unix id of p as text) & tab & (name of p) & tab & t
end tell
"""

_MAC_LIST = """
set out to ""
tell application "System Events"
    repeat with p in (every application process whose background only is false)
        set pid to unix id of p as text
        set pname to name of p
        try
            repeat with w in (every window of p)
                set out to out & pid & tab & pname & tab & (name of w) & linefeed
            end repeat
        end try
    end repeat
end tell
return out
"""


class MacBackend(WindowBackend):
    platform = "macos"

    def _osascript(self, script: str) -> Optional[str]:
        return self._run("osascript", "-e", script)

    def _capture_active(self) -> Optional[WindowSnapshot]:
        out = self._osascript(_MAC_FRONT)
        if out is None:
            return None
        parts = out.rstrip("\r\n").split("\t", 2)
        if len(parts) < 3:
            return None
        pid, owner, title = parts
        return WindowSnapshot(
            title=title.strip(),
            process_id=_to_int(pid),
            owner=owner.strip(),
            platform=self.platform,
        )

    def _list_windows(self) -> List[LiveWindow]:
        out = self._osascript(_MAC_LIST) or ""
        windows = []
        for line in out.splitlines():
            parts = line.split("\t", 2)
            if len(parts) < 3:
                continue
            pid, owner, title = parts
            windows.append(LiveWindow(
                title=title.strip(),
                process_id=_to_int(pid),
                owner=owner.strip(),
                platform=self.platform,
            ))
        return windows

    def _raise_window(self, window: LiveWindow) -> bool:
        if window.process_id:
            proc = f"(first application process whose unix id is {int(window.process_id)})"
        elif window.owner:
            proc = f"application process {_applescript_str(window.owner)}"
        else:
            return False
        raise_stmt = ""
        if window.title:
            raise_stmt = (
                "    try\n"
                f"        perform action \"AXRaise\" of (first window of p whose name is "
                f"{_applescript_str(window.title)})\n"
                "    end try\n"
            )
        script = (
            "tell application \"System Events\"\n"
            f"    set p to {proc}\n"
            "    set frontmost of p to true\n"
            f"{raise_stmt}"
            "end tell"
        )
        return self._osascript(script) is not None

    def activate_app(self, windows: Optional[Sequence[LiveWindow]] = None) -> bool:
        if super().activate_app(windows):
            return True
        # no window listing (e.g. accessibility not granted): activate by name,
        # but only if it is already running so we never launch the app
        app = _applescript_str(self.app_name)
        script = f"if application {app} is running then tell application {app} to activate"
        return self._osascript(script) is not None


# ══════════════════════════════════════════════════════════════════════════
#  Linux (X11 tools)
# ══════════════════════════════════════════════════════════════════════════
_XPROP_ACTIVE = re.compile(r"window id # (0x[0-9a-fA-F]+)")


class LinuxBackend(WindowBackend):
    platform = "linux"

    def tool(self) -> Optional[str]:
        for name in ("xdotool", "wmctrl"):
            if self.which(name):
                return name
        return None

    def _window(self, wid: int, title: str, pid: Optional[int]) -> LiveWindow:
        return LiveWindow(id=wid, title=title, process_id=pid,
                          owner=_proc_name(pid), platform=self.platform)

    # ── xdotool ──────────────────────────────────────────────────────────
    def _xdotool_window(self, wid: int) -> LiveWindow:
        title = (self._run("xdotool", "getwindowname", str(wid)) or "").strip()
        pid   = _to_int(self._run("xdotool", "getwindowpid", str(wid)) or "")
        return self._window(wid, title, pid)

    def _xdotool_active(self) -> Optional[WindowSnapshot]:
        wid = _to_int(self._run("xdotool", "getactivewindow") or "")
        if not wid:
            return None
        return self._xdotool_window(wid).snapshot()

    def _xdotool_list(self) -> List[LiveWindow]:
        out = self._run("xdotool", "search", "--onlyvisible", "--name", ".") or ""
        seen, windows = set(), []
        for line in out.split():
            wid = _to_int(line)
            if wid is None or wid in seen:
                continue
            seen.add(wid)
            w = self._xdotool_window(wid)
            if w.title:
                windows.append(w)
        return windows

    # ── wmctrl ───────────────────────────────────────────────────────────
    def _wmctrl_list(self) -> List[LiveWindow]:
        out = self._run("wmctrl", "-lp") or ""
        windows = []
        for line in out.splitlines():
            # 0x03a00007  0 12345  host  Title words
            parts = line.split(None, 4)
            if len(parts) < 4:
                continue
            wid = _to_int(parts[0], 16)
            if wid is None:
                continue
            pid   = _to_int(parts[2]) or None
            title = parts[4].strip() if len(parts) == 5 else ""
            windows.append(self._window(wid, title, pid))
        return windows

    def _wmctrl_active(self) -> Optional[WindowSnapshot]:
        windows = self._wmctrl_list()
        if self.which("xprop"):
            out = self._run("xprop", "-root", "_NET_ACTIVE_WINDOW") or ""
            m = _XPROP_ACTIVE.search(out)
            wid = int(m.group(1), 16) if m else None
            for w in windows:
                if wid and w.id == wid:
                    return w.snapshot()
            return None
        # wmctrl alone cannot report focus; best guess is the first editor window
        w = self.find_app_window(windows)
        return w.snapshot() if w else None

    # ── contract ─────────────────────────────────────────────────────────
    def _capture_active(self) -> Optional[WindowSnapshot]:
        tool = self.tool()
        if tool == "xdotool":
            return self._xdotool_active()
        if tool == "wmctrl":
            return self._wmctrl_active()
        log.warning("Neither xdotool nor wmctrl is installed")
        return None

    def _list_windows(self) -> List[LiveWindow]:
        tool = self.tool()
        if tool == "xdotool":
            return self._xdotool_list()
        if tool == "wmctrl":
            return self._wmctrl_list()
        return []

    def _raise_window(self, window: LiveWindow) -> bool:
        if not isinstance(window.id, int) or isinstance(window.id, bool):
            return False
        tool = self.tool()
        if tool == "xdotool":
            return self._run("xdotool", "windowactivate", str(window.id)) is not None
        if tool == "wmctrl":
            return self._run("wmctrl", "-i", "-a", f"0x{window.id:08x}") is not None
        return False


# ══════════════════════════════════════════════════════════════════════════
#  Windows (pywin32)
# ══════════════════════════════════════════════════════════════════════════
class WindowsBackend(WindowBackend):
    platform = "windows"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        import win32con
        import win32gui
        import win32process
        self.win32con     = win32con
        self.win32gui     = win32gui
        self.win32process = win32process

    def _safe_text(self, hwnd: int) -> str:
        try:
            return self.win32gui.GetWindowText(hwnd) or ""
        except Exception:
            return ""

    def _get_pid(self, hwnd: int) -> Optional[int]:
        try:
            _, pid = self.win32process.GetWindowThreadProcessId(hwnd)
            return int(pid or 0) or None
        except Exception:
            return None

    def _window(self, hwnd: int) -> LiveWindow:
        pid = self._get_pid(hwnd)
        return LiveWindow(id=int(hwnd), title=self._safe_text(hwnd).strip(),
                          process_id=pid, owner=_proc_name(pid),
                          platform=self.platform)

    def _capture_active(self) -> Optional[WindowSnapshot]:
        hwnd = self.win32gui.GetForegroundWindow()
        if not hwnd:
            return None
        return self._window(hwnd).snapshot()

    def _list_windows(self) -> List[LiveWindow]:
        gui = self.win32gui
        results: List[LiveWindow] = []

        def _cb(hwnd, _):
            if not gui.IsWindowVisible(hwnd): return True
            if gui.GetParent(hwnd):           return True
            w = self._window(hwnd)
            if w.title:
                results.append(w)
            return True

        gui.EnumWindows(_cb, None)
        return results

    def _raise_window(self, window: LiveWindow) -> bool:
        if not isinstance(window.id, int) or isinstance(window.id, bool):
            return False
        gui, hwnd = self.win32gui, window.id
        if not gui.IsWindow(hwnd):
            return False
        if gui.IsIconic(hwnd):
            gui.ShowWindow(hwnd, self.win32con.SW_RESTORE)
        gui.SetForegroundWindow(hwnd)
        return True


# ══════════════════════════════════════════════════════════════════════════
#  Selection
# ══════════════════════════════════════════════════════════════════════════
_BACKENDS = {
    "macos":   MacBackend,
    "linux":   LinuxBackend,
    "windows": WindowsBackend,
}


def select_backend(app_name: str = "Cursor", app_keyword: str = "",
                   timeout: float = 5.0,
                   platform: Optional[str] = None) -> WindowBackend:
    """Pick the backend for this OS once per process."""
    tag = current_platform(sys.platform if platform is None else platform)
    cls = _BACKENDS.get(tag, NullBackend)
    try:
        return cls(app_name=app_name, app_keyword=app_keyword, timeout=timeout)
    except ImportError as exc:
        log.error("%s window backend unavailable: %s", tag, exc)
        return NullBackend(app_name=app_name, app_keyword=app_keyword, timeout=timeout)
