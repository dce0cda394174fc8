"""Configuration and logging setup for the activate-window hook."""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

CONFIG_PATH = os.path.join("~", ".cursor", "hooks", "activate-window.json")
STORAGE_DIR = os.path.join("~", ".cursor", "hooks", "activate-window-ids")

_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass
class HookConfig:
    storage_dir:     Path = field(default_factory=lambda: Path(STORAGE_DIR).expanduser())
    app_name:        str = "Cursor"
    app_keyword:     str = ""
    capture_events:  List[str] = field(default_factory=lambda: ["beforeSubmitPrompt"])
    restore_events:  List[str] = field(default_factory=lambda: ["afterAgentResponse"])
    command_timeout: float = 5.0
    log_path:        Optional[Path] = None
    log_level:       str = "WARNING"

    def __post_init__(self) -> None:
        if not self.app_keyword:
            self.app_keyword = self.app_name.lower()


def _warn(msg: str) -> None:
    print(f"activate-window: {msg}", file=sys.stderr)


def _load_config_file(path: str) -> Dict:
    path = os.path.expanduser(path)
    if not os.path.exists(path):
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            d = json.load(f)
    except (OSError, ValueError) as exc:
        _warn(f"ignoring config {path}: {exc}")
        return {}
    if not isinstance(d, dict):
        _warn(f"ignoring config {path}: expected a JSON object")
        return {}
    return d


def _str_list(value, default: List[str]) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return list(default)
    items = [str(v).strip() for v in value if str(v).strip()]
    return items or list(default)


def _timeout(value, default: float) -> float:
    try:
        t = float(value)
    except (TypeError, ValueError):
        _warn(f"invalid command_timeout {value!r}, using {default}")
        return default
    if t <= 0:
        _warn(f"command_timeout must be > 0, using {default}")
        return default
    return t


def _level(value, default: str) -> str:
    lv = str(value or "").strip().upper()
    if lv not in _LEVELS:
        _warn(f"unknown log level {value!r}, using {default}")
        return default
    return lv


def load_config(path: Optional[str] = None,
                env: Optional[Mapping[str, str]] = None) -> HookConfig:
    """Defaults <- JSON file <- environment variables."""
    env  = os.environ if env is None else env
    base = HookConfig()
    raw  = _load_config_file(path or env.get("ACTIVATE_WINDOW_CONFIG") or CONFIG_PATH)

    for key, var in (("storage_dir",     "ACTIVATE_WINDOW_STORAGE_DIR"),
                     ("app_name",        "ACTIVATE_WINDOW_APP"),
                     ("command_timeout", "ACTIVATE_WINDOW_TIMEOUT"),
                     ("log_path",        "ACTIVATE_WINDOW_LOG"),
                     ("log_level",       "ACTIVATE_WINDOW_LOG_LEVEL")):
        if env.get(var):
            raw[key] = env[var]

    storage = raw.get("storage_dir")
    log_path = raw.get("log_path")
    app_name = str(raw.get("app_name") or base.app_name).strip() or base.app_name

    return HookConfig(
        storage_dir=Path(str(storage)).expanduser() if storage else base.storage_dir,
        app_name=app_name,
        app_keyword=str(raw.get("app_keyword") or "").strip().lower(),
        capture_events=_str_list(raw.get("capture_events"), base.capture_events),
        restore_events=_str_list(raw.get("restore_events"), base.restore_events),
        command_timeout=(_timeout(raw["command_timeout"], base.command_timeout)
                         if "command_timeout" in raw else base.command_timeout),
        log_path=Path(str(log_path)).expanduser() if log_path else None,
        log_level=(_level(raw["log_level"], base.log_level)
                   if "log_level" in raw else base.log_level),
    )


def setup_logging(level: str = "WARNING",
                  log_path: Optional[Path] = None) -> logging.Logger:
    """stderr handler plus an optional file handler.  stdout stays clean."""
    logger = logging.getLogger("activate_window")
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    logger.setLevel(level)
    logger.propagate = False
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if log_path:
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(log_path, encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not open log file %s: %s", log_path, exc)
        else:
            handler.setFormatter(formatter)
            logger.addHandler(handler)
    return logger
