import json
import logging
import pathlib
import sys

repo_root = pathlib.Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

import hook_config as hc


def test_defaults_when_no_file(tmp_path):
    cfg = hc.load_config(str(tmp_path / "missing.json"), env={})

    assert cfg.app_name == "Cursor"
    assert cfg.app_keyword == "cursor"
    assert cfg.capture_events == ["beforeSubmitPrompt"]
    assert cfg.restore_events == ["afterAgentResponse"]
    assert cfg.command_timeout == 5.0
    assert cfg.storage_dir.name == "activate-window-ids"
    assert cfg.log_path is None
    assert cfg.log_level == "WARNING"


def test_file_values_are_applied(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({
        "storage_dir": str(tmp_path / "ids"),
        "app_name": "Code",
        "restore_events": ["afterAgentResponse", "stop"],
        "command_timeout": 2,
        "log_level": "debug",
    }), encoding="utf-8")

    cfg = hc.load_config(str(path), env={})

    assert cfg.storage_dir == tmp_path / "ids"
    assert cfg.app_name == "Code"
    assert cfg.app_keyword == "code"
    assert cfg.restore_events == ["afterAgentResponse", "stop"]
    assert cfg.command_timeout == 2.0
    assert cfg.log_level == "DEBUG"


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"app_name": "Code"}), encoding="utf-8")
    env = {
        "ACTIVATE_WINDOW_APP": "Windsurf",
        "ACTIVATE_WINDOW_STORAGE_DIR": str(tmp_path / "env-ids"),
        "ACTIVATE_WINDOW_LOG": str(tmp_path / "hook.log"),
        "ACTIVATE_WINDOW_TIMEOUT": "1.5",
    }

    cfg = hc.load_config(str(path), env=env)

    assert cfg.app_name == "Windsurf"
    assert cfg.storage_dir == tmp_path / "env-ids"
    assert cfg.log_path == tmp_path / "hook.log"
    assert cfg.command_timeout == 1.5


def test_config_path_from_environment(tmp_path):
    path = tmp_path / "other.json"
    path.write_text(json.dumps({"app_keyword": "CURSOR-NIGHTLY"}), encoding="utf-8")

    cfg = hc.load_config(env={"ACTIVATE_WINDOW_CONFIG": str(path)})

    assert cfg.app_keyword == "cursor-nightly"


def test_malformed_file_falls_back_to_defaults(tmp_path, capsys):
    path = tmp_path / "cfg.json"
    path.write_text("{oops", encoding="utf-8")

    cfg = hc.load_config(str(path), env={})

    assert cfg.app_name == "Cursor"
    assert "ignoring config" in capsys.readouterr().err


def test_invalid_values_fall_back(tmp_path, capsys):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({
        "command_timeout": "soon",
        "log_level": "chatty",
        "capture_events": 42,
    }), encoding="utf-8")

    cfg = hc.load_config(str(path), env={})

    assert cfg.command_timeout == 5.0
    assert cfg.log_level == "WARNING"
    assert cfg.capture_events == ["beforeSubmitPrompt"]
    err = capsys.readouterr().err
    assert "command_timeout" in err
    assert "log level" in err


def test_setup_logging_adds_file_handler(tmp_path):
    log_path = tmp_path / "logs" / "hook.log"

    logger = hc.setup_logging("INFO", log_path)
    logger.info("hello from the hook")
    for h in logger.handlers:
        h.flush()

    assert logger.level == logging.INFO
    assert not logger.propagate
    assert "hello from the hook" in log_path.read_text(encoding="utf-8")

    # reconfiguring replaces handlers instead of stacking them
    logger = hc.setup_logging("WARNING")
    assert len(logger.handlers) == 1
