import json
import os
import pathlib
import sys

repo_root = pathlib.Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from window_models import WindowSnapshot
from window_store import SessionStore


def _snap(**kw):
    base = {"id": 42, "title": "Doc A", "process_id": 1234,
            "owner": "Cursor", "platform": "linux"}
    base.update(kw)
    return WindowSnapshot(**base)


def test_save_then_load_returns_equal_snapshot(tmp_path):
    store = SessionStore(tmp_path / "ids")
    snap = _snap()

    assert store.save("s1", snap)
    record = store.load("s1")

    assert record is not None
    assert record.session_id == "s1"
    assert record.snapshot == snap


def test_directory_created_on_first_save(tmp_path):
    root = tmp_path / "nested" / "ids"
    store = SessionStore(root)

    store.save("s1", _snap())

    assert root.is_dir()
    assert store.path_for("s1").exists()


def test_string_id_round_trips_as_string(tmp_path):
    store = SessionStore(tmp_path)
    store.save("s1", _snap(id="AXWindow-3"))

    assert store.load("s1").snapshot.id == "AXWindow-3"


def test_save_skips_empty_session_id(tmp_path):
    store = SessionStore(tmp_path)

    assert store.save("", _snap()) is False
    assert list(tmp_path.iterdir()) == []


def test_save_skips_snapshot_without_identity(tmp_path):
    store = SessionStore(tmp_path)
    empty = WindowSnapshot(id=None, title="", process_id=None, owner="Cursor")

    assert store.save("s1", empty) is False
    assert store.save("s1", None) is False
    assert not store.path_for("s1").exists()


def test_whitespace_title_alone_is_still_an_identity(tmp_path):
    store = SessionStore(tmp_path)
    blank = WindowSnapshot(title=" ", platform="macos")

    assert blank.is_usable()
    assert store.save("s1", blank) is True
    assert store.load("s1").snapshot.title == " "


def test_last_write_wins(tmp_path):
    store = SessionStore(tmp_path)
    store.save("s1", _snap(title="first"))
    store.save("s1", _snap(title="second"))

    assert store.load("s1").snapshot.title == "second"


def test_load_missing_returns_none(tmp_path):
    assert SessionStore(tmp_path).load("missing") is None
    assert SessionStore(tmp_path).load("") is None


def test_load_corrupt_file_returns_none(tmp_path):
    store = SessionStore(tmp_path)
    store.path_for("s1").write_text("Doc A - Cursor\n", encoding="utf-8")

    assert store.load("s1") is None


def test_load_non_object_json_returns_none(tmp_path):
    store = SessionStore(tmp_path)
    store.path_for("s1").write_text("[1, 2]", encoding="utf-8")

    assert store.load("s1") is None


def test_load_all_empty_record_returns_none(tmp_path):
    store = SessionStore(tmp_path)
    store.path_for("s1").write_text(
        json.dumps({"id": None, "title": "", "owner": "Cursor"}), encoding="utf-8")

    assert store.load("s1") is None


def test_delete_is_idempotent(tmp_path):
    store = SessionStore(tmp_path)
    store.save("s1", _snap())

    assert store.delete("s1") is True
    assert store.delete("s1") is False
    assert store.load("s1") is None


def test_session_id_cannot_escape_root(tmp_path):
    root = tmp_path / "ids"
    store = SessionStore(root)

    store.save("../evil/x", _snap())

    path = store.path_for("../evil/x")
    assert path.parent == root
    assert path.exists()
    assert not (tmp_path / "evil").exists()


def test_records_lists_sessions_sorted_by_age(tmp_path):
    store = SessionStore(tmp_path)
    store.save("old", _snap(title="old"))
    store.save("new/one", _snap(title="new"))
    os.utime(store.path_for("old"), (1000, 1000))
    (tmp_path / "junk.json").write_text("{not json", encoding="utf-8")

    records = store.records()

    assert [r.session_id for r in records] == ["old", "new/one"]


def test_records_on_missing_directory(tmp_path):
    assert SessionStore(tmp_path / "nope").records() == []


def test_prune_removes_only_old_files(tmp_path):
    store = SessionStore(tmp_path)
    store.save("old", _snap())
    store.save("fresh", _snap())
    (tmp_path / "broken.json").write_text("???", encoding="utf-8")
    os.utime(store.path_for("old"), (1000, 1000))
    os.utime(tmp_path / "broken.json", (1000, 1000))

    removed = store.prune(3600, now=10_000)

    assert removed == 2
    assert store.load("fresh") is not None
    assert not store.path_for("old").exists()
