"""Workspace watcher as an activity source."""

import os

from coding_tracker.watcher import WorkspaceWatcher


def test_first_scan_only_records_baseline(tmp_path, store, make_tracker):
    (tmp_path / "main.py").write_text("print('hi')\n")
    watcher = WorkspaceWatcher(make_tracker(store), tmp_path)
    assert watcher.scan() == []
    assert watcher.scan() == []


def test_changed_files_drive_edits_and_language(tmp_path, store, make_tracker):
    tracker = make_tracker(store)
    source = tmp_path / "main.py"
    source.write_text("print('hi')\n")
    ignored = tmp_path / "node_modules" / "lib.js"
    ignored.parent.mkdir()
    ignored.write_text("")
    watcher = WorkspaceWatcher(tracker, tmp_path)
    watcher.scan()

    (tmp_path / "lib.rs").write_text("fn main() {}\n")
    stat = source.stat()
    os.utime(source, (stat.st_atime, stat.st_mtime - 100))
    os.utime(ignored, (stat.st_atime, stat.st_mtime + 100))

    assert watcher.poll_once() == 2
    assert tracker.monitor.received == 2
    tracker.pump()
    assert tracker.current_language() == "Rust"
