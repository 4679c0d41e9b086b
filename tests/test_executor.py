import os
from pathlib import Path

import pytest

from fleetwipe.models import RemovalAction, RunErrors
from fleetwipe.remote import PATH_NOT_FOUND, LocalFilesystem, RemoteExecutor
from fleetwipe.remote.filesystems import RemoteFilesystem


class FailingFilesystem(RemoteFilesystem):
    """Everything exists, deleting anything in `broken` raises."""

    def __init__(self, broken):
        self.broken = set(broken)
        self.removed = []
        self.existsCalls = []

    def exists(self, path):
        self.existsCalls.append(path)
        return path not in self.removed

    def removeTree(self, path):
        if path in self.broken:
            raise PermissionError("Permission denied: '{}'".format(path))
        self.removed.append(path)


class LingeringFilesystem(RemoteFilesystem):
    """Deletes report success but the path is still there afterwards, like a slow network share."""

    def exists(self, path):
        return True

    def removeTree(self, path):
        pass


def test_missing_path_is_reported_not_raised(tmp_path: Path):
    missing = str(tmp_path / "none")
    results = RemoteExecutor("hostX", LocalFilesystem()).execute([missing])

    assert len(results) == 1
    r = results[0]
    assert r.host == "hostX"
    assert r.path == missing
    assert r.action == RemovalAction.NONE
    assert r.existedBefore is False
    assert r.existsAfter is False
    assert r.error == PATH_NOT_FOUND == "Path not found"


def test_file_and_directory_tree_are_removed(tmp_path: Path):
    f = tmp_path / "a"
    f.write_text("x")
    tree = tmp_path / "tree"
    (tree / "nested" / "deeper").mkdir(parents=True)
    (tree / "nested" / "deeper" / "file.log").write_text("log")
    (tree / "top.txt").write_text("top")

    results = RemoteExecutor("hostX", LocalFilesystem()).execute([str(f), str(tree)])

    assert [r.path for r in results] == [str(f), str(tree)]
    for r in results:
        assert r.action == RemovalAction.REMOVED
        assert r.existedBefore is True
        assert r.existsAfter is False
        assert r.error is None
        assert r.timestamp.tzinfo is not None
    assert not f.exists()
    assert not tree.exists()


def test_failure_does_not_stop_the_batch_and_keeps_exists_after():
    fs = FailingFilesystem(broken=["/locked"])
    errors = RunErrors()
    results = RemoteExecutor("hostY", fs, errors).execute(["/first", "/locked", "/last"])

    assert [r.path for r in results] == ["/first", "/locked", "/last"]
    failed = results[1]
    assert failed.action == RemovalAction.REMOVED
    assert failed.existedBefore is True
    assert failed.existsAfter is True
    assert "Permission denied" in failed.error
    # no second look at the path after the failed delete
    assert fs.existsCalls.count("/locked") == 1

    assert results[0].error is None and results[0].existsAfter is False
    assert results[2].error is None and results[2].existsAfter is False
    assert fs.removed == ["/first", "/last"]
    assert errors.pathErrors == [("hostY", "/locked", failed.error)]


def test_recheck_after_failure_observes_the_path_again():
    fs = FailingFilesystem(broken=["/locked"])
    results = RemoteExecutor("hostY", fs, recheckAfterFailure=True).execute(["/locked"])

    assert fs.existsCalls.count("/locked") == 2
    assert results[0].existsAfter is True
    assert results[0].error is not None


def test_exists_after_reflects_what_is_really_there():
    results = RemoteExecutor("hostZ", LingeringFilesystem()).execute(["/slow/share"])

    r = results[0]
    assert r.action == RemovalAction.REMOVED
    assert r.existsAfter is True
    assert r.error is None


def test_missing_paths_are_recorded_in_run_errors(tmp_path: Path):
    errors = RunErrors()
    RemoteExecutor("hostX", LocalFilesystem(), errors).execute([str(tmp_path / "gone")])

    assert errors.pathErrors == [("hostX", str(tmp_path / "gone"), PATH_NOT_FOUND)]
    assert errors.hostFailures == []


def test_symlink_is_removed_without_touching_its_target(tmp_path: Path):
    target = tmp_path / "keep"
    target.mkdir()
    (target / "data").write_text("important")
    link = tmp_path / "link"
    link.symlink_to(target, target_is_directory=True)

    results = RemoteExecutor("hostX", LocalFilesystem()).execute([str(link)])

    assert results[0].existsAfter is False
    assert (target / "data").read_text() == "important"


def test_local_tree_keeps_going_past_an_entry_it_cannot_remove(tmp_path: Path, monkeypatch):
    tree = tmp_path / "tree"
    (tree / "sub").mkdir(parents=True)
    for name in ("a", "locked", "z"):
        (tree / name).write_text(name)
    (tree / "sub" / "b").write_text("b")

    realUnlink = os.unlink

    def unlink(path, *args, **kwargs):
        if os.path.basename(path) == "locked":
            raise PermissionError(13, "Permission denied", "locked")
        return realUnlink(path, *args, **kwargs)

    monkeypatch.setattr(os, "unlink", unlink)

    with pytest.raises(PermissionError):
        LocalFilesystem().removeTree(str(tree))

    assert sorted(p.name for p in tree.iterdir()) == ["locked"]
