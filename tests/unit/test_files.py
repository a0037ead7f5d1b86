"""Unit tests for file-tree helpers."""

import shutil
from datetime import datetime
from pathlib import Path

from sitedeploy.hosting.files import (
    backup_directory,
    clear_directory,
    copy_tree,
    has_entries,
    is_excluded,
)


def test_is_excluded_is_case_insensitive_substring():
    assert is_excluded("Demo.PDB", [".pdb"])
    assert is_excluded("node_modules", ["MODULES"])
    assert not is_excluded("app.dll", [".pdb", ""])


def test_copy_tree_skips_excluded(app_dir: Path, tmp_path: Path):
    destination = tmp_path / "out"

    copied = copy_tree(app_dir, destination, ["logs", ".pdb"])

    assert copied == 3
    assert (destination / "bin" / "Demo.dll").exists()
    assert (destination / "index.html").exists()
    assert not (destination / "logs").exists()
    assert not (destination / "Demo.pdb").exists()


def test_copy_tree_into_existing_directory(app_dir: Path, tmp_path: Path):
    destination = tmp_path / "out"
    destination.mkdir()
    (destination / "keep.txt").write_text("x")

    copy_tree(app_dir, destination)

    assert (destination / "keep.txt").exists()
    assert (destination / "logs" / "old.log").exists()


def test_clear_directory(tmp_path: Path):
    target = tmp_path / "site"
    (target / "sub").mkdir(parents=True)
    (target / "a.txt").write_text("a")
    (target / "sub" / "b.txt").write_text("b")

    skipped = clear_directory(target)

    assert skipped == []
    assert target.exists()
    assert not has_entries(target)


def test_clear_missing_directory(tmp_path: Path):
    assert clear_directory(tmp_path / "missing") == []


def test_backup_directory_name(tmp_path: Path):
    site = tmp_path / "demo_local"
    site.mkdir()
    (site / "index.html").write_text("v1")

    backup = backup_directory(site, datetime(2024, 5, 1, 13, 45, 9))

    assert backup == tmp_path / "demo_local_backup_20240501134509"
    assert (backup / "index.html").read_text() == "v1"


def test_backup_directory_same_second_gets_suffix(tmp_path: Path):
    site = tmp_path / "demo_local"
    site.mkdir()
    (site / "index.html").write_text("v1")
    when = datetime(2024, 5, 1, 13, 45, 9)

    first = backup_directory(site, when)
    (site / "index.html").write_text("v2")
    second = backup_directory(site, when)

    assert first == tmp_path / "demo_local_backup_20240501134509"
    assert second == tmp_path / "demo_local_backup_20240501134509_1"
    assert (first / "index.html").read_text() == "v1"
    assert (second / "index.html").read_text() == "v2"


def test_clear_directory_skips_locked_entries(tmp_path: Path, monkeypatch):
    target = tmp_path / "site"
    (target / "App_Data").mkdir(parents=True)
    (target / "locked.dll").write_text("in use")
    (target / "index.html").write_text("a")
    unlink = Path.unlink

    def locked_unlink(self, missing_ok=False):
        if self.name == "locked.dll":
            raise PermissionError(13, "file in use", str(self))
        return unlink(self, missing_ok=missing_ok)

    def locked_rmtree(path, *args, **kwargs):
        raise OSError(16, "directory in use", str(path))

    monkeypatch.setattr(Path, "unlink", locked_unlink)
    monkeypatch.setattr(shutil, "rmtree", locked_rmtree)

    skipped = clear_directory(target)

    assert sorted(skipped) == sorted([str(target / "App_Data"), str(target / "locked.dll")])
    assert not (target / "index.html").exists()
    assert (target / "locked.dll").exists()
