"""Blocking file-tree helpers used by the lifecycle driver.

Callers run these through ``asyncio.to_thread``.
"""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Sequence


def is_excluded(name: str, patterns: Sequence[str]) -> bool:
    """Case-insensitive substring match of an entry name against patterns."""
    lowered = name.lower()
    return any(p.lower() in lowered for p in patterns if p)


def copy_tree(source: Path, destination: Path, exclude_patterns: Sequence[str] = ()) -> int:
    """Copy ``source`` into ``destination``, skipping excluded names.

    Returns the number of files copied.
    """
    copied = 0

    def ignore(directory: str, names: list[str]) -> list[str]:
        return [n for n in names if is_excluded(n, exclude_patterns)]

    def copy_file(src: str, dst: str) -> str:
        nonlocal copied
        copied += 1
        return shutil.copy2(src, dst)

    destination.mkdir(parents=True, exist_ok=True)
    shutil.copytree(
        source,
        destination,
        ignore=ignore,
        copy_function=copy_file,
        dirs_exist_ok=True,
    )
    return copied


def clear_directory(path: Path) -> list[str]:
    """Delete everything inside ``path``.

    Entries that cannot be removed (locked files) are left in place and
    returned.
    """
    skipped: list[str] = []
    if not path.exists():
        return skipped

    for entry in path.iterdir():
        try:
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        except OSError:
            skipped.append(str(entry))
    return skipped


def backup_directory(path: Path, timestamp: datetime | None = None) -> Path:
    """Copy ``path`` to a timestamped sibling and return the copy's path.

    A second backup within the same second gets a numeric suffix.
    """
    stamp = (timestamp or datetime.now()).strftime("%Y%m%d%H%M%S")
    base = f"{path.name}_backup_{stamp}"
    target = path.with_name(base)
    suffix = 1
    while target.exists():
        target = path.with_name(f"{base}_{suffix}")
        suffix += 1
    shutil.copytree(path, target)
    return target


def has_entries(path: Path) -> bool:
    return path.is_dir() and any(path.iterdir())
