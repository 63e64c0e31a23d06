# uad: Filesystem helpers: short ids, project-root path resolution with containment checks, and the small write/remove/list primitives used by the executor and the stores.

import os
import pathlib
import shutil
import tempfile
import uuid
from typing import List


class PathEscapeError(ValueError):
    """Raised when a relative action path would resolve outside its project root."""

    def __init__(self, rel: str, root: pathlib.Path) -> None:
        super().__init__(f"Path escapes project root {root}: {rel}")
        self.rel = rel
        self.root = root


def short_id(prefix: str) -> str:
    """Return a short unique identifier with the given prefix (e.g., chat-1a2b3c4d)."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def normalize_path(p: str) -> str:
    """Normalize a filesystem path to POSIX-style string (forward slashes)."""
    return str(pathlib.PurePath(p).as_posix())


# uad: Containment is checked on fully resolved paths so '..' segments and symlinks pointing out of the root are both caught.
def resolve_in_root(root: pathlib.Path, rel: str) -> pathlib.Path:
    """
    Resolve a root-relative path and reject escapes outside root.

    Absolute paths are rejected outright; the root itself does not need to
    exist yet.
    """
    if os.path.isabs(rel) or pathlib.PureWindowsPath(rel).is_absolute():
        raise PathEscapeError(rel, root)
    root_abs = pathlib.Path(root).resolve()
    abs_path = (root_abs / rel).resolve()
    try:
        abs_path.relative_to(root_abs)
    except ValueError:
        raise PathEscapeError(rel, root_abs)
    return abs_path


def write_text(abs_path: pathlib.Path, content: str) -> None:
    """Write text to abs_path atomically, creating parent directories."""
    abs_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", delete=False, dir=abs_path.parent, prefix=f".{abs_path.name}.", suffix=".uad-tmp"
        ) as f:
            tmp = pathlib.Path(f.name)
            f.write(content)
        os.replace(tmp, abs_path)
        tmp = None
    finally:
        if tmp is not None and tmp.exists():
            tmp.unlink()


def remove_path(abs_path: pathlib.Path) -> None:
    """Remove a file or a directory tree. Raises FileNotFoundError if nothing is there."""
    if abs_path.is_dir() and not abs_path.is_symlink():
        shutil.rmtree(abs_path)
    elif abs_path.exists() or abs_path.is_symlink():
        abs_path.unlink()
    else:
        raise FileNotFoundError(str(abs_path))


def list_tree(root: pathlib.Path) -> List[str]:
    """Walk root and return root-relative file paths (POSIX), sorted."""
    paths: List[str] = []
    if not root.is_dir():
        return paths
    for current, dirs, files in os.walk(root):
        dirs.sort()
        for name in files:
            full = pathlib.Path(current) / name
            paths.append(normalize_path(os.path.relpath(full, root)))
    return sorted(paths)


def count_lines(s: str) -> int:
    """Return the number of lines in a string, handling trailing newline gracefully."""
    if not s:
        return 0
    return s.count("\n") + (0 if s.endswith("\n") else 1)
