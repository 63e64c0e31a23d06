# uad: Project store: enumerate, define, materialize, rename and delete project directories under the projects root.

import pathlib
import shutil
from typing import List, Optional

from .config import LANGUAGE_MARKER
from .context import Context
from .executor import materialize_root
from .fs import list_tree
from .models import Project


class ProjectNotFoundError(LookupError):
    pass


class ProjectExistsError(FileExistsError):
    pass


class InvalidNameError(ValueError):
    pass


def validate_name(name: str, what: str = "project") -> str:
    """Return the stripped name if it is usable as a single directory segment."""
    name = (name or "").strip()
    if not name:
        raise InvalidNameError(f"{what} name must not be empty")
    if name in (".", "..") or "/" in name or "\\" in name:
        raise InvalidNameError(f"invalid {what} name: {name!r}")
    return name


class ProjectStore:
    """
    Authoritative view of the projects on disk.

    A directory under the projects root is a project iff it holds a
    language.txt marker. Defining a project (create) and materializing its
    directory are separate steps; the executor also materializes lazily.
    """

    def __init__(self, projects_dir: pathlib.Path, ctx: Optional[Context] = None) -> None:
        self.projects_dir = pathlib.Path(projects_dir)
        self.ctx = ctx

    def _project(self, name: str, language: str) -> Project:
        return Project(name=name, language=language, projects_dir=str(self.projects_dir))

    def list(self) -> List[Project]:
        """Return every directory carrying a language marker, sorted by name."""
        if not self.projects_dir.is_dir():
            return []
        projects: List[Project] = []
        for entry in sorted(self.projects_dir.iterdir(), key=lambda p: p.name):
            if not entry.is_dir():
                continue
            marker = entry / LANGUAGE_MARKER
            if not marker.is_file():
                continue
            try:
                language = marker.read_text(encoding="utf-8").strip()
            except (OSError, UnicodeDecodeError) as e:
                if self.ctx:
                    self.ctx.log(f"Skipping project {entry.name}: unreadable {LANGUAGE_MARKER} ({e})")
                continue
            projects.append(self._project(entry.name, language))
        return projects

    def get(self, name: str) -> Project:
        for p in self.list():
            if p.name == name:
                return p
        raise ProjectNotFoundError(f"project not found: {name}")

    def create(self, name: str, language: str) -> Project:
        """Define a new project value. Its directory is materialized later."""
        name = validate_name(name)
        project = self._project(name, (language or "").strip())
        if pathlib.Path(project.root_path).exists():
            raise ProjectExistsError(f"a project named {name!r} already exists")
        return project

    def materialize(self, project: Project) -> Project:
        """Create the project directory and language marker if missing. Idempotent."""
        materialize_root(project)
        if self.ctx:
            self.ctx.log(f"Project directory ready: {project.root_path}")
        return project

    def delete(self, project: Project) -> None:
        root = pathlib.Path(project.root_path)
        if not root.exists():
            raise ProjectNotFoundError(f"project not found: {project.name}")
        shutil.rmtree(root)
        if self.ctx:
            self.ctx.log(f"Deleted project: {project.name}")

    def rename(self, project: Project, new_name: str) -> Project:
        """Move the project directory and return the renamed value; the original is left untouched on failure."""
        new_name = validate_name(new_name)
        src = pathlib.Path(project.root_path)
        renamed = project.model_copy(update={"name": new_name})
        dst = pathlib.Path(renamed.root_path)
        if dst.exists():
            raise ProjectExistsError(f"a project named {new_name!r} already exists")
        if not src.exists():
            raise ProjectNotFoundError(f"project not found: {project.name}")
        shutil.move(str(src), str(dst))
        if self.ctx:
            self.ctx.log(f"Renamed project {project.name!r} to {new_name!r}")
        return renamed

    def list_files(self, project: Project) -> List[str]:
        """Root-relative file paths inside the project."""
        return list_tree(pathlib.Path(project.root_path))
