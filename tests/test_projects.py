"""Tests for the project store."""

import pathlib

import pytest

from uad.projects import (
    InvalidNameError,
    ProjectExistsError,
    ProjectNotFoundError,
    ProjectStore,
)


class TestList:
    def test_only_marked_directories_are_projects(self, workspace, projects):
        root = workspace / "Projects"
        (root / "a").mkdir()
        (root / "a" / "language.txt").write_text("  Go\n", encoding="utf-8")
        (root / "b").mkdir()
        (root / "c").write_text("not a directory", encoding="utf-8")

        listed = projects.list()
        assert len(listed) == 1
        assert listed[0].name == "a"
        assert listed[0].language == "Go"

    def test_missing_projects_root_lists_nothing(self, tmp_path):
        assert ProjectStore(tmp_path / "nowhere").list() == []

    def test_sorted_by_name(self, projects):
        for name in ("zeta", "alpha", "mid"):
            projects.materialize(projects.create(name, "C"))
        assert [p.name for p in projects.list()] == ["alpha", "mid", "zeta"]

    def test_get(self, projects, demo_project):
        assert projects.get("demo") == demo_project
        with pytest.raises(ProjectNotFoundError):
            projects.get("nope")


class TestCreate:
    def test_create_defines_without_touching_disk(self, workspace, projects):
        project = projects.create("new", "Swift")
        assert project.root_path == f"{(workspace / 'Projects').as_posix()}/new/"
        assert not (workspace / "Projects" / "new").exists()

    def test_materialize_is_idempotent(self, projects):
        project = projects.create("new", "Swift")
        projects.materialize(project)
        marker = pathlib.Path(project.root_path) / "language.txt"
        marker.write_text("Swift 5\n", encoding="utf-8")
        projects.materialize(project)
        assert marker.read_text(encoding="utf-8") == "Swift 5\n"

    def test_existing_directory_is_refused(self, projects, demo_project):
        with pytest.raises(ProjectExistsError):
            projects.create("demo", "Python")

    @pytest.mark.parametrize("name", ["", "   ", "..", "a/b", "a\\b"])
    def test_invalid_names(self, projects, name):
        with pytest.raises(InvalidNameError):
            projects.create(name, "Python")


class TestDelete:
    def test_delete_removes_tree(self, projects, demo_project):
        (pathlib.Path(demo_project.root_path) / "src").mkdir()
        projects.delete(demo_project)
        assert not pathlib.Path(demo_project.root_path).exists()
        assert projects.list() == []

    def test_delete_absent_project(self, projects):
        with pytest.raises(ProjectNotFoundError):
            projects.delete(projects.create("ghost", "Go"))


class TestRename:
    def test_rename_moves_directory_and_updates_value(self, projects, demo_project):
        (pathlib.Path(demo_project.root_path) / "main.py").write_text("x", encoding="utf-8")
        renamed = projects.rename(demo_project, "demo2")
        assert renamed.name == "demo2"
        assert renamed.root_path.endswith("/demo2/")
        assert renamed.language == "Python"
        assert (pathlib.Path(renamed.root_path) / "main.py").read_text(encoding="utf-8") == "x"
        assert not pathlib.Path(demo_project.root_path).exists()

    def test_rename_onto_existing_leaves_both_untouched(self, projects, demo_project):
        other = projects.materialize(projects.create("other", "Go"))
        with pytest.raises(ProjectExistsError):
            projects.rename(demo_project, "other")
        assert pathlib.Path(demo_project.root_path).is_dir()
        assert projects.get("other") == other
        assert demo_project.name == "demo"

    def test_rename_absent_source(self, projects):
        with pytest.raises(ProjectNotFoundError):
            projects.rename(projects.create("ghost", "Go"), "ghost2")


class TestListFiles:
    def test_relative_posix_paths(self, projects, demo_project):
        root = pathlib.Path(demo_project.root_path)
        (root / "src" / "pkg").mkdir(parents=True)
        (root / "src" / "pkg" / "mod.py").write_text("", encoding="utf-8")
        assert projects.list_files(demo_project) == ["language.txt", "src/pkg/mod.py"]
