"""Shared test fixtures for uad."""

import json

import pytest

from uad.chats import ChatSession, ChatStore
from uad.client import BackendError
from uad.context import Context
from uad.projects import ProjectStore


class ScriptedContext(Context):
    """Context that feeds canned input lines and records everything printed."""

    def __init__(self, inputs=None):
        super().__init__()
        self.inputs = list(inputs or [])
        self.output = []
        self.logs = []
        self.errors = []
        self.prompts = []

    def send_to_user(self, message):
        self.output.append(message)

    def log(self, message):
        self.logs.append(message)

    def error_message(self, message):
        self.errors.append(message)

    def ask(self, prompt):
        self.prompts.append(prompt)
        if not self.inputs:
            raise EOFError
        return self.inputs.pop(0)

    @property
    def text(self):
        return "\n".join(self.output)


class FakeBackend:
    """Chat backend returning queued responses; an Exception in the queue is raised instead."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def generate_response(self, prompt, history):
        self.calls.append({"prompt": prompt, "history": [dict(m) for m in history]})
        if not self.responses:
            raise BackendError("no response queued")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def ai_response(*actions):
    """Build a wire-format response from (file_path, action, code) tuples."""
    return json.dumps({
        "type": "ai_response",
        "actions": [{"file_path": p, "action": a, "code": c} for p, a, c in actions],
    })


@pytest.fixture
def workspace(tmp_path):
    ws = tmp_path / "workspace"
    (ws / "Projects").mkdir(parents=True)
    (ws / "Chats").mkdir()
    return ws


@pytest.fixture
def ctx(workspace):
    return ScriptedContext()


@pytest.fixture
def projects(workspace, ctx):
    return ProjectStore(workspace / "Projects", ctx)


@pytest.fixture
def chats(workspace):
    return ChatStore(workspace / "Chats")


@pytest.fixture
def demo_project(projects):
    """A materialized project named demo with language Python."""
    return projects.materialize(projects.create("demo", "Python"))


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def conversing_session(chats, projects, backend, ctx, demo_project):
    """A session bound to demo and in the conversation state."""
    session = ChatSession("main", chats, projects, backend, ctx)
    session.begin_selection()
    session.select_project(demo_project)
    session.start_conversation()
    return session
