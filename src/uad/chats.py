# uad: Chat storage (one directory and plain-text transcript per chat) and the ChatSession state machine that owns the approval-gated request cycle.

from __future__ import annotations

import pathlib
import shutil
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .client import BackendError, ChatBackend
from .config import CONV_CAP_TURNS, HISTORY_FILE
from .context import Context
from .executor import apply_actions
from .fs import short_id
from .models import ExecutionReport, ParseResult, Project, Turn
from .projects import ProjectStore, validate_name
from .prompts import get_prompt
from .protocol import parse_response

USER_LABEL = "User: "
ASSISTANT_LABEL = "Assistant: "


class ChatNotFoundError(LookupError):
    pass


class SessionStateError(RuntimeError):
    """An operation was attempted in a session state that does not allow it."""


class ChatStore:
    """Chat directories under the chats root, each holding history.txt."""

    def __init__(self, chats_dir: pathlib.Path) -> None:
        self.chats_dir = pathlib.Path(chats_dir)

    def chat_dir(self, name: str) -> pathlib.Path:
        return self.chats_dir / validate_name(name, "chat")

    def transcript_path(self, name: str) -> pathlib.Path:
        return self.chat_dir(name) / HISTORY_FILE

    def exists(self, name: str) -> bool:
        return self.chat_dir(name).is_dir()

    def list_chats(self) -> List[str]:
        if not self.chats_dir.is_dir():
            return []
        return sorted(p.name for p in self.chats_dir.iterdir() if p.is_dir())

    def delete_chat(self, name: str) -> None:
        path = self.chat_dir(name)
        if not path.is_dir():
            raise ChatNotFoundError(f"chat not found: {name}")
        shutil.rmtree(path)


ESCAPE = "\\"


def _escape(message: str) -> str:
    first, *rest = message.split("\n")
    escaped = [ESCAPE + line if line.startswith((USER_LABEL, ASSISTANT_LABEL, ESCAPE)) else line for line in rest]
    return "\n".join([first] + escaped)


def format_turn(user: str, assistant: str) -> str:
    """
    Render one exchange the way it is appended to history.txt.

    Continuation lines that would read as a label (or that start with the
    escape character) get a leading backslash, which parse_transcript strips.
    """
    return f"{USER_LABEL}{_escape(user)}\n{ASSISTANT_LABEL}{_escape(assistant)}\n"


def parse_transcript(text: str) -> List[Turn]:
    """
    Split a transcript back into turns.

    A line starting with 'User: ' opens a turn, 'Assistant: ' starts its reply,
    and any other line continues whichever message is open. Text before the
    first 'User: ' line is ignored.
    """
    turns: List[Turn] = []
    user: Optional[List[str]] = None
    assistant: Optional[List[str]] = None

    def flush() -> None:
        if user is not None:
            turns.append(Turn(user="\n".join(user), assistant="\n".join(assistant or [])))

    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    for line in lines:
        if line.startswith(USER_LABEL):
            flush()
            user, assistant = [line[len(USER_LABEL):]], None
            continue
        if line.startswith(ASSISTANT_LABEL) and user is not None and assistant is None:
            assistant = [line[len(ASSISTANT_LABEL):]]
            continue
        if line.startswith(ESCAPE):
            line = line[len(ESCAPE):]
        if assistant is not None:
            assistant.append(line)
        elif user is not None:
            user.append(line)
    flush()
    return turns


class SessionState(str, Enum):
    CREATED = "created"
    AWAITING_PROJECT = "awaiting_project"
    BOUND = "bound"
    CONVERSING = "conversing"
    CLOSED = "closed"


@dataclass(frozen=True)
class Proposal:
    """An assistant response waiting at the approval gate."""

    user_input: str
    response_text: str
    parsed: ParseResult
    project: Project
    scaffold: bool = False


class ChatSession:
    """
    One conversational thread bound to exactly one project.

    Lifecycle: CREATED -> AWAITING_PROJECT -> BOUND -> CONVERSING -> CLOSED.
    Nothing on disk changes between a request and its approval; only accept()
    writes project files and the transcript.
    """

    def __init__(
        self,
        name: str,
        chats: ChatStore,
        projects: ProjectStore,
        backend: ChatBackend,
        ctx: Context,
        max_turns: int = CONV_CAP_TURNS,
    ) -> None:
        self.id = short_id("chat")
        self.name = validate_name(name, "chat")
        self.chats = chats
        self.projects = projects
        self.backend = backend
        self.ctx = ctx
        self.max_turns = max_turns
        self.state = SessionState.CREATED
        self.project: Optional[Project] = None
        self._turns: List[Turn] = []

    # ---------- state helpers ----------

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise SessionStateError(f"chat {self.name!r} is {self.state.value}; expected {allowed}")

    @property
    def transcript_path(self) -> pathlib.Path:
        return self.chats.transcript_path(self.name)

    def begin_selection(self) -> None:
        self._require(SessionState.CREATED)
        self.state = SessionState.AWAITING_PROJECT

    def select_project(self, project: Project) -> None:
        """Bind the chat to project: materialize its root, create the chat directory and transcript."""
        self._require(SessionState.AWAITING_PROJECT)
        self.projects.materialize(project)
        path = self.transcript_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if not path.exists():
            path.write_text("", encoding="utf-8")
            self.ctx.log(f"Created chat: {self.name}")
        self.project = project
        self.state = SessionState.BOUND
        self.ctx.log(f"Chat {self.name} ({self.id}) bound to project {project.name}")
        self._turns = parse_transcript(self.load_history())

    def start_conversation(self) -> None:
        self._require(SessionState.BOUND)
        self.state = SessionState.CONVERSING

    def close(self) -> None:
        if self.state != SessionState.CLOSED:
            self.ctx.log(f"Closed chat {self.name} ({self.id})")
        self.state = SessionState.CLOSED

    # ---------- transcript ----------

    def load_history(self) -> str:
        self._require(SessionState.BOUND, SessionState.CONVERSING)
        path = self.transcript_path
        if not path.exists():
            return ""
        return path.read_text(encoding="utf-8")

    def append_history(self, user: str, assistant: str) -> None:
        self._require(SessionState.BOUND, SessionState.CONVERSING)
        with self.transcript_path.open("a", encoding="utf-8") as f:
            f.write(format_turn(user, assistant))
        self._turns.append(Turn(user=user, assistant=assistant))

    def clear(self) -> None:
        self._require(SessionState.BOUND, SessionState.CONVERSING)
        self.transcript_path.write_text("", encoding="utf-8")
        self._turns = []
        self.ctx.log(f"Cleared chat: {self.name}")

    def turns(self) -> List[Turn]:
        return list(self._turns)

    def prior_messages(self) -> List[Dict[str, str]]:
        """System preamble followed by the most recent turns as role/content messages."""
        messages = [{"role": "system", "content": get_prompt("prompt_conversation_system.txt")}]
        recent = self._turns[-self.max_turns:] if self.max_turns > 0 else []
        for t in recent:
            messages.append({"role": "user", "content": t.user})
            messages.append({"role": "assistant", "content": t.assistant})
        return messages

    # ---------- request cycle ----------

    def _call_backend(self, prompt: str, history: List[Dict[str, str]]) -> str:
        try:
            return self.backend.generate_response(prompt, history)
        except BackendError:
            raise
        except Exception as e:
            # uad: Anything a backend implementation throws is a backend failure from the session's view.
            raise BackendError(f"{type(e).__name__}: {e}") from e

    def scaffold(self, name: str, language: str, brief: str) -> Proposal:
        """Ask the assistant for the initial file structure of a new project."""
        self._require(SessionState.AWAITING_PROJECT)
        project = self.projects.create(name, language)
        system = get_prompt(
            "prompt_scaffold_system.txt",
            project_name=project.name,
            language=project.language,
            brief=brief.strip(),
        )
        user_input = f"Create the project {project.name!r} ({project.language}): {brief.strip()}"
        response = self._call_backend(user_input, [{"role": "system", "content": system}])
        return Proposal(user_input, response, parse_response(response), project, scaffold=True)

    def request(self, user_input: str) -> Proposal:
        """Send one instruction to the assistant. Raises BackendError without touching any state."""
        self._require(SessionState.CONVERSING)
        response = self._call_backend(user_input, self.prior_messages())
        return Proposal(user_input, response, parse_response(response), self.project)

    def accept(self, proposal: Proposal) -> ExecutionReport:
        """Apply an approved proposal, then record the exchange in the transcript."""
        if proposal.scaffold:
            self._require(SessionState.AWAITING_PROJECT)
            report = apply_actions(proposal.parsed.actions, proposal.project, self.ctx)
            self.select_project(proposal.project)
        else:
            self._require(SessionState.CONVERSING)
            report = apply_actions(proposal.parsed.actions, self.project, self.ctx)
        self.append_history(proposal.user_input, proposal.response_text)
        return report

    def reject(self, proposal: Proposal) -> None:
        """Discard a proposal; neither files nor the transcript change."""
        self._require(SessionState.AWAITING_PROJECT if proposal.scaffold else SessionState.CONVERSING)
        self.ctx.log("Proposal rejected; nothing was applied.")
