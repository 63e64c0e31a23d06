# uad: Centralized Pydantic v2 models for the action protocol, execution reports, projects and transcript turns.

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .fs import normalize_path


class CustomBaseModel(BaseModel):
    """Immutable pydantic base model; values are created once and passed around read-only."""
    model_config = ConfigDict(frozen=True)


class ActionKind(str, Enum):
    CREATE = "CREATE"
    EDIT = "EDIT"
    DELETE = "DELETE"


class Action(CustomBaseModel):
    """One file mutation proposed by the assistant. `kind` keeps the raw keyword, known or not."""

    file_path: str = Field(..., description="Path relative to the project root")
    kind: str = Field(..., description="CREATE, EDIT or DELETE as sent by the assistant")
    code: str = Field("", description="Full file contents for CREATE/EDIT")

    @property
    def known_kind(self) -> Optional[ActionKind]:
        try:
            return ActionKind(self.kind)
        except ValueError:
            return None


class WireAction(BaseModel):
    """Wire shape of one entry of the `actions` array."""
    model_config = ConfigDict(extra="ignore")

    file_path: str
    action: str
    code: str

    # uad: Only genuine strings are accepted; numbers or nulls in these fields make the entry malformed.
    @field_validator("file_path", "action", "code", mode="before")
    @classmethod
    def _require_str(cls, v):
        if not isinstance(v, str):
            raise ValueError("must be a string")
        return v


class AiResponse(BaseModel):
    """Top-level wire object: {"type": "ai_response", "actions": [...]}."""
    model_config = ConfigDict(extra="ignore")

    type: str = "ai_response"
    actions: List[WireAction] = Field(default_factory=list)


class ParseResult(CustomBaseModel):
    """Outcome of parsing one assistant response."""

    actions: Tuple[Action, ...] = ()
    malformed: bool = False
    error: str = ""
    skipped: int = Field(0, description="Entries dropped by lenient parsing")


class OutcomeKind(str, Enum):
    CREATED = "created"
    EDITED = "edited"
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    PATH_ESCAPE = "path_escape"
    UNKNOWN_ACTION = "unknown_action"
    IO_ERROR = "io_error"


SUCCESS_OUTCOMES = (OutcomeKind.CREATED, OutcomeKind.EDITED, OutcomeKind.DELETED)


class ActionOutcome(CustomBaseModel):
    file_path: str
    kind: str
    status: OutcomeKind
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status in SUCCESS_OUTCOMES

    def describe(self) -> str:
        text = f"{self.status.value}: {self.file_path}"
        if self.status == OutcomeKind.UNKNOWN_ACTION:
            text += f" (action {self.kind!r})"
        if self.detail:
            text += f" ({self.detail})"
        return text


class ExecutionReport(CustomBaseModel):
    """Ordered per-action outcomes of one applied batch."""

    outcomes: Tuple[ActionOutcome, ...] = ()

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    @property
    def failures(self) -> List[ActionOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def summary(self) -> str:
        applied = len(self.outcomes) - len(self.failures)
        return f"{applied} of {len(self.outcomes)} action(s) applied, {len(self.failures)} failed."


class Project(CustomBaseModel):
    """A named project mapped 1:1 to <projects_dir>/<name>/."""

    name: str
    language: str = ""
    projects_dir: str = Field(..., description="Directory holding every project root")

    @field_validator("projects_dir")
    @classmethod
    def _normalize_dir(cls, v: str) -> str:
        return normalize_path(v)

    @computed_field
    @property
    def root_path(self) -> str:
        return f"{self.projects_dir}/{self.name}/"


class Turn(CustomBaseModel):
    """One persisted (user, assistant) exchange."""

    user: str
    assistant: str
