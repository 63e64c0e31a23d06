# uad: Apply a parsed action batch to a project's file tree, best effort and in order.

import pathlib
from typing import Iterable, List, Optional

from .config import LANGUAGE_MARKER
from .context import Context
from .fs import PathEscapeError, remove_path, resolve_in_root, write_text
from .models import Action, ActionKind, ActionOutcome, ExecutionReport, OutcomeKind, Project


def materialize_root(project: Project) -> pathlib.Path:
    """Create the project root (and its language marker) if missing; return the resolved root."""
    root = pathlib.Path(project.root_path)
    root.mkdir(parents=True, exist_ok=True)
    marker = root / LANGUAGE_MARKER
    if not marker.exists():
        marker.write_text(project.language.strip() + "\n", encoding="utf-8")
    return root.resolve()


def _apply_one(root: pathlib.Path, action: Action) -> ActionOutcome:
    def outcome(status: OutcomeKind, detail: str = "") -> ActionOutcome:
        return ActionOutcome(file_path=action.file_path, kind=action.kind, status=status, detail=detail)

    try:
        abs_path = resolve_in_root(root, action.file_path)
    except PathEscapeError as e:
        return outcome(OutcomeKind.PATH_ESCAPE, str(e))
    except ValueError as e:
        # uad: The OS refuses some names outright, e.g. an embedded NUL byte.
        return outcome(OutcomeKind.IO_ERROR, f"invalid path: {e}")

    kind = action.known_kind
    if kind is None:
        return outcome(OutcomeKind.UNKNOWN_ACTION)
    if abs_path == root:
        return outcome(OutcomeKind.IO_ERROR, "path refers to the project root")

    try:
        if kind == ActionKind.CREATE:
            write_text(abs_path, action.code)
            return outcome(OutcomeKind.CREATED)
        if kind == ActionKind.EDIT:
            write_text(abs_path, action.code)
            return outcome(OutcomeKind.EDITED)
        remove_path(abs_path)
        return outcome(OutcomeKind.DELETED)
    except FileNotFoundError:
        if kind == ActionKind.DELETE:
            return outcome(OutcomeKind.NOT_FOUND)
        return outcome(OutcomeKind.IO_ERROR, f"parent directory vanished: {abs_path.parent}")
    except OSError as e:
        return outcome(OutcomeKind.IO_ERROR, f"{type(e).__name__}: {e}")


def apply_actions(actions: Iterable[Action], project: Project, ctx: Optional[Context] = None) -> ExecutionReport:
    """
    Apply actions to the project's root in order.

    A failing action is recorded in the report and never stops the actions after
    it; nothing is rolled back. Paths escaping the root are rejected per action.
    """
    try:
        root = materialize_root(project)
    except OSError as e:
        # uad: Without a root every action fails the same way; report each so the batch stays accounted for.
        failed = [
            ActionOutcome(file_path=a.file_path, kind=a.kind, status=OutcomeKind.IO_ERROR, detail=f"cannot create project root: {e}")
            for a in actions
        ]
        if ctx:
            ctx.error_message(f"Cannot create project root {project.root_path}: {e}")
        return ExecutionReport(outcomes=tuple(failed))

    outcomes: List[ActionOutcome] = []
    for action in actions:
        result = _apply_one(root, action)
        outcomes.append(result)
        if ctx:
            if result.ok:
                ctx.log(result.describe())
            else:
                ctx.error_message(result.describe())
    return ExecutionReport(outcomes=tuple(outcomes))
