# uad: CLI entrypoint. Interactive project menu (explicit loop) followed by the approval-gated conversation loop.

import pathlib
import sys
from typing import Any, Dict, List, Optional

from .chats import ChatNotFoundError, ChatSession, ChatStore, Proposal, SessionStateError
from .client import BackendError, ChatBackend, ChatCompletionsClient
from .config import CHATS_DIR, KEY_FILE, OPENAI_API_KEY, PROJECTS_DIR
from .context import Context
from .models import Project
from .projects import InvalidNameError, ProjectExistsError, ProjectNotFoundError, ProjectStore
from .protocol import describe_actions
from .settings import load_settings, resolve_dir, settings_section

MENU = "Choose an action: (1) Select existing project, (2) Create new project, (3) Delete project, (4) Rename project, (5) List chats, (6) Delete chat, (7) Quit"

# uad: Domain errors caught at the menu/conversation boundary; each is printed and the session stays interactive.
RECOVERABLE_ERRORS = (
    BackendError,
    ChatNotFoundError,
    InvalidNameError,
    ProjectExistsError,
    ProjectNotFoundError,
    SessionStateError,
    OSError,
)


def resolve_api_key(ctx: Context, workspace: pathlib.Path, settings: Dict[str, Any]) -> Optional[str]:
    """
    Find an OpenAI API key: environment, then settings.api.api_key, then the saved key
    file, finally an interactive prompt whose answer is saved to the key file.

    Returns None when an Azure provider is configured (the client reads its own key).
    """
    api_cfg = settings_section(settings, "api")
    if str(api_cfg.get("provider") or "").lower() == "azure":
        return None
    if OPENAI_API_KEY:
        return OPENAI_API_KEY
    if api_cfg.get("api_key"):
        return str(api_cfg["api_key"])
    key_path = workspace / KEY_FILE
    if key_path.is_file():
        key = key_path.read_text(encoding="utf-8").strip()
        if key:
            return key
    key = ctx.ask("Please enter your OpenAI API key: ").strip()
    if key:
        try:
            key_path.write_text(key + "\n", encoding="utf-8")
            ctx.send_to_user(f"API key saved to {key_path}.")
        except OSError as e:
            ctx.error_message(f"Could not save API key to {key_path}: {e}")
    return key or None


class Workbench:
    """
    Interactive front end: picks a chat name, runs the project menu until a
    project is bound, then the conversation loop until 'exit'.
    """

    def __init__(
        self,
        workspace: pathlib.Path,
        ctx: Optional[Context] = None,
        backend: Optional[ChatBackend] = None,
        model: Optional[str] = None,
    ) -> None:
        self.workspace = workspace.resolve()
        self.settings = load_settings(self.workspace)
        self.ctx = ctx or Context()
        paths = settings_section(self.settings, "paths")
        self.projects = ProjectStore(resolve_dir(self.workspace, paths.get("projects"), PROJECTS_DIR), self.ctx)
        self.chats = ChatStore(resolve_dir(self.workspace, paths.get("chats"), CHATS_DIR))
        self.chats.chats_dir.mkdir(parents=True, exist_ok=True)
        self._backend = backend
        self.model = model

    @property
    def backend(self) -> ChatBackend:
        if self._backend is None:
            api_key = resolve_api_key(self.ctx, self.workspace, self.settings)
            self._backend = ChatCompletionsClient(api_key=api_key, model=self.model, settings=self.settings, ctx=self.ctx)
        return self._backend

    # ---------- helpers ----------

    def _choose_project(self, heading: str) -> Optional[Project]:
        projects = self.projects.list()
        if not projects:
            self.ctx.send_to_user("No projects found.")
            return None
        self.ctx.send_to_user(heading)
        for i, p in enumerate(projects, start=1):
            self.ctx.send_to_user(f"{i}. {p.name} ({p.language})")
        raw = self.ctx.ask("> ").strip()
        if raw.isdigit() and 1 <= int(raw) <= len(projects):
            return projects[int(raw) - 1]
        self.ctx.send_to_user("Invalid selection, please try again.")
        return None

    def review(self, proposal: Proposal, question: str) -> bool:
        """Show a proposal and ask for approval."""
        parsed = proposal.parsed
        if parsed.malformed:
            self.ctx.send_to_user(f"Assistant response:\n{proposal.response_text}")
            self.ctx.error_message(f"Could not read any actions from the response: {parsed.error}")
        elif not parsed.actions:
            self.ctx.send_to_user("The assistant proposed no file actions.")
        else:
            self.ctx.send_to_user(f"Proposed actions for {proposal.project.root_path}:")
            for line in describe_actions(parsed.actions):
                self.ctx.send_to_user(f"  {line}")
        if parsed.skipped:
            self.ctx.send_to_user(f"({parsed.skipped} malformed action(s) were dropped.)")
        return self.ctx.confirm(question)

    def _report(self, report) -> None:
        self.ctx.send_to_user(report.summary())

    def _create_project(self, session: ChatSession) -> bool:
        name = self.ctx.ask("Enter a project name: ").strip()
        language = self.ctx.ask("Enter the programming language: ").strip()
        brief = self.ctx.ask("Enter the briefest possible project description: ").strip()
        self.ctx.send_to_user("Requesting the initial project structure...")
        try:
            proposal = session.scaffold(name, language, brief)
        except KeyboardInterrupt:
            self.ctx.send_to_user("\nRequest cancelled.")
            return False
        if self.review(proposal, "Do you approve the execution of these commands?"):
            self._report(session.accept(proposal))
            self.ctx.send_to_user(f"Created project: {proposal.project.name}")
            return True
        session.reject(proposal)
        self.ctx.send_to_user("Project creation was not approved. No chat will be opened.")
        return False

    # ---------- loops ----------

    def project_menu(self, session: ChatSession) -> bool:
        """Run the project menu until a project is bound (True) or the user quits (False)."""
        session.begin_selection()
        while True:
            self.ctx.send_to_user(MENU)
            choice = self.ctx.ask("> ").strip()
            try:
                if choice == "1":
                    project = self._choose_project("Select an existing project:")
                    if project is not None:
                        session.select_project(project)
                        return True
                elif choice == "2":
                    if self._create_project(session):
                        return True
                elif choice == "3":
                    project = self._choose_project("Select a project to delete:")
                    if project is not None and self.ctx.confirm(f"Delete project {project.name!r} and all its files?"):
                        self.projects.delete(project)
                        self.ctx.send_to_user(f"Deleted project: {project.name}")
                elif choice == "4":
                    project = self._choose_project("Select a project to rename:")
                    if project is not None:
                        new_name = self.ctx.ask("Enter the new name for the project: ").strip()
                        renamed = self.projects.rename(project, new_name)
                        self.ctx.send_to_user(f'Renamed project from "{project.name}" to "{renamed.name}"')
                elif choice == "5":
                    chats = self.chats.list_chats()
                    self.ctx.send_to_user("Available chats:" if chats else "No chats yet.")
                    for name in chats:
                        self.ctx.send_to_user(f"- {name}")
                elif choice == "6":
                    chat_name = self.ctx.ask("Enter the name of the chat you want to delete: ").strip()
                    if chat_name == session.name:
                        self.ctx.error_message("Cannot delete the chat that is currently open.")
                    else:
                        self.chats.delete_chat(chat_name)
                        self.ctx.send_to_user(f"Deleted chat: {chat_name}")
                elif choice == "7":
                    self.ctx.send_to_user("Exiting...")
                    return False
                else:
                    self.ctx.send_to_user("Invalid choice, please try again.")
            except RECOVERABLE_ERRORS as e:
                self.ctx.error_message(str(e))

    def handle_user_input(self, session: ChatSession, text: str) -> None:
        """Handle one line of conversation input: a ':' command or an instruction for the assistant."""
        if text == ":help":
            self.ctx.send_to_user("Commands: :history, :clear, :files, :help, exit")
            return
        if text == ":history":
            self.ctx.send_to_user(session.load_history() or "(empty)")
            return
        if text == ":clear":
            session.clear()
            self.ctx.send_to_user(f"Cleared chat: {session.name}")
            return
        if text == ":files":
            files = self.projects.list_files(session.project)
            self.ctx.send_to_user("\n".join(files) if files else "(no files)")
            return

        try:
            proposal = session.request(text)
        except KeyboardInterrupt:
            self.ctx.send_to_user("\nRequest cancelled.")
            return
        if self.review(proposal, "Do you approve script execution?"):
            self.ctx.send_to_user("Processing commands...")
            self._report(session.accept(proposal))
        else:
            session.reject(proposal)
            self.ctx.send_to_user("Instructions have been rejected; history was left unchanged.")

    def conversation(self, session: ChatSession) -> None:
        session.start_conversation()
        self.ctx.send_to_user(f"Chat {session.name!r} is bound to project {session.project.name!r} ({session.project.root_path}).")
        files = self.projects.list_files(session.project)
        if files:
            self.ctx.send_to_user("Project files:\n" + "\n".join(f"  {f}" for f in files))
        self.ctx.send_to_user("Let's write some real code! Review generated code carefully and decompose tasks as much as possible.")
        self.ctx.send_to_user("Type 'exit' to end the conversation, ':help' for commands.\n")
        while True:
            text = self.ctx.ask("> ").strip()
            if not text:
                self.ctx.send_to_user("Please enter a valid input.")
                continue
            if text.lower() == "exit":
                break
            try:
                self.handle_user_input(session, text)
            except RECOVERABLE_ERRORS as e:
                self.ctx.error_message(str(e))

    def run(self) -> None:
        """Start the interactive session."""
        self.ctx.send_to_user(f"UAD workspace: {self.workspace}")
        session: Optional[ChatSession] = None
        try:
            try:
                backend = self.backend
            except BackendError as e:
                self.ctx.error_message(str(e))
                return
            while session is None:
                chat_name = self.ctx.ask("Enter a chat name to create a new chat or open an existing one: ").strip()
                try:
                    session = ChatSession(chat_name, self.chats, self.projects, backend, self.ctx)
                except InvalidNameError as e:
                    self.ctx.error_message(str(e))
            if self.chats.exists(session.name):
                self.ctx.send_to_user(f"Opening existing chat: {session.name}")
            if not self.project_menu(session):
                return
            history = session.load_history()
            if history:
                self.ctx.send_to_user(f"Chat history:\n{history}")
            self.conversation(session)
        except EOFError:
            self.ctx.send_to_user("\nGoodbye.")
        finally:
            if session is not None:
                session.close()


def main(argv: Optional[List[str]] = None) -> None:
    """
    UAD CLI entrypoint.

    Usage:
        uad [--workspace PATH|-w PATH] [--model MODEL] [--quiet|-q]

    Notes:
        - OPENAI_API_KEY (or a saved user_key.txt) and AI_MODEL configure the backend.
        - Projects/ and Chats/ live under the workspace (current directory by default).
    """
    args = sys.argv[1:] if argv is None else list(argv)

    if any(a in ("-h", "--help") for a in args):
        print("Usage: uad [--workspace PATH|-w PATH] [--model MODEL] [--quiet|-q]")
        print("Options:")
        print("  -w, --workspace PATH   Directory holding Projects/ and Chats/ (default: current directory).")
        print("  --model MODEL          Model id or Azure deployment name.")
        print("  -q, --quiet            Suppress [LOG] lines.")
        print("Environment:")
        print("  OPENAI_API_KEY, AI_MODEL, UAD_PROJECTS_DIR, UAD_CHATS_DIR, UAD_KEY_FILE")
        return

    workspace_arg: Optional[str] = None
    model: Optional[str] = None
    quiet = False
    i = 0
    while i < len(args):
        a = args[i]
        if a in ("-w", "--workspace", "--model"):
            if i + 1 >= len(args):
                print(f"error: {a} requires an argument")
                return
            if a == "--model":
                model = args[i + 1]
            else:
                workspace_arg = args[i + 1]
            i += 2
            continue
        if a.startswith("--workspace="):
            workspace_arg = a.split("=", 1)[1]
        elif a.startswith("--model="):
            model = a.split("=", 1)[1]
        elif a in ("-q", "--quiet"):
            quiet = True
        else:
            print(f"error: unknown option: {a}")
            return
        i += 1

    workspace = pathlib.Path(workspace_arg).resolve() if workspace_arg else pathlib.Path(".").resolve()
    ctx = Context(quiet=quiet)
    Workbench(workspace, ctx=ctx, model=model).run()


if __name__ == "__main__":
    main()
