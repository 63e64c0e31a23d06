# uad: Console I/O and logging wrapper shared by the CLI, the session and the executor.

import sys


class Context:
    """
    Thin wrapper around console I/O and logging.

    Business logic never prints directly; it goes through a Context so tests can
    substitute a scripted one that records output and feeds input.
    """

    def __init__(self, quiet: bool = False) -> None:
        self.quiet = quiet

    def send_to_user(self, message: str) -> None:
        """Send a user-facing message to stdout."""
        print(message)

    def log(self, message: str) -> None:
        """Emit a lightweight log line to stdout, prefixed for readability."""
        if self.quiet:
            return
        print(f"[LOG] {message}")

    def error_message(self, message: str) -> None:
        """Print an error message to stderr."""
        print(f"Error: {message}", file=sys.stderr)

    def ask(self, prompt: str) -> str:
        """Read one line from stdin after showing prompt. EOFError propagates to the caller."""
        return input(prompt)

    def confirm(self, question: str) -> bool:
        """Ask a yes/no question; only a literal 'yes' counts as approval."""
        try:
            answer = self.ask(f"{question} (yes/no): ")
        except EOFError:
            return False
        return answer.strip().lower() == "yes"
