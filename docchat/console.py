"""Interactive question loop on stdin/stdout."""

import sys
from typing import TextIO

from .config import config
from .conversation import ChatOrchestrator
from .errors import DocChatError
from .memory import Session

logger = config.get_logger(__name__)

EXIT_COMMAND = "exit"
DEFAULT_PROMPT = "\nAsk a question: "


def is_exit_command(line: str) -> bool:
    return line.strip().lower() == EXIT_COMMAND


class ChatConsole:
    """Reads questions line by line and streams answers back.

    A failing question is reported on stderr and the loop keeps going;
    only ``exit`` or end of input stops it.
    """

    def __init__(  # noqa: PLR0913,PLR0917
        self,
        orchestrator: ChatOrchestrator,
        session: Session,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        prompt: str = DEFAULT_PROMPT,
    ) -> None:
        self.orchestrator = orchestrator
        self.session = session
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr
        self.prompt = prompt

    def read_question(self) -> str | None:
        """Prompt and read one line.

        Returns:
            The line without its newline, or None at end of input.
        """
        self.stdout.write(self.prompt)
        self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    def answer(self, question: str) -> None:
        """Stream the answer to ``question`` onto stdout."""
        stream = self.orchestrator.ask(question, self.session)
        try:
            for chunk in stream:
                self.stdout.write(chunk)
                self.stdout.flush()
        finally:
            stream.close()
        self.stdout.write("\n")
        self.stdout.flush()

    def _report(self, message: str) -> None:
        self.stdout.write("\n")
        self.stdout.flush()
        self.stderr.write(f"An error occurred: {message}\n")
        self.stderr.flush()

    def run(self) -> int:
        """Run until ``exit`` or end of input.

        Returns:
            Process exit code, always 0.
        """
        while True:
            question = self.read_question()
            if question is None or is_exit_command(question):
                break
            if not question.strip():
                continue

            try:
                self.answer(question)
            except KeyboardInterrupt:
                self._report("answer interrupted")
            except DocChatError as exc:
                self._report(str(exc))
            except Exception as exc:  # noqa: BLE001
                logger.exception("Unexpected error while answering")
                self._report(str(exc))

        logger.info("Chat session %s ended", self.session.session_id)
        return 0
