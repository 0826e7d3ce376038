"""Main CLI loop for interactive chat."""

import logging
import sys
from typing import TextIO

from .client import ChatAPIClient
from .config import CLIConfig
from .formatter import ResponseFormatter

logger = logging.getLogger(__name__)


class RiskChatCLI:
    """Interactive CLI for the risk chat API.

    Keeps the session id returned by the server so follow-up messages
    continue the same conversation.  Typing the number of a suggestion
    sends that suggestion.
    """

    def __init__(
        self,
        config: CLIConfig,
        input_stream: TextIO = sys.stdin,
        output_stream: TextIO = sys.stdout,
        client: ChatAPIClient | None = None,
    ):
        self.config = config
        self.input_stream = input_stream
        self.output_stream = output_stream
        self.client = client or ChatAPIClient(config)
        self.formatter = ResponseFormatter(output_stream)
        self.session_id: str | None = None
        self.suggestions: list[str] = []

    async def run(self) -> None:
        """Run the interactive CLI loop."""
        try:
            self._print_welcome()
            while True:
                try:
                    line = self._get_user_input()
                    if not line.strip():
                        continue

                    if line.strip().lower() in ("exit", "quit", "q"):
                        self._print("Goodbye!\n")
                        break

                    await self._process_message(self.resolve_input(line))

                except KeyboardInterrupt:
                    self._print("\n\nInterrupted. Use 'exit' or 'quit' to exit.\n")
                except EOFError:
                    self._print("\nGoodbye!\n")
                    break
        finally:
            await self.client.close()

    def resolve_input(self, line: str) -> str:
        """Map a suggestion number to its text; anything else passes through."""
        stripped = line.strip()
        if stripped.isdigit():
            index = int(stripped) - 1
            if 0 <= index < len(self.suggestions):
                return self.suggestions[index]
        return stripped

    async def _process_message(self, message: str) -> None:
        response = await self.client.chat(message, self.session_id)
        self.session_id = response.get("sessionId") or self.session_id
        self.suggestions = self.formatter.show_response(response)
        self._print("\n")

    def _get_user_input(self) -> str:
        self._print("> ")
        line = self.input_stream.readline()
        if not line:
            raise EOFError
        return line.rstrip("\n\r")

    def _print_welcome(self) -> None:
        self._print("Risk Chat CLI - Interactive Chat Interface\n")
        self._print(f"Connected to: {self.config.chat_url}\n")
        self._print(
            "Type your message and press Enter. Type a suggestion's number to "
            "ask it. Type 'exit' or 'quit' to exit.\n\n"
        )

    def _print(self, text: str) -> None:
        self.output_stream.write(text)
        self.output_stream.flush()


async def main(config: CLIConfig, debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    await RiskChatCLI(config).run()
