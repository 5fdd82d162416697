import asyncio
import enum
import logging

from dataclasses import dataclass
from typing import Dict, List, Optional

from rich.console import Console
from rich.markdown import Markdown

from ...errors import AssistantError, ProviderError, SubprocessError, UserCancelled
from ...utils.files import format_context, load_context
from ...utils.git import commit_with_message, get_branch_diff, get_diff, is_git_command, run_git_command
from ...utils.shell import copy_to_clipboard
from ...utils.terminal import CommandHistory, TerminalLineSource
from ...utils.text import extract_files_and_content, save_generated_files
from ..decoder import StreamDecoder
from ..gate import estimate_tokens
from ..llm import CompletionRequest, RequestClient, create_client
from ..streaming import FragmentPrinter
from .code import PREAMBLE
from .commit import _generate_commit_message
from .review import _do_review

logger = logging.getLogger(__name__)

PROMPT = "assist> "
MULTILINE_MARKER = "```"

WELCOME = """
Welcome to the dev-assistant chat.

Type [bold]```[/] on its own line to paste multiple lines, [bold]copy[/] or [bold]save[/] to use the
last response, [bold]commit[/] or [bold]review[/] to work with your changes and [bold red]exit[/] to quit.
"""


class SessionState(enum.Enum):
    IDLE = "idle"
    AWAITING_INPUT = "awaiting_input"
    STREAMING = "streaming"
    CLOSED = "closed"


@dataclass
class PendingRequest:
    in_flight: bool = False
    prompt_token_estimate: int = 0
    printer: Optional[FragmentPrinter] = None

    @property
    def accumulated_text(self) -> str:
        return self.printer.text if self.printer is not None else ""


def build_chat_prompt(request: str, history: List[Dict], context: Dict[str, str]) -> str:
    """
    The prompt for one chat turn.

    `history` holds the turns before `request`; they are replayed as plain
    `ROLE: content` text so that every provider sees the same conversation.
    """
    previous_turns = "\n\n".join(
        f"{turn['role'].upper()}: {turn['content']}" for turn in history
    )
    return f"""### Request

{request}

{format_context(context)}

### Full Chat History Context

{previous_turns}

### Current Request

{PREAMBLE}

{request}"""


class ChatSession:
    """
    The interactive read-eval-print loop.

    Every line the user enters is either a local command, run right away, or
    a new message for the model. The model answer is streamed to the
    terminal while the session keeps reading input; lines entered before the
    answer is complete are rejected. Only one request is in flight at a time.
    """

    def __init__(
        self,
        client: RequestClient,
        files: Optional[List[str]] = None,
        console: Optional[Console] = None,
        line_source: Optional[TerminalLineSource] = None,
        command_history: Optional[CommandHistory] = None,
    ):
        self.client = client
        self.files = files or []
        self.console = console or Console()
        self.line_source = line_source or TerminalLineSource(PROMPT)
        self.command_history = command_history or CommandHistory()

        self.state = SessionState.IDLE
        self.chat_history: List[Dict] = []
        self.context: Dict[str, str] = {}
        self.pending = PendingRequest()
        self._multiline: Optional[List[str]] = None
        self._stream_task: Optional[asyncio.Task] = None

        self._commands = {
            "copy": self.handle_copy,
            "save": self.handle_save,
            "commit": self.handle_commit,
            "review": self.handle_review,
        }

    async def run(self):
        self.context = load_context(self.files)
        logger.debug("Loaded %d context file(s)", len(self.context))

        self.console.print(WELCOME)
        self.state = SessionState.AWAITING_INPUT

        while self.state != SessionState.CLOSED:
            line = await self.line_source.readline(show_prompt=not self.pending.in_flight)
            if line is None:
                # End of input: let the current answer finish before leaving.
                await self.wait_for_response()
                self.close()
                break
            await self.handle_line(line)

    def close(self):
        self.state = SessionState.CLOSED
        self.console.print("Goodbye!")

    async def wait_for_response(self):
        if self._stream_task is not None:
            await self._stream_task

    async def handle_line(self, line: str):
        if self.pending.in_flight:
            if line.strip():
                self.console.print("[yellow]Please wait for the current request to complete.[/]")
            return

        if self._multiline is not None:
            if line.strip() != MULTILINE_MARKER:
                self._multiline.append(line)
                return
            # A block is always a message, even if it reads like a command.
            message = "\n".join(self._multiline).strip()
            self._multiline = None
            if message:
                self.command_history.add(message)
                await self.submit(message)
            return
        elif line.strip() == MULTILINE_MARKER:
            self._multiline = []
            self.console.print(
                "Entering multiline mode. Type [bold]```[/] on a new line to end.\n"
            )
            return

        command = line.strip()
        if not command:
            return

        self.command_history.add(command)

        if command.lower() == "exit":
            self.close()
            return

        handler = self._commands.get(command)
        if handler is not None:
            await handler()
        elif is_git_command(command):
            self.handle_git_command(command)
        else:
            await self.submit(command)

    # -- Conversation -------------------------------------------------------

    async def submit(self, message: str) -> Optional[asyncio.Task]:
        """
        Sends `message` to the model; the answer streams in the background.

        Returns the task streaming the answer, or None if the message was not
        sent.
        """
        if self.pending.in_flight:
            self.console.print("[yellow]Please wait for the current request to complete.[/]")
            return None

        request = CompletionRequest(build_chat_prompt(message, self.chat_history, self.context))
        try:
            await self.client.confirm(request)
        except UserCancelled as e:
            self.console.print(f"[yellow]{e.message}[/]")
            return None

        self.chat_history.append(RequestClient.format_user_message(message))
        printer = FragmentPrinter(StreamDecoder(self.client.adapter), self.console)
        self.pending = PendingRequest(
            in_flight=True,
            prompt_token_estimate=estimate_tokens(request.prompt),
            printer=printer,
        )
        self.state = SessionState.STREAMING
        self._stream_task = asyncio.create_task(self._stream_answer(request, printer))
        return self._stream_task

    async def _stream_answer(self, request: CompletionRequest, printer: FragmentPrinter):
        try:
            await self.client.stream(request, printer, confirm=False)
        except Exception as e:
            # Whatever happens, the session must get back to reading input.
            logger.exception("Unexpected error while streaming")
            printer.on_error(AssistantError(str(e), original_error=e))
        finally:
            self._finish_answer(printer)

    def _finish_answer(self, printer: FragmentPrinter):
        self.console.print()
        if printer.error is None:
            self.chat_history.append(
                RequestClient.format_assistant_message(printer.text.strip())
            )
        else:
            self._report_request_error(printer.error)

        self.pending = PendingRequest()
        if self.state == SessionState.STREAMING:
            self.state = SessionState.AWAITING_INPUT
            self.console.print(PROMPT, end="", markup=False, highlight=False)

    def _report_request_error(self, error: AssistantError):
        tokens = f"{self.pending.prompt_token_estimate:,}"
        status = error.status_code if isinstance(error, ProviderError) else None
        self.console.print(
            f"\n[red]Error processing a ~{tokens} token prompt:[/] {error.message} "
            f"({status or 'unknown'})"
        )
        if error.user_hint:
            self.console.print(f"[dim]{error.user_hint}[/]")

    def last_response(self) -> Optional[str]:
        for turn in reversed(self.chat_history):
            if turn["role"] == "assistant":
                return turn["content"]
        return None

    # -- Local commands -----------------------------------------------------

    async def handle_copy(self):
        response = self.last_response()
        if response is None:
            self.console.print("[red]No response to copy.[/]")
            return
        try:
            copy_to_clipboard(response)
        except SubprocessError as e:
            self.console.print(f"[red]Could not copy to clipboard: {e.message}[/]")
            return
        self.console.print("Last response copied to clipboard.")

    async def handle_save(self):
        response = self.last_response()
        if response is None:
            self.console.print("[red]No response to save files from.[/]")
            return

        files = extract_files_and_content(response)
        if not files:
            self.console.print("No files found to save in the last response.")
            return
        try:
            save_generated_files(files)
        except (OSError, ValueError) as e:
            self.console.print(f"[red]Could not save the files: {e}[/]")
            return
        self.console.print("Files have been saved.")

    async def handle_commit(self):
        try:
            diff = get_diff()
        except SubprocessError as e:
            self.console.print(f"[red]{e.message}[/]")
            return
        if not diff:
            self.console.print("[red]No changes to commit.[/]")
            return

        try:
            message = await _generate_commit_message(self.client, diff)
        except UserCancelled as e:
            self.console.print(f"[yellow]{e.message}[/]")
            return
        except AssistantError as e:
            self.console.print(f"[red]Could not generate a commit message:[/] {e.message}")
            return

        try:
            commit_with_message(message)
        except SubprocessError:
            self.console.print("[red]Commit was canceled or failed.[/]")

    async def handle_review(self):
        try:
            diff = get_branch_diff()
            if not diff:
                self.console.print("[red]No changes to review.[/]")
                return
            analysis = await _do_review(self.client, diff)
        except UserCancelled as e:
            self.console.print(f"[yellow]{e.message}[/]")
            return
        except AssistantError as e:
            self.console.print(f"[red]Error during review:[/] {e.message}")
            return
        self.console.print(Markdown(analysis))

    def handle_git_command(self, command: str):
        try:
            run_git_command(command)
        except SubprocessError as e:
            self.console.print(f"[red]Error running command:[/] {e.message}")


def chat(
    config: Dict,
    files: Optional[List[str]] = None,
    model: Optional[str] = None,
    silent: Optional[bool] = None,
):
    """Starts an interactive chat session with the AI."""
    client = create_client(config, model=model, silent=silent)
    session = ChatSession(client, files=files)
    try:
        asyncio.run(session.run())
    except KeyboardInterrupt:
        session.console.print("\n[yellow]Interrupted.[/] Goodbye!")
