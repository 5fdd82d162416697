import logging
import math

from typing import Callable, Optional

from rich.console import Console

from ..errors import SubprocessError, UserCancelled
from ..utils import shell
from ..utils.terminal import ask_yes_no

logger = logging.getLogger(__name__)


def estimate_tokens(text: str) -> int:
    """Rough token count (1 token ~= 4 chars)."""
    return math.ceil(len(text) / 4)


class ConfirmationGate:
    """
    Asks the user before a prompt leaves the machine.

    The user sees the approximate size of the prompt, can read it in a pager
    and has to confirm again before it is sent. Any "no" raises
    `UserCancelled`. In silent mode every prompt is approved.
    """

    def __init__(
        self,
        silent: bool = False,
        console: Optional[Console] = None,
        pager: Optional[Callable[[str], int]] = None,
    ):
        self.silent = silent
        self.console = console or Console()
        self.pager = pager or shell.page

    def approve(self, prompt: str, endpoint: str):
        if self.silent:
            return

        token_count = estimate_tokens(prompt)
        if not ask_yes_no(
            f"Do you want to review the ~{token_count:,} token prompt before sending it to {endpoint}? [Yn]: ",
            default=True,
        ):
            raise UserCancelled()

        try:
            returncode = self.pager(prompt)
        except SubprocessError as e:
            logger.debug("Pager unavailable: %s", e)
            self.console.print(f"[yellow]Could not open the pager ({e.message}), skipping preview.[/]")
        else:
            if returncode != 0:
                self.console.print("[red]The pager exited with an error.[/]")
                raise UserCancelled()

        if not ask_yes_no("Do you still want to continue? [Yn]: ", default=True):
            raise UserCancelled()
