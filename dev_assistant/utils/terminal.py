"""
Line input for the interactive session.
"""

import asyncio
import logging
import threading

from collections import deque
from typing import Callable, List, Optional

try:
    import readline
except ImportError:  # Windows
    readline = None

logger = logging.getLogger(__name__)

HISTORY_SIZE = 1000


class CommandHistory:
    """
    The lines entered in a session, most recent first.

    Holds at most `capacity` entries and ignores a line identical to the
    previous one. Entries are mirrored to readline so the arrow keys recall
    them while typing.
    """

    def __init__(self, capacity: int = HISTORY_SIZE, use_readline: bool = True):
        self.capacity = capacity
        self._entries = deque(maxlen=capacity)
        self._readline = readline if use_readline else None
        if self._readline is not None:
            self._readline.clear_history()
            self._readline.set_history_length(capacity)
            self._readline.set_auto_history(False)

    def add(self, line: str):
        if not line or (self._entries and self._entries[0] == line):
            return
        self._entries.appendleft(line)
        if self._readline is not None:
            self._readline.add_history(line)

    def recall(self, index: int) -> Optional[str]:
        """The `index`-th most recent line (0 is the last one), None if out of range."""
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    @property
    def entries(self) -> List[str]:
        return list(self._entries)

    def __len__(self):
        return len(self._entries)


class TerminalLineSource:
    """
    Reads lines typed by the user without blocking the event loop.

    `input()` runs in a daemon thread, so a streaming response keeps being
    rendered while the user types, and an interrupted session can exit
    without waiting for a line that never comes. Returns None at end of input.
    """

    def __init__(self, prompt: str = "> ", input_func: Callable[[str], str] = input):
        self.prompt = prompt
        self._input = input_func

    def _read(self, prompt: str) -> Optional[str]:
        try:
            return self._input(prompt)
        except EOFError:
            return None
        except KeyboardInterrupt:
            # Ctrl-C on an empty prompt behaves like a blank line.
            print()
            return ""

    async def readline(self, show_prompt: bool = True) -> Optional[str]:
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        prompt = self.prompt if show_prompt else ""

        def deliver(line, error):
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(line)

        def read_in_thread():
            line, error = None, None
            try:
                line = self._read(prompt)
            except Exception as e:
                error = e
            try:
                loop.call_soon_threadsafe(deliver, line, error)
            except RuntimeError:
                logger.debug("Event loop closed before the line was delivered")

        threading.Thread(target=read_in_thread, name="line-reader", daemon=True).start()
        return await future


def ask_yes_no(question: str, default: bool = False) -> bool:
    """Asks a y/n question. A blank answer picks `default`; Ctrl-C and EOF mean no."""
    try:
        answer = input(question).strip().lower()
    except (KeyboardInterrupt, EOFError):
        return False
    if not answer:
        return default
    return answer in ("y", "yes")
