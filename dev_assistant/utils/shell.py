"""
Helpers around the external programs the assistant pipes text into.
"""

import logging
import os
import platform
import shlex
import shutil
import subprocess

from typing import List, Optional

from ..errors import SubprocessError

logger = logging.getLogger(__name__)

DEFAULT_PAGER = "less -R"


def pipe_to_command(args: List[str], text: str, check: bool = True) -> int:
    """
    Runs `args`, writes `text` to its standard input and waits for it to exit.

    A program closing its input before reading everything (e.g. quitting a
    pager early) is not an error.

    Raises:
        SubprocessError: the program is missing or, when `check` is set,
            exited with a non-zero status.
    """
    command = " ".join(args)
    try:
        process = subprocess.Popen(args, stdin=subprocess.PIPE)
    except (FileNotFoundError, PermissionError) as e:
        raise SubprocessError(
            f"Command not found: '{args[0]}'", command=command, original_error=e
        ) from e

    try:
        process.stdin.write(text.encode("utf-8"))
    except BrokenPipeError:
        logger.debug("'%s' closed its input early", command)
    finally:
        try:
            process.stdin.close()
        except BrokenPipeError:
            pass
        returncode = process.wait()

    if check and returncode != 0:
        raise SubprocessError(
            f"'{command}' exited with status {returncode}",
            command=command,
            returncode=returncode,
        )
    return returncode


def get_pager() -> List[str]:
    return shlex.split(os.getenv("PAGER") or DEFAULT_PAGER)


def page(text: str) -> int:
    """Shows `text` in the user's pager. Returns the pager exit status."""
    return pipe_to_command(get_pager(), text, check=False)


def _clipboard_commands() -> List[List[str]]:
    system = platform.system()
    if system == "Darwin":
        return [["pbcopy"]]
    if system == "Windows":
        return [["clip"]]
    return [
        ["wl-copy"],
        ["xclip", "-selection", "clipboard"],
        ["xsel", "--clipboard", "--input"],
    ]


def find_clipboard_command() -> Optional[List[str]]:
    for args in _clipboard_commands():
        if shutil.which(args[0]):
            return args
    return None


def copy_to_clipboard(text: str):
    """
    Copies text to the system clipboard.

    Raises:
        SubprocessError: no clipboard program is installed or it failed.
    """
    args = find_clipboard_command()
    if args is None:
        raise SubprocessError("No clipboard program found (tried pbcopy, wl-copy, xclip, xsel).")
    pipe_to_command(args, text)
