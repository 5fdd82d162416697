import logging
import os
import shlex
import subprocess

from typing import List

from ..errors import SubprocessError

logger = logging.getLogger(__name__)

SUGGESTED_COMMIT_FILE = os.path.join(".git", "SUGGESTED_COMMIT_EDITMSG")


def _git(args: List[str]) -> str:
    try:
        result = subprocess.run(
            ["git", *args], capture_output=True, text=True, check=True
        )
    except FileNotFoundError as e:
        raise SubprocessError(
            "git command not found. Is git installed and in your PATH?",
            command="git",
            original_error=e,
        ) from e
    except subprocess.CalledProcessError as e:
        raise SubprocessError(
            f"git {' '.join(args)} failed: {e.stderr.strip()}",
            command=f"git {' '.join(args)}",
            returncode=e.returncode,
            original_error=e,
        ) from e
    return result.stdout


def get_diff() -> str:
    """Uncommitted changes, staged or not."""
    return _git(["diff", "HEAD"]).strip()


def get_default_branch() -> str:
    for branch in ("main", "master"):
        try:
            _git(["rev-parse", "--verify", "--quiet", branch])
            return branch
        except SubprocessError:
            continue
    return "main"


def get_branch_diff() -> str:
    """Changes of the current branch since it diverged from the default branch."""
    base = get_default_branch()
    diff = _git(["diff", f"{base}...HEAD"]).strip()
    return diff or get_diff()


def commit_with_message(message: str):
    """
    Lets the user edit `message` and commit all the changes with it.

    The suggested message goes through a temporary file that is removed
    whatever happens to the commit.
    """
    with open(SUGGESTED_COMMIT_FILE, "w", encoding="utf-8") as f:
        f.write(message)

    try:
        subprocess.run(
            ["git", "commit", "-a", "--edit", "--file", SUGGESTED_COMMIT_FILE], check=True
        )
    except FileNotFoundError as e:
        raise SubprocessError("git command not found.", command="git", original_error=e) from e
    except subprocess.CalledProcessError as e:
        raise SubprocessError(
            "Commit was canceled or failed.",
            command="git commit",
            returncode=e.returncode,
            original_error=e,
        ) from e
    finally:
        try:
            os.remove(SUGGESTED_COMMIT_FILE)
        except FileNotFoundError:
            pass


def is_git_command(command: str) -> bool:
    """Short `git ...` commands typed in a chat session run directly."""
    return command.startswith("git ") and len(command.split(" ")) <= 3


def run_git_command(command: str):
    """Runs a git command typed by the user, output goes to the terminal."""
    logger.debug("Running '%s'", command)
    try:
        subprocess.run(shlex.split(command), check=True)
    except FileNotFoundError as e:
        raise SubprocessError("git command not found.", command=command, original_error=e) from e
    except subprocess.CalledProcessError as e:
        raise SubprocessError(
            f"'{command}' exited with status {e.returncode}",
            command=command,
            returncode=e.returncode,
            original_error=e,
        ) from e
