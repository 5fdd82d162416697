import logging
import os

from typing import Dict, Iterable, List

logger = logging.getLogger(__name__)

# Limit the size of each file to avoid huge files blowing up the context.
FILE_SIZE_LIMIT = 40000

IGNORED_DIRECTORIES = {
    ".git",
    ".hg",
    ".svn",
    "__pycache__",
    "node_modules",
    ".venv",
    "venv",
    ".mypy_cache",
    ".pytest_cache",
    ".tox",
    "dist",
    "build",
}


def _walk_directory(path: str) -> List[str]:
    found = []
    for dirpath, dirnames, filenames in os.walk(path):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRECTORIES)
        for fname in sorted(filenames):
            found.append(os.path.join(dirpath, fname))
    return found


def expand_paths(paths: Iterable[str]) -> List[str]:
    """Expands directories into the files they contain, relative to the cwd."""
    expanded = []
    for path in paths:
        absolute = os.path.abspath(path)
        if os.path.isdir(absolute):
            candidates = _walk_directory(absolute)
        else:
            candidates = [absolute]

        for candidate in candidates:
            relative = os.path.relpath(candidate)
            if relative not in expanded:
                expanded.append(relative)
    return expanded


def read_text_file(path: str, max_chars: int = FILE_SIZE_LIMIT) -> str:
    with open(path, "r", encoding="utf-8") as f:
        content = f.read(max_chars)
        if len(content) == max_chars and f.read(1):
            content += "\n... (file content truncated)"
        return content


def load_context(paths: Iterable[str]) -> Dict[str, str]:
    """
    Reads the files the user wants the model to see.

    Missing, unreadable and binary files are skipped.
    """
    context = {}
    for path in expand_paths(paths):
        if not os.path.isfile(path):
            logger.debug("Skipping '%s': not a file", path)
            continue
        try:
            context[path] = read_text_file(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Skipping '%s': %s", path, e)
    return context


def format_context(context: Dict[str, str]) -> str:
    return "\n".join(
        f"### Contents of {path}\n\n{content}\n\n" for path, content in context.items()
    )
