import os
import re

from typing import Dict

_CODE_BLOCK = re.compile(r"```[^\n`]*\n(.*?)\n?```", re.DOTALL)
_MARKDOWN_BLOCK = re.compile(r"```markdown\n(.*?)\n?```", re.DOTALL)
_BOLD = re.compile(r"\*\*(.+?)\*\*")


def extract_markdown(response: str) -> str:
    """Returns the content of the first ```markdown block, or the whole response."""
    match = _MARKDOWN_BLOCK.search(response)
    if match:
        return match.group(1).strip()
    return response.strip()


def extract_files_and_content(response: str) -> Dict[str, str]:
    """
    Finds the files a model answer talks about.

    A file is a fenced code block preceded by its path in bold, e.g.
    "**src/app.py**". When several bold strings appear between two blocks,
    the closest one to the block wins.
    """
    files = {}
    previous_end = 0
    for match in _CODE_BLOCK.finditer(response):
        names = _BOLD.findall(response[previous_end : match.start()])
        previous_end = match.end()
        if not names:
            continue

        file_name = names[-1].strip().strip("`").strip()
        if file_name:
            files[file_name] = match.group(1).strip()
    return files


def save_generated_files(files: Dict[str, str], root: str = "."):
    """Writes every extracted file below `root`, creating directories as needed."""
    root_path = os.path.abspath(root)
    for file_name, content in files.items():
        path = os.path.abspath(os.path.join(root_path, file_name))
        if os.path.commonpath([root_path, path]) != root_path:
            raise ValueError(f"Refusing to write '{file_name}' outside of '{root}'.")

        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content if content.endswith("\n") else content + "\n")
