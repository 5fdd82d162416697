import asyncio

from typing import Dict, List, Optional

from rich.console import Console
from rich.markdown import Markdown

from ...utils.files import format_context, load_context
from ...utils.git import get_branch_diff
from ..llm import CompletionRequest, create_client
from .code import PREAMBLE, offer_to_save

UNIT_TESTS_PROMPT = """
Generate unit tests for the code below. Use the testing framework and the
conventions the project already uses, cover edge cases and error paths,
and write each test file in full.

{code}

{preamble}
"""


def unit_tests_prompt(files: Optional[List[str]]) -> str:
    if files:
        code = format_context(load_context(files))
    else:
        code = f"==== begin diff =====\n{get_branch_diff()}\n==== end diff ====="
    return UNIT_TESTS_PROMPT.format(code=code, preamble=PREAMBLE).strip()


def unittests(
    config: Dict,
    files: Optional[List[str]] = None,
    model: Optional[str] = None,
    silent: Optional[bool] = None,
):
    """Generates unit tests for `files`, or for the changes of the current branch."""
    console = Console()
    prompt = unit_tests_prompt(files)

    client = create_client(config, model=model, silent=silent)
    response = asyncio.run(client.generate_text(CompletionRequest(prompt)))

    console.print(Markdown(response))
    offer_to_save(console, response)
