import asyncio

from typing import Dict, Optional

from rich.console import Console
from rich.markdown import Markdown

from ...errors import SubprocessError
from ...utils.git import get_branch_diff
from ...utils.shell import copy_to_clipboard
from ...utils.terminal import ask_yes_no
from ..llm import CompletionRequest, RequestClient, create_client

REVIEW_PROMPT = """
==== begin diff =====
{diff}
==== end diff =====

Explain why these changes are being made and document a description of these changes.
Also list any bugs in the new code as well as recommended fixes for those bugs with code examples.
Format the output of this code review in Markdown format.
"""


async def _do_review(client: RequestClient, diff: str, confirm: bool = True) -> str:
    prompt = REVIEW_PROMPT.format(diff=diff).strip()
    return await client.generate_text(CompletionRequest(prompt), confirm=confirm)


def review(config: Dict, model: Optional[str] = None, silent: Optional[bool] = None):
    """Reviews the changes of the current branch and offers to copy the review."""
    console = Console()
    diff = get_branch_diff()
    if not diff:
        console.print("[red]No changes to review.[/]")
        return

    client = create_client(config, model=model, silent=silent)
    analysis = asyncio.run(_do_review(client, diff))
    console.print(Markdown(analysis))

    if ask_yes_no("Do you want to copy the analysis to the clipboard? [Yn] ", default=True):
        try:
            copy_to_clipboard(analysis)
            console.print("[green]Analysis copied to clipboard[/]")
        except SubprocessError as e:
            console.print(f"[red]Error: Unable to copy to clipboard. {e.message}[/]")
