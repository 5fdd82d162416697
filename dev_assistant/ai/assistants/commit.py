import asyncio

from typing import Dict, Optional

from rich.console import Console

from ...errors import SubprocessError
from ...utils.git import commit_with_message, get_diff
from ...utils.text import extract_markdown
from ..llm import CompletionRequest, RequestClient, create_client

COMMIT_PROMPT = """
Generate a concise and meaningful commit message based on the code diff below.

Use the Conventional Commits format: a summary line of at most 72 characters
such as "feat: add user login" or "fix(parser): handle empty input", followed
by a blank line and a short body explaining what changed and why, as a
bulleted list when there are several changes.

Return only the commit message inside a single ```markdown code block.

==== begin diff =====
{diff}
==== end diff =====
"""


def commit_message_prompt(diff: str) -> str:
    return COMMIT_PROMPT.format(diff=diff).strip()


async def _generate_commit_message(
    client: RequestClient, diff: str, confirm: bool = True
) -> str:
    raw_message = await client.generate_text(
        CompletionRequest(commit_message_prompt(diff)), confirm=confirm
    )
    return extract_markdown(raw_message)


def commit(config: Dict, model: Optional[str] = None, silent: Optional[bool] = None):
    """Generates a commit message for the uncommitted changes and commits them."""
    console = Console()
    diff = get_diff()
    if not diff:
        console.print("[red]No changes to commit.[/]")
        return

    client = create_client(config, model=model, silent=silent)
    message = asyncio.run(_generate_commit_message(client, diff))

    try:
        commit_with_message(message)
    except SubprocessError:
        console.print("[red]Commit was canceled or failed.[/]")
