import asyncio
import json
import logging
import re
import subprocess
import sys

from dataclasses import dataclass
from typing import Dict, Optional

from rich.console import Console

from ...utils.terminal import ask_yes_no
from ..llm import CompletionRequest, RequestClient, create_client

logger = logging.getLogger(__name__)

SH_PROMPT = """
You are a highly experienced Unix system administrator and command line expert.
Given a natural language task, your goal is to provide a safe and effective shell command.

Your response must be a single JSON object with these keys:
1.  **command**: The corresponding shell command. If no command is suitable, provide an empty string.
2.  **risk_assessment**: A numerical rating of the command's potential risk:
    - 0: Safe to run (e.g., read-only operations like `ls`, `cat`, `grep`).
    - 1: Potentially destructive (e.g., modifies or deletes user files like `mv`, `cp`, `rm`).
    - 2: High risk (e.g., requires `sudo`, alters system files, affects security/availability).
3.  **explanation**: A clear, concise explanation of what the command does.
4.  **disclaimer**: A warning about potential consequences if the risk is 1 or 2. This should be an empty string for risk 0.

Return only the JSON object, optionally inside a ```json code block.

### Task

{task}
"""

_JSON_BLOCK = re.compile(r"```(?:json)?\s*\n(.*?)\n?```", re.DOTALL)


@dataclass
class CommandSuggestion:
    """A command suggested by the AI, with how risky it is to run."""

    command: str
    risk_assessment: int
    explanation: str
    disclaimer: str


INVALID_SUGGESTION = CommandSuggestion(
    command="",
    risk_assessment=0,
    explanation="Error: The AI failed to return a valid command.",
    disclaimer="",
)


def _parse_suggestion(response: str) -> CommandSuggestion:
    match = _JSON_BLOCK.search(response)
    text = match.group(1) if match else response
    try:
        data = json.loads(text.strip())
        suggestion = CommandSuggestion(**data)
    except (json.JSONDecodeError, TypeError):
        logger.debug("Unusable command suggestion: %r", response[:200])
        return INVALID_SUGGESTION
    if not isinstance(suggestion.command, str) or not isinstance(suggestion.risk_assessment, int):
        return INVALID_SUGGESTION
    return suggestion


async def _suggest_shell_command(
    client: RequestClient, description: str, confirm: bool = True
) -> CommandSuggestion:
    prompt = SH_PROMPT.format(task=description).strip()
    response = await client.generate_text(CompletionRequest(prompt), confirm=confirm)
    return _parse_suggestion(response)


def sh(
    config: Dict,
    description: str,
    model: Optional[str] = None,
    silent: Optional[bool] = None,
):
    """Suggests a shell command for a task and runs it if the user agrees."""
    client = create_client(config, model=model, silent=silent)
    result = asyncio.run(_suggest_shell_command(client, description))
    if not result.command:
        print("Could not generate a command for the given prompt.", file=sys.stderr)
        sys.exit(1)

    console = Console()
    console.print("Suggested command:", style="bold")
    console.print(f"  {result.command}\n", markup=False, highlight=False)
    console.print("Explanation:", style="bold")
    console.print(f"  {result.explanation}\n", markup=False)

    if result.risk_assessment > 0 and result.disclaimer:
        console.print("⚠️  Disclaimer:", style="bold yellow")
        console.print(f"  {result.disclaimer}\n", markup=False)

    if ask_yes_no("Do you want to run this command? [y/N] "):
        subprocess.run(result.command, shell=True, check=False)
