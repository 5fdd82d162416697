import asyncio

from typing import Dict, List, Optional

from rich.console import Console

from ...utils.files import format_context, load_context
from ...utils.text import extract_files_and_content, save_generated_files
from ...utils.terminal import ask_yes_no
from ..llm import CompletionRequest, create_client
from ..streaming import stream_to_console

PREAMBLE = (
    "When generating code, don't apologize and wherever possible include filenames "
    "in bold with paths to the code files mentioned and do not be lazy and ask me to "
    "keep the existing code or show things like previous code remains unchanged, "
    "always include existing code in the response."
)


def build_code_prompt(request: str, context: Dict[str, str]) -> str:
    return f"""### Request

{request}

{format_context(context)}

### Current Request

{PREAMBLE}

{request}"""


def offer_to_save(console: Console, response: str):
    """Saves the files found in a model answer, if the user agrees."""
    files = extract_files_and_content(response)
    if not files:
        return

    console.print("\n[bold]Files found in the response:[/]")
    for file_name in files:
        console.print(f"  [green]{file_name}[/]")

    if ask_yes_no(f"Do you want to save {len(files)} file(s)? [y/N] "):
        save_generated_files(files)
        console.print("[green]Files have been saved.[/]")


def code(
    config: Dict,
    prompt: str,
    files: Optional[List[str]] = None,
    model: Optional[str] = None,
    silent: Optional[bool] = None,
):
    """Streams code generated for `prompt`, with `files` as context."""
    console = Console()
    client = create_client(config, model=model, silent=silent)

    full_prompt = build_code_prompt(prompt, load_context(files or []))
    response = asyncio.run(stream_to_console(client, CompletionRequest(full_prompt), console))

    offer_to_save(console, response)
