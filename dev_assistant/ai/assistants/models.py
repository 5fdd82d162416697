from rich.console import Console
from rich.table import Table

from ..adapters import ADAPTERS


def list_models():
    """Prints the supported providers, their default model and whether they need an API key."""
    table = Table(title="Supported providers")
    table.add_column("Provider", style="bold")
    table.add_column("Default model")
    table.add_column("Endpoint")
    table.add_column("API key")

    for name in sorted(ADAPTERS):
        adapter = ADAPTERS[name]()
        table.add_row(
            name,
            adapter.default_model,
            adapter.endpoint(),
            "required" if adapter.requires_api_key else "-",
        )

    console = Console()
    console.print(table)
    console.print("Select one with [bold]--model <provider>[:<model>][/], e.g. --model ollama:llama3")
