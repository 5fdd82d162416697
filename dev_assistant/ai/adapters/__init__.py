"""
Provider adapters, selected by the tag of a `<provider>:<model>` string.
"""

from typing import Dict, Tuple, Type

from ...errors import ConfigurationError
from .base import Adapter, Fragment, JSONLinesAdapter, ServerSentEventsAdapter
from .claude import ClaudeAdapter
from .gpt4all import GPT4AllAdapter
from .ollama import OllamaAdapter
from .openai import OpenAIAdapter

ADAPTERS: Dict[str, Type[Adapter]] = {
    adapter.name: adapter
    for adapter in (ClaudeAdapter, OpenAIAdapter, OllamaAdapter, GPT4AllAdapter)
}


def parse_model(model_spec: str) -> Tuple[str, str]:
    """Splits `claude:claude-3-opus` into ("claude", "claude-3-opus")."""
    provider, _, model = model_spec.strip().partition(":")
    return provider.lower(), model


def get_adapter(model_spec: str) -> Adapter:
    provider, model = parse_model(model_spec)
    adapter_class = ADAPTERS.get(provider)
    if adapter_class is None:
        supported = ", ".join(sorted(ADAPTERS))
        raise ConfigurationError(
            f"Unsupported provider: '{provider}'. Supported providers are: {supported}."
        )
    return adapter_class(model)


__all__ = [
    "ADAPTERS",
    "Adapter",
    "ClaudeAdapter",
    "Fragment",
    "GPT4AllAdapter",
    "JSONLinesAdapter",
    "OllamaAdapter",
    "OpenAIAdapter",
    "ServerSentEventsAdapter",
    "get_adapter",
    "parse_model",
]
