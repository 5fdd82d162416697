"""
Loading of the user configuration file.

The configuration lives in `~/.dev-assistant.json` and looks like:

    {
        "primary_model": "claude:claude-3-5-sonnet-20240620",
        "models": {"claude:claude-3-5-sonnet-20240620": "<api key>"},
        "silent": false
    }

`models` maps a `<provider>:<model>` string (or just a provider tag) to the
API key used for it.
"""

import json
import logging
import os
import subprocess

from typing import Dict

from .ai.adapters import get_adapter
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "DEV_ASSISTANT_CONFIG"
DEFAULT_CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".dev-assistant.json")

CONFIG_TEMPLATE = {
    "primary_model": "openai:gpt-4o",
    "models": {
        "openai:gpt-4o": "<your OpenAI API key>",
        "claude:claude-3-5-sonnet-20240620": "<your Anthropic API key>",
        "ollama:llama3": "",
    },
    "silent": False,
}


def get_config_path() -> str:
    return os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH


def validate_config(config) -> Dict:
    if not isinstance(config, dict):
        raise ConfigurationError("The configuration file must contain a JSON object.")

    primary_model = config.get("primary_model")
    if not isinstance(primary_model, str) or not primary_model.strip():
        raise ConfigurationError("No 'primary_model' found in the configuration file.")
    # Unknown provider tags fail here rather than on the first request.
    get_adapter(primary_model)

    models = config.get("models", {})
    if not isinstance(models, dict):
        raise ConfigurationError("'models' must map '<provider>:<model>' to an API key.")

    return config


def _create_config(config_path: str):
    """Write the config template and let the user edit it with $EDITOR."""
    print(f"Configuration file not found at '{config_path}'.")
    try:
        answer = input("Do you want to create one now? [y/N] ")
    except (KeyboardInterrupt, EOFError):
        answer = ""

    if answer.strip().lower() != "y":
        raise ConfigurationError("Configuration is required to talk to an AI provider.")

    os.makedirs(os.path.dirname(config_path) or ".", exist_ok=True)
    with open(config_path, "w") as config_file:
        json.dump(CONFIG_TEMPLATE, config_file, indent=2)

    editor = os.getenv("EDITOR", "vi")
    print(f"Opening '{config_path}' with {editor}. Fill in your API keys and save it.")
    try:
        subprocess.run([editor, config_path], check=False)
    except FileNotFoundError as e:
        raise ConfigurationError(
            f"Could not find editor '{editor}'. Edit '{config_path}' manually.",
            original_error=e,
        ) from e


def load_config(create_if_missing: bool = True) -> Dict:
    """
    Reads and validates the configuration file.

    Raises:
        ConfigurationError: if the file is missing (and the user does not want
            to create it), unreadable or malformed.
    """
    config_path = get_config_path()

    if not os.path.exists(config_path):
        if not create_if_missing:
            raise ConfigurationError(f"Configuration file not found at '{config_path}'.")
        _create_config(config_path)

    try:
        with open(config_path, "r") as config_file:
            config = json.load(config_file)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Error reading or parsing '{config_path}': {e}", original_error=e
        ) from e

    logger.debug("Loaded configuration from %s", config_path)
    return validate_config(config)


def edit_config():
    """Opens the configuration file in $EDITOR, creating it first if needed."""
    config_path = get_config_path()
    if not os.path.exists(config_path):
        _create_config(config_path)
        return

    editor = os.getenv("EDITOR", "vi")
    try:
        subprocess.run([editor, config_path], check=False)
    except FileNotFoundError as e:
        raise ConfigurationError(
            f"Could not find editor '{editor}'. Edit '{config_path}' manually.",
            original_error=e,
        ) from e
    print(f"Configuration saved to {config_path}")
