#!/usr/bin/env python3

import argparse
import argcomplete
import logging
import sys

from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Dict, List, Optional

from .config import edit_config, load_config
from .errors import AssistantError, ConfigurationError, UserCancelled
from .ai import chat, code, commit, review, sh, unittests, list_models


_available_commands: List["Command"] = []
_ai_config: Dict = {}


@dataclass
class Argument(ABC):
    def __init__(self, help: str, kwargs: Optional[dict] = None):
        self.help = help
        self.kwargs = kwargs if kwargs is not None else {}

    @abstractmethod
    def add_to_parser(self, parser: argparse.ArgumentParser):
        pass


class OptionalArg(Argument):
    def __init__(
        self,
        short_option: str,
        long_option: str,
        help: str,
        kwargs: Optional[dict] = None,
    ):
        super().__init__(help=help, kwargs=kwargs)
        self.short_option = short_option
        self.long_option = long_option

    def add_to_parser(self, parser: argparse.ArgumentParser):
        parser.add_argument(
            self.short_option, self.long_option, help=self.help, **self.kwargs
        )


class PositionalArg(Argument):
    def __init__(self, name: str, help: str, kwargs: Optional[dict] = None):
        super().__init__(help=help, kwargs=kwargs)
        self.name = name

    def add_to_parser(self, parser: argparse.ArgumentParser):
        parser.add_argument(self.name, help=self.help, **self.kwargs)


@dataclass
class Command:
    name: str
    func: Callable
    help: str
    description: str
    args: list[Argument]


def _validate_ai_config():
    global _ai_config
    if not _ai_config:
        try:
            _ai_config = load_config()
        except ConfigurationError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            sys.exit(1)


def command(args: List[Argument], requires_config: bool = True):
    def decorator(func):
        if not func.__name__.startswith("handle_"):
            raise ValueError("Command handler must start with 'handle_'.")

        if not func.__doc__:
            raise ValueError(
                f"Command handler '{func.__name__}' must have a docstring for its help text."
            )

        @wraps(func)
        def wrapper(*args, **kwargs):
            if requires_config:
                _validate_ai_config()
            return func(*args, **kwargs)

        command_name = func.__name__.split("_")[1]
        # Use the first line of the docstring as the help text and
        # the full docstring for the detailed description.
        help_text = func.__doc__.strip().split("\n")[0]
        _available_commands.append(
            Command(command_name, wrapper, help_text, func.__doc__, args)
        )
        return wrapper

    return decorator


SILENT_ARG = OptionalArg(
    short_option="-s",
    long_option="--silent",
    help="Send prompts without asking for confirmation first.",
    kwargs={"action": "store_true"},
)

MODEL_ARG = OptionalArg(
    short_option="-m",
    long_option="--model",
    help="The model to use, e.g. 'openai', 'ollama:llama3' or 'claude:claude-3-5-sonnet-20240620'.",
)

FILES_ARG = OptionalArg(
    short_option="-f",
    long_option="--files",
    help="Files or directories to give to the AI as context.",
    kwargs={"nargs": "+", "default": []},
)


def _model_options(args) -> Dict:
    # Without -s, the 'silent' setting of the configuration file applies.
    return {"model": args.model, "silent": True if args.silent else None}


##############################################################################


@command([FILES_ARG, SILENT_ARG, MODEL_ARG])
def handle_chat(args):
    """Chat with an AI about your code from the command line.
    Answers are streamed as they are generated. Inside the chat, type `copy` or `save` to use
    the last answer, `commit` or `review` to work with your changes and `exit` to quit.
    """
    chat(_ai_config, files=args.files, **_model_options(args))


@command(
    [
        OptionalArg(
            short_option="-p",
            long_option="--prompt",
            help="What the code should do.",
        ),
        OptionalArg(
            short_option="-i",
            long_option="--interactive",
            help="Start an interactive chat session instead.",
            kwargs={"action": "store_true"},
        ),
        FILES_ARG,
        SILENT_ARG,
        MODEL_ARG,
    ]
)
def handle_code(args):
    """Generate code from a prompt, using the given files as context."""
    if args.interactive:
        chat(_ai_config, files=args.files, **_model_options(args))
    elif args.prompt:
        code(_ai_config, args.prompt, files=args.files, **_model_options(args))
    else:
        print("Error: No prompt provided. Use --prompt or --interactive.", file=sys.stderr)
        sys.exit(1)


@command([SILENT_ARG, MODEL_ARG])
def handle_commit(args):
    """Generate a commit message for your uncommitted changes and commit them."""
    commit(_ai_config, **_model_options(args))


@command([SILENT_ARG, MODEL_ARG])
def handle_review(args):
    """Review the changes of the current branch against main/master."""
    review(_ai_config, **_model_options(args))


@command(
    [
        PositionalArg(
            name="prompt",
            help="What the command should do, e.g. 'find files larger than 1GB'.",
        ),
        SILENT_ARG,
        MODEL_ARG,
    ]
)
def handle_sh(args):
    """Generate a shell command based on a prompt, and run it if you agree.
    The AI explains what the command does and warns about risky ones before asking.
    """
    sh(_ai_config, args.prompt, **_model_options(args))


@command([FILES_ARG, SILENT_ARG, MODEL_ARG])
def handle_unittests(args):
    """Generate unit tests for the given files, or for the changes of the current branch."""
    unittests(_ai_config, files=args.files, **_model_options(args))


@command([], requires_config=False)
def handle_models(args):
    """List the supported AI providers and their default models."""
    list_models()


@command([], requires_config=False)
def handle_config(args):
    """Create or edit the configuration file (API keys and models to use)."""
    edit_config()


##############################################################################


def run_cli(argv: Optional[List[str]] = None):
    """
    Parses command-line arguments and executes the corresponding command.

    This function is designed to be testable by allowing arguments to be passed
    directly.

    Args:
        argv: A list of strings representing the command-line arguments.
              If None, `sys.argv[1:]` is used automatically by `parse_args`.
    """
    parser = argparse.ArgumentParser(
        description="Integrate AI into your development workflow: chat about your code, "
        "generate commit messages, code reviews, code and unit tests."
    )
    parser.add_argument(
        "-v", "--verbose", help="Print debug logs to stderr.", action="store_true"
    )
    subparsers = parser.add_subparsers(
        dest="command", help="Sub-commands", required=True
    )

    # Sort commands alphabetically for consistent --help output.
    _available_commands.sort(key=lambda cmd: cmd.name)

    for command in _available_commands:
        subparser = subparsers.add_parser(
            command.name, help=command.help, description=command.description
        )
        for arg in command.args:
            arg.add_to_parser(subparser)
        subparser.set_defaults(func=command.func)

    # Enable argument auto-completion.
    argcomplete.autocomplete(parser)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        args.func(args)
    except UserCancelled as e:
        # Declining to send a prompt is not a failure.
        print(e.message)
        sys.exit(0)
    except AssistantError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        if e.user_hint:
            print(e.user_hint, file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def main():
    """The main entry point for the command-line interface, called by the `devassist` script."""
    run_cli()


if __name__ == "__main__":
    main()
