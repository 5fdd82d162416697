"""
The `ai` package talks to the LLM providers: adapters for their wire formats,
the streaming request client and the assistants built on top of it.
"""

from .llm import CompletionRequest, RequestClient, StreamListener, create_client
from .assistants.chat import chat
from .assistants.code import code
from .assistants.commit import commit
from .assistants.models import list_models
from .assistants.review import review
from .assistants.sh import sh
from .assistants.unittests import unittests


__all__ = [
    "CompletionRequest",
    "RequestClient",
    "StreamListener",
    "create_client",
    "chat",
    "code",
    "commit",
    "list_models",
    "review",
    "sh",
    "unittests",
]
