import logging

from typing import List, Optional

from rich.console import Console

from ..errors import AssistantError
from .decoder import StreamDecoder
from .llm import CompletionRequest, RequestClient, StreamListener

logger = logging.getLogger(__name__)


class FragmentPrinter(StreamListener):
    """
    Decodes a streaming response and writes its text to the terminal as it arrives.

    Once the request is over, `completed` or `error` tell how it ended and
    `text` holds everything that was printed.
    """

    def __init__(self, decoder: StreamDecoder, console: Console):
        self.decoder = decoder
        self.console = console
        self.fragments: List[str] = []
        self.completed = False
        self.error: Optional[AssistantError] = None

    @property
    def text(self) -> str:
        return "".join(self.fragments)

    def _print(self, fragments):
        for fragment in fragments:
            if not fragment.text:
                continue
            self.fragments.append(fragment.text)
            self.console.print(
                fragment.text, end="", markup=False, highlight=False, soft_wrap=True
            )

    def on_bytes(self, chunk: bytes):
        self._print(self.decoder.feed(chunk))

    def on_complete(self):
        try:
            self._print(self.decoder.finish())
        except AssistantError as e:
            self.on_error(e)
            return
        self.completed = True

    def on_error(self, error: AssistantError):
        self.decoder.close()
        self.error = error


async def stream_to_console(
    client: RequestClient,
    request: CompletionRequest,
    console: Console,
    confirm: bool = True,
) -> str:
    """
    Streams the answer to `request` to the terminal and returns its full text.

    Raises:
        AssistantError: the request failed or was cancelled.
    """
    printer = FragmentPrinter(StreamDecoder(client.adapter), console)
    await client.stream(request, printer, confirm=confirm)
    console.print()
    if printer.error is not None:
        raise printer.error
    return printer.text
