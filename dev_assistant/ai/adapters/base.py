import json
import logging

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ...errors import AdapterProtocolError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fragment:
    """A piece of model output decoded from the first `consumed` buffered bytes."""

    text: str
    consumed: int


class Adapter(ABC):
    """
    Translates between the assistant's requests and one LLM provider's wire format.

    Subclasses know where to send a request, how to authenticate it, how to
    shape its JSON body and how to decode the provider's responses, either
    as a whole (`extract_final_response`) or record by record while the
    response is still streaming (`extract_fragment`).
    """

    #: The provider tag used in `<provider>:<model>` strings.
    name: str = ""
    #: Used when the user selects a provider without naming a model.
    default_model: str = ""
    #: Whether `build_headers` needs a non-empty API key.
    requires_api_key: bool = True

    def __init__(self, model: str = ""):
        self.model = model or self.default_model

    @abstractmethod
    def endpoint(self) -> str:
        pass

    @abstractmethod
    def build_payload(
        self, prompt: str, history: Optional[List[Dict]] = None, stream: bool = False
    ) -> Dict:
        pass

    @abstractmethod
    def build_headers(self, api_key: str) -> Dict[str, str]:
        pass

    @abstractmethod
    def extract_fragment(self, buffer: bytes) -> Optional[Fragment]:
        """
        Decodes the next complete record at the start of `buffer`.

        Returns None, consuming nothing, while the buffer does not hold a
        complete record yet. A complete record that can't be parsed yields an
        empty fragment that consumes it, so a single corrupt record does not
        abort the stream. Calling it twice on the same buffer returns the
        same result.
        """

    def flush(self, buffer: bytes) -> Optional[Fragment]:
        """
        Decodes what is left in the buffer once the stream has ended.

        Only called at end of stream, so a provider whose last record has no
        terminator can still decode it. None means the bytes are discarded.
        """
        return None

    @abstractmethod
    def extract_final_response(self, body: Any) -> str:
        """Decodes the text out of a buffered (non streaming) JSON response."""

    def _messages(self, prompt: str, history: Optional[List[Dict]]) -> List[Dict]:
        messages = [
            {"role": turn["role"], "content": turn["content"]} for turn in (history or [])
        ]
        messages.append({"role": "user", "content": prompt})
        return messages

    def __repr__(self):
        return f"{type(self).__name__}(model={self.model!r})"


def _lookup(data: Any, *path) -> Any:
    """Follows a path of keys/indexes into nested JSON, None if it breaks."""
    for key in path:
        try:
            data = data[key]
        except (KeyError, IndexError, TypeError):
            return None
    return data


class JSONLinesAdapter(Adapter):
    """
    Adapter for providers streaming one JSON object per line.

    A record is complete once its newline arrives. The last record of a
    stream is often not followed by a newline, so `flush` decodes it when the
    stream ends.
    """

    @abstractmethod
    def _text_from_record(self, record: Dict) -> str:
        pass

    def extract_fragment(self, buffer: bytes) -> Optional[Fragment]:
        newline = buffer.find(b"\n")
        if newline == -1:
            return None

        line = buffer[:newline].strip()
        consumed = newline + 1
        if not line:
            return Fragment("", consumed)

        try:
            record = json.loads(line.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.debug("Skipping unparseable record: %r", line[:200])
            return Fragment("", consumed)

        if not isinstance(record, dict):
            return Fragment("", consumed)
        return Fragment(self._text_from_record(record), consumed)

    def flush(self, buffer: bytes) -> Optional[Fragment]:
        line = buffer.strip()
        if not line:
            return None
        try:
            record = json.loads(line.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.debug("Skipping unparseable trailing record: %r", line[:200])
            return None
        if not isinstance(record, dict):
            return None
        return Fragment(self._text_from_record(record), len(buffer))


_EVENT_TERMINATORS = (b"\r\n\r\n", b"\n\n")


def _find_event_end(buffer: bytes) -> Tuple[int, int]:
    """Position and length of the first blank-line terminator, (-1, 0) if none."""
    best = (-1, 0)
    for terminator in _EVENT_TERMINATORS:
        index = buffer.find(terminator)
        if index != -1 and (best[0] == -1 or index < best[0]):
            best = (index, len(terminator))
    return best


class ServerSentEventsAdapter(Adapter):
    """
    Adapter for providers streaming server-sent events.

    Each event ends with a blank line; its `data:` lines hold a JSON document.
    The `[DONE]` sentinel and events without data decode to empty text.
    """

    @abstractmethod
    def _text_from_event(self, data: Dict) -> str:
        pass

    def extract_fragment(self, buffer: bytes) -> Optional[Fragment]:
        end, terminator_length = _find_event_end(buffer)
        if end == -1:
            return None

        consumed = end + terminator_length
        try:
            event = buffer[:end].decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("Skipping undecodable event: %r", buffer[:200])
            return Fragment("", consumed)

        data_lines = []
        for line in event.splitlines():
            if line.startswith("data:"):
                data_lines.append(line[5:].lstrip(" "))
        data = "\n".join(data_lines).strip()
        if not data or data == "[DONE]":
            return Fragment("", consumed)

        try:
            record = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("Skipping unparseable event data: %r", data[:200])
            return Fragment("", consumed)

        if not isinstance(record, dict):
            return Fragment("", consumed)
        return Fragment(self._text_from_event(record), consumed)


def require_text(text: Any, provider: str) -> str:
    """Validates the text found in a buffered response."""
    if not isinstance(text, str):
        raise AdapterProtocolError(f"Unexpected response shape from {provider}.")
    return text
