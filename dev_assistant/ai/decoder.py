import logging

from typing import Iterator

from ..errors import AdapterProtocolError
from .adapters import Adapter, Fragment

logger = logging.getLogger(__name__)


class StreamDecoder:
    """
    Turns the byte chunks of one streaming response into text fragments.

    Chunks can split provider records anywhere, so the decoder keeps the bytes
    of an incomplete trailing record until more data arrives. A decoder
    belongs to a single request and must not be reused.
    """

    def __init__(self, adapter: Adapter):
        self.adapter = adapter
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet decoded."""
        return len(self._buffer)

    def feed(self, data: bytes) -> Iterator[Fragment]:
        """
        Buffers `data` and returns the fragments that are now complete.

        The bytes are buffered right away; fragments are extracted lazily as
        the returned iterator is consumed.
        """
        if not data:
            return iter(())
        self._buffer.extend(data)
        return self._drain()

    def _drain(self) -> Iterator[Fragment]:
        while self._buffer:
            buffered = bytes(self._buffer)
            fragment = self.adapter.extract_fragment(buffered)
            if fragment is None:
                return

            if fragment.consumed <= 0 or fragment.consumed > len(buffered):
                raise AdapterProtocolError(
                    f"{self.adapter!r} returned a fragment consuming {fragment.consumed} "
                    f"of {len(buffered)} buffered bytes."
                )

            del self._buffer[: fragment.consumed]
            yield fragment

    def finish(self) -> Iterator[Fragment]:
        """
        Ends the stream: yields the fragment the adapter can still decode out
        of the leftover bytes, then discards the buffer.
        """
        if self._buffer:
            fragment = self.adapter.flush(bytes(self._buffer))
            if fragment is not None:
                del self._buffer[: fragment.consumed]
                yield fragment
        self.close()

    def close(self) -> bytes:
        """Discards the buffer, returning whatever was never decoded."""
        leftover = bytes(self._buffer)
        self._buffer.clear()
        if leftover:
            logger.warning("Discarding %d undecoded bytes at end of stream", len(leftover))
        return leftover
