import os
import urllib.parse

from typing import Any, Dict, List, Optional

from ...errors import ProviderError
from .base import JSONLinesAdapter, _lookup, require_text

DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_OLLAMA_PORT = 11434


def ollama_base_url(host: str) -> str:
    """
    Normalizes an `OLLAMA_HOST` value to a base URL.

    A bare `host[:port]` is served over http on the Ollama port unless it
    names one. A full URL keeps its own port, or its scheme's default.
    """
    host = host.strip().rstrip("/")
    if not host:
        return DEFAULT_OLLAMA_HOST
    if "://" in host:
        return host

    url = urllib.parse.urlsplit(f"http://{host}")
    try:
        port = url.port
    except ValueError:
        # Left for httpx to reject as an invalid URL.
        return f"http://{host}"
    if port is None:
        url = url._replace(netloc=f"{url.netloc}:{DEFAULT_OLLAMA_PORT}")
    return urllib.parse.urlunsplit(url)


class OllamaAdapter(JSONLinesAdapter):
    """Local Ollama server, `/api/chat` endpoint."""

    name = "ollama"
    default_model = "llama3"
    requires_api_key = False

    def endpoint(self) -> str:
        return f"{ollama_base_url(os.getenv('OLLAMA_HOST', ''))}/api/chat"

    def build_payload(
        self, prompt: str, history: Optional[List[Dict]] = None, stream: bool = False
    ) -> Dict:
        return {
            "model": self.model,
            "messages": self._messages(prompt, history),
            "stream": stream,
        }

    def build_headers(self, api_key: str) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    def _text_from_record(self, record: Dict) -> str:
        if "error" in record:
            raise ProviderError(f"Ollama reported an error: {record['error']}")
        text = _lookup(record, "message", "content")
        return text if isinstance(text, str) else ""

    def extract_final_response(self, body: Any) -> str:
        return require_text(_lookup(body, "message", "content"), "Ollama")
