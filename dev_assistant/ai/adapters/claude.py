from typing import Any, Dict, List, Optional

from ...errors import ProviderError
from .base import ServerSentEventsAdapter, _lookup, require_text

ANTHROPIC_VERSION = "2023-06-01"


class ClaudeAdapter(ServerSentEventsAdapter):
    """Anthropic Messages API."""

    name = "claude"
    default_model = "claude-3-5-sonnet-20240620"
    max_tokens = 4096

    def endpoint(self) -> str:
        return "https://api.anthropic.com/v1/messages"

    def build_payload(
        self, prompt: str, history: Optional[List[Dict]] = None, stream: bool = False
    ) -> Dict:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": self._messages(prompt, history),
            "stream": stream,
        }

    def build_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    def _text_from_event(self, data: Dict) -> str:
        event_type = data.get("type")
        if event_type == "error":
            message = _lookup(data, "error", "message") or "Unknown error"
            raise ProviderError(f"Claude reported an error: {message}")
        if event_type == "content_block_delta":
            text = _lookup(data, "delta", "text")
            return text if isinstance(text, str) else ""
        # message_start, ping, content_block_start/stop, message_delta/stop...
        return ""

    def extract_final_response(self, body: Any) -> str:
        content = _lookup(body, "content")
        if not isinstance(content, list):
            return require_text(None, "Claude")
        return "".join(
            block.get("text", "")
            for block in content
            if isinstance(block, dict) and block.get("type", "text") == "text"
        )
