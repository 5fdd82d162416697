from typing import Any, Dict, List, Optional

from ...errors import ProviderError
from .base import ServerSentEventsAdapter, _lookup, require_text


class OpenAIAdapter(ServerSentEventsAdapter):
    """OpenAI chat completions API. Also the base of OpenAI-compatible servers."""

    name = "openai"
    default_model = "gpt-4o"

    def endpoint(self) -> str:
        return "https://api.openai.com/v1/chat/completions"

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

    def _text_from_event(self, data: Dict) -> str:
        if "error" in data:
            message = _lookup(data, "error", "message") or data["error"]
            raise ProviderError(f"{self.name} reported an error: {message}")
        # `content` is null on role-only and finish deltas.
        text = _lookup(data, "choices", 0, "delta", "content")
        return text if isinstance(text, str) else ""

    def extract_final_response(self, body: Any) -> str:
        return require_text(_lookup(body, "choices", 0, "message", "content"), self.name)
