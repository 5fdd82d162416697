from .openai import OpenAIAdapter


class GPT4AllAdapter(OpenAIAdapter):
    """The OpenAI-compatible API server of the GPT4All desktop application."""

    name = "gpt4all"
    default_model = "Meta-Llama-3-8B-Instruct.Q4_0.gguf"
    requires_api_key = False

    def endpoint(self) -> str:
        return "http://localhost:4891/v1/chat/completions"
