import asyncio
import logging
import os

from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from ..errors import (
    AdapterProtocolError,
    AssistantError,
    ConfigurationError,
    NetworkError,
    ProviderError,
)
from .adapters import Adapter, get_adapter, parse_model
from .gate import ConfirmationGate, estimate_tokens

logger = logging.getLogger(__name__)

MODEL_ENV = "DEV_ASSISTANT_MODEL"
API_KEY_ENV = "DEV_ASSISTANT_API_KEY"

# Fast connect, generous read: local models can think for a long time
# before the first byte of a streamed answer arrives.
DEFAULT_TIMEOUT = httpx.Timeout(connect=10.0, read=180.0, write=30.0, pool=10.0)

# `InvalidURL` and `StreamError` are not part of the `HTTPError` hierarchy.
HTTPX_ERRORS = (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError)


@dataclass
class CompletionRequest:
    """A prompt to send, plus optional earlier turns for chat style providers."""

    prompt: str
    history: Optional[List[Dict]] = None

    @property
    def token_estimate(self) -> int:
        return estimate_tokens(self.prompt)


class StreamListener:
    """
    Receives the events of one streaming request.

    `on_bytes` is called zero or more times, followed by exactly one call to
    either `on_complete` or `on_error`.
    """

    def on_bytes(self, chunk: bytes):
        pass

    def on_complete(self):
        pass

    def on_error(self, error: AssistantError):
        pass


def _error_detail(body: bytes) -> str:
    return body.decode("utf-8", errors="replace").strip()[:500]


class RequestClient:
    """
    Sends prompts to the provider described by an `Adapter`.

    The client never retries: a failed request is reported once, as one of
    the classified `AssistantError` subclasses.
    """

    def __init__(
        self,
        adapter: Adapter,
        api_key: str = "",
        gate: Optional[ConfirmationGate] = None,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.adapter = adapter
        self.api_key = api_key
        self.gate = gate
        self.timeout = timeout or DEFAULT_TIMEOUT
        self.transport = transport

    @staticmethod
    def format_user_message(content: str) -> Dict:
        return {"role": "user", "content": content}

    @staticmethod
    def format_assistant_message(content: str) -> Dict:
        return {"role": "assistant", "content": content}

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def confirm(self, request: CompletionRequest):
        """Runs the confirmation gate for `request`. Raises `UserCancelled` if declined."""
        if self.gate is not None:
            # The gate talks to the terminal, keep the event loop free meanwhile.
            await asyncio.to_thread(self.gate.approve, request.prompt, self.adapter.endpoint())

    def _request_error(self, error: Exception) -> AssistantError:
        """Classifies an exception raised by httpx."""
        endpoint = self.adapter.endpoint()
        if isinstance(error, (httpx.DecodingError, httpx.StreamError)):
            return AdapterProtocolError(
                f"Could not read the response of {endpoint}: {error}", original_error=error
            )
        if isinstance(error, httpx.TimeoutException):
            message = f"Timed out communicating with {endpoint}"
        elif isinstance(error, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
            message = f"Invalid endpoint '{endpoint}': {error}"
        else:
            message = f"Error communicating with {endpoint}: {error or 'connection error'}"
        return NetworkError(message, original_error=error)

    async def generate_text(self, request: CompletionRequest, confirm: bool = True) -> str:
        """
        Sends a buffered request and returns the whole answer.

        Raises:
            UserCancelled: the confirmation gate was declined.
            NetworkError, ProviderError, AdapterProtocolError: the request failed.
        """
        if confirm:
            await self.confirm(request)

        payload = self.adapter.build_payload(request.prompt, request.history, stream=False)
        headers = self.adapter.build_headers(self.api_key)
        endpoint = self.adapter.endpoint()
        logger.debug("POST %s (~%d tokens, buffered)", endpoint, request.token_estimate)

        try:
            async with self._http_client() as client:
                response = await client.post(endpoint, json=payload, headers=headers)
        except HTTPX_ERRORS as e:
            raise self._request_error(e) from e

        if not response.is_success:
            raise ProviderError.from_status(response.status_code, _error_detail(response.content))

        try:
            body = response.json()
        except ValueError as e:
            raise AdapterProtocolError(
                f"{endpoint} did not answer with JSON.", original_error=e
            ) from e

        return self.adapter.extract_final_response(body)

    async def stream(
        self, request: CompletionRequest, listener: StreamListener, confirm: bool = True
    ):
        """
        Sends a streaming request, reporting its progress to `listener`.

        Errors of the request itself are delivered to `listener.on_error`,
        including the ones raised by `listener.on_bytes` while decoding.
        `UserCancelled` is raised before anything is sent and no listener
        method is called in that case. Pass `confirm=False` when the caller
        already ran `confirm`.
        """
        if confirm:
            await self.confirm(request)

        payload = self.adapter.build_payload(request.prompt, request.history, stream=True)
        headers = self.adapter.build_headers(self.api_key)
        endpoint = self.adapter.endpoint()
        logger.debug("POST %s (~%d tokens, streaming)", endpoint, request.token_estimate)

        try:
            async with self._http_client() as client:
                async with client.stream("POST", endpoint, json=payload, headers=headers) as response:
                    if not response.is_success:
                        body = await response.aread()
                        raise ProviderError.from_status(response.status_code, _error_detail(body))

                    async for chunk in response.aiter_bytes():
                        listener.on_bytes(chunk)
        except AssistantError as e:
            logger.debug("Streaming request failed: %s", e)
            listener.on_error(e)
            return
        except HTTPX_ERRORS as e:
            logger.debug("Streaming request failed: %r", e)
            listener.on_error(self._request_error(e))
            return

        listener.on_complete()


def resolve_model(
    config: Dict, model: Optional[str] = None, api_key: Optional[str] = None
):
    """
    Works out which `<provider>:<model>` and API key to use.

    Explicit arguments win over environment variables, which win over the
    configuration file.
    """
    model_spec = (model or os.getenv(MODEL_ENV) or config.get("primary_model") or "").strip()
    if not model_spec:
        raise ConfigurationError("No model selected. Set 'primary_model' in the configuration file.")

    adapter = get_adapter(model_spec)

    key = api_key or os.getenv(API_KEY_ENV)
    if not key:
        models = config.get("models") or {}
        provider, _ = parse_model(model_spec)
        key = models.get(model_spec) or models.get(f"{provider}:{adapter.model}") or models.get(provider)
        if not key:
            # Any key configured for the same provider will do.
            key = next(
                (value for name, value in models.items() if parse_model(name)[0] == provider and value),
                "",
            )

    key = (key or "").strip()
    if adapter.requires_api_key and not key:
        raise ConfigurationError(f"No API key configured for '{model_spec}'.")

    return adapter, key


def create_client(
    config: Dict,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    silent: Optional[bool] = None,
) -> RequestClient:
    adapter, key = resolve_model(config, model, api_key)
    if silent is None:
        silent = bool(config.get("silent", False))
    logger.debug("Using %r", adapter)
    return RequestClient(adapter, key, gate=ConfirmationGate(silent=silent))
