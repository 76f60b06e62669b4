"""Generative text client for perftrack.

This module is the SOLE INTERFACE to the text generator. Every AI-backed
operation (reports, SMART goals, milestones, achievement classification,
reflections) sends a single ``{model, contents, config}`` request through
:class:`AIClient` and receives ``{text}`` back.

Two transports are available:

- :class:`ProxyTransport`: ``POST {proxy_url}/api/generate`` over HTTP. The
  proxy holds the API key; this side never sees it.
- :class:`GeminiTransport`: calls Gemini in-process through the google-genai
  SDK, behaving like the proxy's handler (default model, missing key,
  upstream failures).

Requests are single-shot: no retry, no backoff, no circuit breaking. Callers
decide what to do on failure, usually through :meth:`AIClient.try_generate`,
which returns a :class:`Success` or :class:`Failure` instead of raising.

Example:
    >>> from perftrack.ai.client import get_client
    >>>
    >>> client = get_client()
    >>> result = await client.try_generate("Write a haiku about quarterly goals")
    >>> text = result.unwrap_or("Could not generate text.")

Security Rules:
- NEVER log API keys
- NEVER log prompts or responses (they contain personal performance data)
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar, Union

import requests
from google import genai
from pydantic import BaseModel, Field

from perftrack.config import AppConfig, APIKeyNotFoundError, get_api_key, get_config
from perftrack.exceptions import PerftrackError
from perftrack.utils.logging import RedactingFilter

DEFAULT_MODEL = "gemini-2.5-flash"
GENERATE_PATH = "/api/generate"

logger = logging.getLogger(__name__)
logger.addFilter(RedactingFilter())


# =============================================================================
# Exception Hierarchy
# =============================================================================


class AIClientError(PerftrackError):
    """Base exception for all generation failures.

    Attributes:
        message: Human-readable error description (safe to log).
        original_error: The underlying exception, if any.
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.original_error = original_error


class ServerConfigError(AIClientError):
    """The generator has no API credential configured.

    Raised by :class:`GeminiTransport` when no key is available, and by
    :class:`ProxyTransport` when the proxy reports its key as missing.
    """

    def __init__(
        self,
        message: str = "API_KEY configuration missing on server",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamError(AIClientError):
    """The generator call failed (non-2xx status, network or SDK error).

    Attributes:
        status_code: HTTP status when the failure came from the proxy.
        status_text: HTTP reason phrase when available.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        status_text: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error=original_error)
        self.status_code = status_code
        self.status_text = status_text


# =============================================================================
# Request / Response Models
# =============================================================================


class GenerateRequest(BaseModel):
    """One generation request, in the proxy's wire shape.

    Attributes:
        model: Model name; the backend default is used when None.
        contents: Prompt text.
        config: Optional generation config (e.g. ``responseMimeType`` and
            ``responseSchema`` for structured output).
    """

    model: str | None = None
    contents: str
    config: dict[str, Any] | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON body for ``POST /api/generate`` (None fields omitted)."""
        return self.model_dump(exclude_none=True)


class AIResponse(BaseModel):
    """Standardized generation response.

    Attributes:
        text: Generated text ("" when the backend returned none).
        model: Model that served the request.
        latency_ms: Round-trip time in milliseconds.
    """

    text: str = Field(default="", description="The generated content")
    model: str = Field(..., description="Model that generated this response")
    latency_ms: float | None = Field(None, description="Round-trip time in ms")


# =============================================================================
# Result Types
# =============================================================================

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful outcome of an AI-backed operation."""

    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    """Failed outcome carrying the error that caused it."""

    error: AIClientError

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return self.error.message

    def unwrap_or(self, default: T) -> T:
        return default


Result = Union[Success[T], Failure]


# =============================================================================
# Transports
# =============================================================================


class Transport(Protocol):
    """Sends a single request to a generator and returns its response."""

    async def send(self, request: GenerateRequest) -> AIResponse: ...


class ProxyTransport:
    """HTTP transport for the ``/api/generate`` proxy.

    The blocking ``requests`` call runs in a worker thread so the event loop
    stays free while a request is in flight.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        http: requests.Session | None = None,
    ) -> None:
        self.url = base_url.rstrip("/") + GENERATE_PATH
        self.timeout = timeout
        self._http = http or requests.Session()

    async def send(self, request: GenerateRequest) -> AIResponse:
        return await asyncio.to_thread(self._post, request)

    def _post(self, request: GenerateRequest) -> AIResponse:
        start_time = time.time()
        try:
            response = self._http.post(
                self.url,
                json=request.to_payload(),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamError(
                f"Could not reach generation proxy: {type(e).__name__}", original_error=e
            ) from e

        if not response.ok:
            raise self._error_for(response)

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamError(
                "Generation proxy returned a non-JSON response",
                status_code=response.status_code,
                original_error=e,
            ) from e

        text = body.get("text") if isinstance(body, dict) else None
        if text is not None and not isinstance(text, str):
            raise UpstreamError(
                f"Generation proxy returned a non-string text field ({type(text).__name__})",
                status_code=response.status_code,
            )
        return AIResponse(
            text=text or "",
            model=request.model or DEFAULT_MODEL,
            latency_ms=(time.time() - start_time) * 1000,
        )

    @staticmethod
    def _error_for(response: requests.Response) -> AIClientError:
        detail = None
        try:
            body = response.json()
            if isinstance(body, dict) and isinstance(body.get("error"), str):
                detail = body["error"]
        except ValueError:
            pass

        if detail and "API_KEY" in detail:
            return ServerConfigError(detail, status_code=response.status_code)

        reason = response.reason or f"HTTP {response.status_code}"
        message = f"Server error: {reason}"
        if detail:
            message = f"{message} ({detail})"
        return UpstreamError(message, status_code=response.status_code, status_text=reason)


class GeminiTransport:
    """In-process transport calling Gemini through the google-genai SDK.

    Mirrors the proxy handler: requests without a model use
    ``default_model``; a missing key fails every request with
    ServerConfigError; SDK exceptions become UpstreamError.
    """

    def __init__(self, api_key: str | None, default_model: str = DEFAULT_MODEL) -> None:
        self.default_model = default_model
        self._client = genai.Client(api_key=api_key) if api_key else None

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def send(self, request: GenerateRequest) -> AIResponse:
        if self._client is None:
            raise ServerConfigError()

        model = request.model or self.default_model
        start_time = time.time()
        try:
            raw = await self._client.aio.models.generate_content(
                model=model,
                contents=request.contents,
                config=request.config,
            )
        except Exception as e:
            # SDK raises its own errors plus transport errors
            raise UpstreamError(
                f"Gemini request failed: {type(e).__name__}", original_error=e
            ) from e

        return AIResponse(
            text=raw.text or "",
            model=model,
            latency_ms=(time.time() - start_time) * 1000,
        )


# =============================================================================
# Client
# =============================================================================


class AIClient:
    """Front door for every generation request.

    Attributes:
        transport: Where requests are sent.
        model: Model name attached to requests that don't name one.
    """

    def __init__(self, transport: Transport, model: str = DEFAULT_MODEL) -> None:
        self.transport = transport
        self.model = model
        self._logger = logging.getLogger(f"{__name__}.AIClient")
        self._logger.addFilter(RedactingFilter())

    async def generate(
        self,
        contents: str,
        config: dict[str, Any] | None = None,
        model: str | None = None,
    ) -> AIResponse:
        """Send one request and return the response.

        Raises:
            ServerConfigError: If the backend has no credential.
            UpstreamError: On any other failure.
        """
        request = GenerateRequest(model=model or self.model, contents=contents, config=config)
        try:
            response = await self.transport.send(request)
        except AIClientError as e:
            self._logger.warning(f"Generation failed: {type(e).__name__}: {e.message}")
            raise

        # No content in logs - sizes only
        self._logger.info(
            f"Generation successful: {len(contents)} prompt chars -> "
            f"{len(response.text)} chars in {response.latency_ms or 0:.0f}ms"
        )
        return response

    async def try_generate(
        self,
        contents: str,
        config: dict[str, Any] | None = None,
        model: str | None = None,
    ) -> Result[str]:
        """Like :meth:`generate` but returns Success(text) or Failure(error)."""
        try:
            response = await self.generate(contents, config=config, model=model)
        except AIClientError as e:
            return Failure(e)
        return Success(response.text)


def get_client(config: AppConfig | None = None) -> AIClient:
    """Build an AIClient for the configured backend.

    Uses the HTTP proxy when ``ai.proxy_url`` is set, otherwise the direct
    Gemini transport. A missing API key is not an error here; requests fail
    with ServerConfigError instead, so callers fall back per operation.
    """
    config = config or get_config()

    if config.uses_proxy():
        transport: Transport = ProxyTransport(
            config.ai.proxy_url, timeout=config.ai.request_timeout_seconds
        )
        logger.debug(f"Using generation proxy at {config.ai.proxy_url}")
    else:
        try:
            api_key: str | None = get_api_key().get_secret_value()
        except APIKeyNotFoundError:
            logger.warning("No API key configured; AI features will use fallbacks")
            api_key = None
        transport = GeminiTransport(api_key, default_model=config.ai.model_name)

    return AIClient(transport, model=config.ai.model_name)
