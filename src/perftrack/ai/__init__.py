"""AI module for perftrack.

The client.py module is the SOLE interface to the text generator; no other
file should import requests or google-genai for generation.

Exports:
    - AIClient: Front door for generation requests
    - get_client: Factory building a client for the configured backend
    - ProxyTransport / GeminiTransport: HTTP proxy and direct SDK backends
    - Success / Failure: Result values returned by try_generate
    - Goal and achievement helpers with per-operation fallbacks
    - Exception hierarchy for typed error handling
"""

from perftrack.ai.client import (
    # Client
    AIClient,
    get_client,
    # Transports
    GeminiTransport,
    ProxyTransport,
    Transport,
    # Models
    AIResponse,
    Failure,
    GenerateRequest,
    Result,
    Success,
    # Exceptions
    AIClientError,
    ServerConfigError,
    UpstreamError,
)
from perftrack.ai.prompts import PromptTemplate, get_prompt, list_prompts, register_prompt
from perftrack.ai.assistant import (
    classify_and_summarize_achievement,
    generate_milestones,
    generate_reflection,
    generate_smart_goal,
)

__all__ = [
    "AIClient",
    "get_client",
    "GeminiTransport",
    "ProxyTransport",
    "Transport",
    "AIResponse",
    "Failure",
    "GenerateRequest",
    "Result",
    "Success",
    "AIClientError",
    "ServerConfigError",
    "UpstreamError",
    "PromptTemplate",
    "get_prompt",
    "list_prompts",
    "register_prompt",
    "classify_and_summarize_achievement",
    "generate_milestones",
    "generate_reflection",
    "generate_smart_goal",
]
