"""
Gemini generateContent client for schema-constrained requests.

Handles HTTP communication with the generative service:
- request body: contents + generationConfig (JSON mime type + responseSchema)
- response: candidates[0].content.parts[0].text holds the JSON payload

No retries and no cancellation: a non-2xx status or a transport failure raises
NetworkError carrying the service's own error message.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from config import Settings, get_settings
from academy.core.errors import ConfigurationError, NetworkError

MISSING_KEY_MESSAGE = "Gemini API Key is not set. Please set GEMINI_API_KEY in your .env file."


def build_payload(prompt: str, response_schema: dict) -> dict[str, Any]:
    """Build a schema-constrained generateContent request body."""
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": response_schema,
        },
    }


def extract_candidate_text(response_json: Any) -> str | None:
    """Pull the first candidate's first text part, or None when absent."""
    if not isinstance(response_json, dict):
        return None
    candidates = response_json.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return None
    content = candidates[0].get("content") or {}
    parts = content.get("parts") if isinstance(content, dict) else None
    if not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    return text if isinstance(text, str) else None


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase or response.text
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.reason_phrase or response.text


class GeminiClient:
    """HTTP client for the Gemini generateContent endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Gemini API key (uses settings if not provided)
            model: Model name (uses settings if not provided)
            base_url: API base URL (uses settings if not provided)
            timeout: Request timeout in seconds; None waits indefinitely
        """
        settings = settings or get_settings()
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.ai_model
        self.base_url = (base_url or settings.gemini_api_base_url).rstrip("/")
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout if timeout is not None else settings.generation_timeout_seconds)
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def require_configured(self) -> None:
        """Raise ConfigurationError when no credential is available."""
        if not self.is_configured:
            raise ConfigurationError(MISSING_KEY_MESSAGE)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def generate(self, prompt: str, response_schema: dict) -> dict[str, Any]:
        """
        Issue one schema-constrained request and return the decoded response body.

        Raises:
            ConfigurationError: No API key configured (no request is made)
            NetworkError: Transport failure or non-2xx status
        """
        self.require_configured()

        try:
            response = await self.client.post(
                self.endpoint,
                params={"key": self.api_key},
                json=build_payload(prompt, response_schema),
                headers={"Content-Type": "application/json"},
            )
        except httpx.RequestError as e:
            logger.error(f"Gemini request error: {e}")
            raise NetworkError(f"Network error: {e}") from e

        if not response.is_success:
            message = _error_message(response)
            logger.error(f"Gemini API error {response.status_code}: {message}")
            raise NetworkError(
                f"API error: {response.status_code} - {message}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError:
            # Undecodable body is treated as an empty candidate by the parser
            logger.warning("Gemini returned a non-JSON response body")
            return {}

    async def generate_text(self, prompt: str, response_schema: dict) -> str | None:
        """Issue a request and return the candidate's JSON text (None when empty)."""
        data = await self.generate(prompt, response_schema)
        return extract_candidate_text(data)
