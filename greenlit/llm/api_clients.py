"""
Greenlit API Clients

Async clients for the hosted providers the pipeline talks to.

Supports:
- Google Gemini (text)
- Azure OpenAI (text, chat completions deployments)
- Unsplash (stock image search)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from greenlit.core.config import Settings
from greenlit.core.exceptions import MissingConfigError
from greenlit.core.logging_config import get_logger

logger = get_logger("llm.api_clients")


# ============================================================================
#  EXCEPTIONS
# ============================================================================

class APIError(Exception):
    """Raised when a provider request fails."""
    def __init__(self, message: str, status_code: int = None, response: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class APITimeoutError(APIError):
    """Raised when a provider request times out."""
    pass


# ============================================================================
#  RESPONSE TYPES
# ============================================================================

@dataclass
class TextResponse:
    """Response from text generation API."""
    text: str
    model: str
    usage: Optional[Dict] = None
    raw_response: Optional[Dict] = None


@dataclass
class ImageResult:
    """A single stock image match."""
    url: str
    thumb_url: str
    description: str = ""
    author: str = ""
    source: str = "unsplash"


# ============================================================================
#  BASE CLIENT
# ============================================================================

class BaseAPIClient:
    """Base class for API clients with common functionality."""

    PROVIDER = "API"

    def __init__(self, api_key: str, timeout: float = 180.0):
        self.api_key = api_key
        self.timeout = timeout

    async def _make_request(self, url: str, headers: Dict, body: Dict = None,
                            method: str = "POST", params: Dict = None) -> Dict:
        """Make an HTTP request and return the decoded JSON body."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.request(method, url, json=body, headers=headers, params=params)
        except httpx.TimeoutException as e:
            raise APITimeoutError(f"{self.PROVIDER} request timed out: {e}")
        except httpx.HTTPError as e:
            raise APIError(f"{self.PROVIDER} connection error: {e}")

        if resp.status_code >= 400:
            msg = resp.text
            if resp.status_code == 401:
                logger.error(f"{self.PROVIDER} authentication failed - check the API key")
            elif resp.status_code == 403:
                logger.warning(f"{self.PROVIDER} returned 403 - access forbidden or rate limited")
            elif resp.status_code == 429:
                logger.warning(f"{self.PROVIDER} rate limit exceeded")
            raise APIError(f"HTTP {resp.status_code}: {msg[:500]}", resp.status_code, msg)

        try:
            return resp.json()
        except ValueError:
            raise APIError(f"{self.PROVIDER} returned a non-JSON body", resp.status_code, resp.text)


# ============================================================================
#  TEXT CLIENTS
# ============================================================================

class GeminiClient(BaseAPIClient):
    """Client for Google Gemini API."""

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
    PROVIDER = "Gemini"

    def __init__(self, api_key: str, model: str = "gemini-2.5-pro", timeout: float = 180.0):
        if not api_key:
            raise MissingConfigError("GEMINI_API_KEY", "Gemini text generation")
        super().__init__(api_key, timeout)
        self.model = model

    async def generate_text(self, prompt: str, system_prompt: str = "",
                            temperature: float = 0.7, max_tokens: int = 8192) -> TextResponse:
        """Generate text using Gemini."""
        url = f"{self.BASE_URL}/{self.model}:generateContent"
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

        body: Dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens
            }
        }
        if system_prompt:
            body["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        result = await self._make_request(url, headers, body)

        text = ""
        candidates = result.get("candidates", [])
        if candidates:
            parts = candidates[0].get("content", {}).get("parts", [])
            text = "".join(part.get("text", "") for part in parts)

        return TextResponse(text=text, model=self.model,
                            usage=result.get("usageMetadata"), raw_response=result)


class AzureOpenAIClient(BaseAPIClient):
    """Client for Azure OpenAI chat completion deployments."""

    PROVIDER = "Azure OpenAI"

    def __init__(self, api_key: str, endpoint: str, deployment: str,
                 api_version: str, timeout: float = 180.0):
        if not api_key:
            raise MissingConfigError("AZURE_OPENAI_API_KEY", "Azure OpenAI text generation")
        if not endpoint:
            raise MissingConfigError("AZURE_OPENAI_ENDPOINT", "Azure OpenAI text generation")
        super().__init__(api_key, timeout)
        self.endpoint = endpoint.rstrip("/")
        self.deployment = deployment
        self.api_version = api_version

    async def generate_text(self, prompt: str, system_prompt: str = "",
                            temperature: float = 0.7, max_tokens: int = 8192) -> TextResponse:
        """Generate text using a chat completions deployment."""
        url = f"{self.endpoint}/openai/deployments/{self.deployment}/chat/completions"
        headers = {"Content-Type": "application/json", "api-key": self.api_key}
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        result = await self._make_request(
            url, headers,
            {"messages": messages, "temperature": temperature, "max_tokens": max_tokens},
            params={"api-version": self.api_version},
        )

        choices = result.get("choices") or [{}]
        text = choices[0].get("message", {}).get("content") or ""
        return TextResponse(text=text, model=self.deployment,
                            usage=result.get("usage"), raw_response=result)


# ============================================================================
#  IMAGE SEARCH CLIENT
# ============================================================================

class UnsplashClient(BaseAPIClient):
    """Client for the Unsplash photo search API."""

    BASE_URL = "https://api.unsplash.com/search/photos"
    PROVIDER = "Unsplash"

    def __init__(self, access_key: str, timeout: float = 30.0):
        if not access_key:
            raise MissingConfigError("UNSPLASH_ACCESS_KEY", "reference image search")
        super().__init__(access_key, timeout)

    async def search_photos(self, query: str, per_page: int = 1,
                            orientation: str = "landscape") -> List[ImageResult]:
        """Search photos matching a free-text query."""
        headers = {"Authorization": f"Client-ID {self.api_key}", "Accept-Version": "v1"}
        params = {"query": query, "per_page": per_page, "orientation": orientation}
        result = await self._make_request(self.BASE_URL, headers, method="GET", params=params)

        images = []
        for item in result.get("results", []):
            urls = item.get("urls", {})
            images.append(ImageResult(
                url=urls.get("regular", ""),
                thumb_url=urls.get("thumb", ""),
                description=item.get("alt_description") or item.get("description") or "",
                author=item.get("user", {}).get("name", ""),
            ))
        return images


# ============================================================================
#  FACTORIES
# ============================================================================

def create_text_client(settings: Settings):
    """Build the configured text client. Raises MissingConfigError when keys are absent."""
    if settings.llm_provider == "azure":
        return AzureOpenAIClient(
            api_key=settings.azure_openai_api_key,
            endpoint=settings.azure_openai_endpoint,
            deployment=settings.azure_openai_deployment,
            api_version=settings.azure_openai_api_version,
            timeout=settings.request_timeout,
        )
    return GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        timeout=settings.request_timeout,
    )


def create_image_client(settings: Settings) -> UnsplashClient:
    """Build the image search client. Raises MissingConfigError when the key is absent."""
    return UnsplashClient(settings.unsplash_access_key)
