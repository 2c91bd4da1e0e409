from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx

from changescribe.core.errors import ModelNotConfigured, UpstreamUnavailable
from changescribe.core.settings import DEFAULT_MODEL, OPENROUTER_BASE_URL, PipelineSettings

# Generation has no overall deadline; only connecting is bounded
STREAM_TIMEOUT = httpx.Timeout(None, connect=15.0)


@dataclass(frozen=True)
class OpenRouterClient:
    """Streaming chat completions against an OpenAI-compatible endpoint."""
    api_key: str
    model: str = DEFAULT_MODEL
    base_url: str = OPENROUTER_BASE_URL
    transport: Optional[httpx.AsyncBaseTransport] = None

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "OpenRouterClient":
        if not settings.openrouter_api_key:
            raise ModelNotConfigured("OPENROUTER_API_KEY is not set")
        return cls(
            api_key=settings.openrouter_api_key,
            model=settings.model,
            base_url=settings.openrouter_base_url,
            transport=transport,
        )

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def request_body(self, prompt: str) -> dict:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
        }

    async def stream_chat(self, prompt: str) -> AsyncIterator[bytes]:
        """
        Yield the raw SSE bytes of one streaming completion.

        Closing the generator early closes the upstream connection.
        """
        url = f"{self.base_url.rstrip('/')}/chat/completions"
        print(f"[Changescribe] 🤖 OpenRouter prompt length: {len(prompt)} chars")

        try:
            async with httpx.AsyncClient(timeout=STREAM_TIMEOUT, transport=self.transport) as client:
                async with client.stream("POST", url, headers=self.headers(), json=self.request_body(prompt)) as response:
                    if response.status_code >= 400:
                        error_body = (await response.aread()).decode("utf-8", errors="replace")
                        print(f"[Changescribe] ❌ OpenRouter error response: {response.status_code} {error_body[:200]}")
                        raise UpstreamUnavailable(
                            f"OpenRouter error: {response.status_code} {response.reason_phrase}"
                        )
                    async for chunk in response.aiter_bytes():
                        yield chunk
        except httpx.RequestError as error:
            raise UpstreamUnavailable(f"OpenRouter is unreachable: {error}") from error
