from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from changescribe.core.errors import Unauthorized, UpstreamUnavailable
from changescribe.core.settings import GITHUB_API_URL


@dataclass(frozen=True)
class GitHubClient:
    token: str
    base_url: str = GITHUB_API_URL
    transport: Optional[httpx.AsyncBaseTransport] = None

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def get_json(self, path: str, params: Optional[dict[str, str]] = None) -> Any:
        """
        GET a GitHub API path and return the decoded JSON body.

        Raises Unauthorized when the token is rejected and UpstreamUnavailable
        for any other failure (unreachable host, non-success status).
        """
        url = self.url(path)
        try:
            async with httpx.AsyncClient(timeout=30, transport=self.transport) as client:
                r = await client.get(url, headers=self.headers(), params=params)
                r.raise_for_status()
                return r.json()
        except httpx.HTTPStatusError as error:
            status = error.response.status_code
            if status == 401:
                raise Unauthorized("GitHub rejected the access token") from error
            raise UpstreamUnavailable(f"GitHub returned {status} for {path}") from error
        except httpx.RequestError as error:
            raise UpstreamUnavailable(f"GitHub is unreachable: {error}") from error
