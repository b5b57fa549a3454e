"""
Network Tools
=============

HTTP access for the agent.

Uses httpx for async requests. Responses are truncated to a configured
number of characters so a large page cannot flood the context.
"""

import httpx
from pydantic import Field, field_validator

from gamecode.tools import ErrorKind, ToolArguments, ToolResult, ToolSpec
from gamecode.utils.logger import Logger

logger = Logger("NetworkTools")


class FetchUrlArgs(ToolArguments):
    url: str = Field(description="http(s) URL to fetch")
    max_chars: int | None = Field(default=None, gt=0, description="Truncate the body to this many characters")

    @field_validator("url")
    @classmethod
    def _check_scheme(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return value


async def fetch_url(
    args: FetchUrlArgs,
    default_max_chars: int = 20000,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ToolResult:
    """
    Fetch a URL with GET and return status line plus body text.

    Args:
        args: Validated tool arguments
        default_max_chars: Limit used when the call gives none
        timeout: Request timeout in seconds
        transport: Optional httpx transport (used by tests)
    """
    limit = args.max_chars or default_max_chars

    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=transport) as client:
            response = await client.get(args.url)
    except httpx.HTTPError as e:
        logger.error(f"Request to {args.url} failed", e)
        return ToolResult.fail(ErrorKind.EXECUTION_ERROR, f"Request failed: {e}")

    body = response.text
    if len(body) > limit:
        body = body[:limit] + f"\n... [truncated {len(response.text) - limit} characters]"

    summary = f"HTTP {response.status_code}\n{body}"
    if response.status_code >= 400:
        return ToolResult.fail(ErrorKind.EXECUTION_ERROR, summary)
    return ToolResult.ok(summary)


def register_tools(registry, settings) -> None:
    async def _fetch(args: FetchUrlArgs) -> ToolResult:
        return await fetch_url(
            args,
            default_max_chars=settings.fetch_max_chars,
            timeout=settings.timeout_seconds,
        )

    registry.register(ToolSpec(
        name="fetch_url",
        description="Fetch a web page or API endpoint with HTTP GET and return its text",
        parameters=FetchUrlArgs,
        execute=_fetch,
    ))
