"""
Perplexity web research client.

WHAT THIS DOES:
Asks Perplexity's search-grounded chat API a research question and returns
its narrative answer plus the web sources it drew on.

DEPTH TIERS:
- quick:    sonar,     1024 tokens, concise facts
- standard: sonar-pro, 2048 tokens, multiple perspectives
- deep:     sonar-pro, 4096 tokens, exhaustive analysis

SOURCES:
Newer responses carry `search_results` ({title, url, snippet}); older ones
carry `citations`, either bare URLs or objects. Both are accepted, in the
order Perplexity returned them.

USAGE:
    client = PerplexityClient()
    answer, sources = await client.search("arguments in favor of ...", ResearchDepth.STANDARD)
"""

import logging
from typing import Optional

import httpx

from debate_arena.config import get_settings
from debate_arena.models.enums import ResearchDepth
from debate_arena.services.debate.models import ResearchSource
from debate_arena.services.debate.protocols import BaseResearchClient

logger = logging.getLogger(__name__)

PERPLEXITY_API_URL = "https://api.perplexity.ai/chat/completions"

BASE_SYSTEM_MESSAGE = (
    "You are a research assistant providing well-sourced, factual information "
    "for a debate platform."
)

DEPTH_INSTRUCTIONS = {
    ResearchDepth.QUICK: "Provide a concise summary with key facts and statistics.",
    ResearchDepth.STANDARD: (
        "Provide a thorough analysis with multiple perspectives, key statistics, "
        "and expert opinions."
    ),
    ResearchDepth.DEEP: (
        "Provide an exhaustive, deeply researched analysis. Include historical context, "
        "multiple expert viewpoints, statistical evidence, counterarguments, and nuanced "
        "perspectives. Be comprehensive."
    ),
}

DEPTH_MAX_TOKENS = {
    ResearchDepth.QUICK: 1024,
    ResearchDepth.STANDARD: 2048,
    ResearchDepth.DEEP: 4096,
}


def _model_for(depth: ResearchDepth) -> str:
    return "sonar" if depth is ResearchDepth.QUICK else "sonar-pro"


def extract_sources(data: dict) -> list[ResearchSource]:
    """Pull sources out of a Perplexity response, preserving order."""
    sources = []

    for result in data.get("search_results") or []:
        if isinstance(result, dict) and result.get("url"):
            sources.append(ResearchSource(
                url=result["url"],
                title=result.get("title") or result["url"],
                snippet=result.get("snippet") or "",
            ))
    if sources:
        return sources

    for citation in data.get("citations") or []:
        if isinstance(citation, str):
            sources.append(ResearchSource(url=citation, title=citation))
        elif isinstance(citation, dict):
            url = citation.get("url") or ""
            sources.append(ResearchSource(
                url=url,
                title=citation.get("title") or url or "Unknown source",
                snippet=citation.get("snippet") or citation.get("text") or "",
            ))
    return sources


class PerplexityClient(BaseResearchClient):
    """Async client for Perplexity's chat completions endpoint."""

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.api_key = api_key or settings.perplexity_api_key
        self.timeout = timeout or settings.request_timeout_seconds
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def search(
        self,
        query: str,
        depth: ResearchDepth,
    ) -> tuple[str, list[ResearchSource]]:
        """
        Run one research query.

        Raises:
            httpx.HTTPError: on transport failure or non-2xx status
        """
        client = await self._get_client()

        payload = {
            "model": _model_for(depth),
            "messages": [
                {"role": "system", "content": f"{BASE_SYSTEM_MESSAGE} {DEPTH_INSTRUCTIONS[depth]}"},
                {"role": "user", "content": query},
            ],
            "max_tokens": DEPTH_MAX_TOKENS[depth],
            "temperature": 0.2,
            "return_citations": True,
        }

        response = await client.post(
            PERPLEXITY_API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        response.raise_for_status()

        data = response.json()
        choices = data.get("choices") or [{}]
        answer = (choices[0].get("message") or {}).get("content") or ""
        sources = extract_sources(data)

        logger.info(f"Perplexity ({payload['model']}) returned {len(sources)} sources")
        return answer, sources

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
