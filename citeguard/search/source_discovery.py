"""Source discovery: find replacement sources for unsupported citations."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from exa_py import Exa
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from citeguard.config.loader import SEARCH_ENV_KEY
from citeguard.errors import ConfigurationError, SourceDiscoveryError
from citeguard.models import SearchConfig, SourceCandidate

logger = logging.getLogger(__name__)

SNIPPET_CHARS = 1000


@runtime_checkable
class SourceDiscovery(Protocol):
    async def search(
        self, query: str, exclude_domains: Iterable[str] = ()
    ) -> List[SourceCandidate]: ...


class ExaSourceDiscovery:
    """Exa-backed search. The Exa client is synchronous, so calls run in a worker thread."""

    def __init__(self, api_key: Optional[str] = None, config: Optional[SearchConfig] = None):
        key = api_key or os.getenv(SEARCH_ENV_KEY)
        if not key:
            raise ConfigurationError(f"{SEARCH_ENV_KEY} is required for source replacement")
        self.client = Exa(api_key=key)
        self.config = config or SearchConfig()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((ConnectionError, TimeoutError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def _search_sync(self, query: str, exclude_domains: List[str]):
        kwargs = {"num_results": self.config.num_results, "text": True}
        if exclude_domains:
            kwargs["exclude_domains"] = exclude_domains
        return self.client.search_and_contents(query, **kwargs)

    async def search(
        self, query: str, exclude_domains: Iterable[str] = ()
    ) -> List[SourceCandidate]:
        try:
            response = await asyncio.to_thread(self._search_sync, query, list(exclude_domains))
        except Exception as exc:
            raise SourceDiscoveryError(f"Exa search failed for '{query[:60]}': {exc}") from exc

        candidates: List[SourceCandidate] = []
        for result in getattr(response, "results", None) or []:
            url = getattr(result, "url", None)
            if not url:
                continue
            text = getattr(result, "text", None) or ""
            candidates.append(
                SourceCandidate(
                    title=getattr(result, "title", None) or "",
                    url=url,
                    text_snippet=text[:SNIPPET_CHARS],
                )
            )
        logger.debug("Exa returned %d candidates for '%s'", len(candidates), query[:60])
        return candidates
