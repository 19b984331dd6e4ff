"""Single-attempt citation URL fetching with per-domain policy."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional
from urllib.parse import urlparse

import aiohttp
from pydantic import BaseModel

from citeguard.models import FetchConfig, VerificationStatus
from citeguard.utils.html_utils import extract_text_content, extract_title
from citeguard.utils.ssl_context import tcp_connector_with_certifi

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

# Sentinel HTTP statuses: no request made (blocked domain) and request failed.
STATUS_NOT_FETCHED = -1
STATUS_FETCH_FAILED = 0


class FetchResult(BaseModel):
    http_status: int
    page_title: Optional[str] = None
    content_snippet: Optional[str] = None
    content_length: int = 0
    content_type: Optional[str] = None
    full_html: Optional[str] = None
    full_text: Optional[str] = None
    error: Optional[str] = None
    note: Optional[str] = None

    @property
    def reachable(self) -> bool:
        return 200 <= self.http_status < 400

    @property
    def timed_out(self) -> bool:
        return self.http_status == STATUS_FETCH_FAILED and self.error == "timeout"


def get_domain(url: str) -> str:
    try:
        host = urlparse(url).hostname
    except ValueError:
        return "unknown"
    if not host:
        return "unknown"
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def domain_matches(url: str, domains: Iterable[str]) -> bool:
    """Exact domain match or subdomain of a listed domain."""
    domain = get_domain(url)
    return any(domain == d or domain.endswith("." + d) for d in domains)


def status_for(result: FetchResult) -> VerificationStatus:
    if result.reachable:
        return VerificationStatus.VERIFIED
    if result.timed_out:
        return VerificationStatus.UNVERIFIABLE
    return VerificationStatus.BROKEN


def _content_length(response: aiohttp.ClientResponse) -> int:
    try:
        return int(response.headers.get("Content-Length", "0") or 0)
    except ValueError:
        return 0


class CitationFetcher:
    def __init__(self, config: Optional[FetchConfig] = None):
        self.config = config or FetchConfig()

    def is_unverifiable(self, url: str) -> bool:
        return domain_matches(url, self.config.unverifiable_domains)

    def is_academic(self, url: str) -> bool:
        return domain_matches(url, self.config.academic_domains)

    def new_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
            connector=tcp_connector_with_certifi(),
            headers={"User-Agent": self.config.user_agent, "Accept": ACCEPT_HEADER},
        )

    async def fetch(self, session: aiohttp.ClientSession, url: str) -> FetchResult:
        """Fetch *url* once, following redirects, and summarize the response.

        Never raises for network problems: timeouts come back with
        ``error == "timeout"`` and other failures with the error message.
        """
        if self.is_unverifiable(url):
            return FetchResult(http_status=STATUS_NOT_FETCHED, error="unverifiable domain (social media)")

        try:
            async with session.get(url, allow_redirects=True) as response:
                status = response.status
                content_type = response.headers.get("Content-Type", "")
                lowered = content_type.lower()
                if not 200 <= status < 400:
                    return FetchResult(http_status=status, content_type=content_type, error=f"HTTP {status}")

                if "application/pdf" in lowered:
                    return FetchResult(
                        http_status=status,
                        page_title="(PDF document)",
                        content_length=_content_length(response),
                        content_type=content_type,
                    )

                if "text/html" not in lowered and "application/xhtml" not in lowered:
                    placeholder = f"(non-HTML content: {content_type})"
                    return FetchResult(
                        http_status=status,
                        content_snippet=placeholder,
                        note=placeholder,
                        content_length=_content_length(response),
                        content_type=content_type,
                    )

                page_html = await response.text(errors="replace")
        except (asyncio.TimeoutError, TimeoutError):
            logger.debug("Timed out fetching %s", url)
            return FetchResult(http_status=STATUS_FETCH_FAILED, error="timeout")
        except (aiohttp.ClientError, ValueError) as exc:
            logger.debug("Fetch failed for %s: %s", url, exc)
            return FetchResult(http_status=STATUS_FETCH_FAILED, error=str(exc) or type(exc).__name__)

        text = extract_text_content(page_html)
        return FetchResult(
            http_status=status,
            page_title=extract_title(page_html),
            content_snippet=text[: self.config.snippet_chars] or None,
            content_length=len(page_html),
            content_type=content_type,
            full_html=page_html,
            full_text=text,
        )
