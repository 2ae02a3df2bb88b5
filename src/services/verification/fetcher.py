"""Fetcher for pages on trusted government websites.

Only hosts on the injected allow-list are ever requested.  A page is
downloaded, parsed with BeautifulSoup, and reduced to two evidence sets:

  - ``found_names`` -- name-like sequences in the page body.
  - ``relevant_text`` -- up to N sentences mentioning the search query.

Failure policy
--------------
Fetch failures are never fatal.  Untrusted URLs, non-2xx responses,
transport errors and unparsable documents all produce an empty result
(``ok=False``); the analyzers then fall back to their weak priors.
Nothing is cached.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable
from urllib.parse import quote_plus, urlsplit

import httpx
import structlog
from bs4 import BeautifulSoup

from src.services.verification.names import (
    DEFAULT_SENTENCE_LIMIT,
    extract_names,
    extract_relevant_sentences,
)

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_DEFAULT_TIMEOUT = 30.0

_DEFAULT_HEADERS = {
    "User-Agent": "PoliticaScanner/1.0 (Public Record Verification)",
    "Accept": "text/html,application/xhtml+xml",
    "Accept-Language": "fr,en;q=0.8",
}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class FetchResult:
    """Evidence extracted from a single page."""

    url: str
    found_names: list[str] = field(default_factory=list)
    relevant_text: list[str] = field(default_factory=list)
    ok: bool = False


@dataclass
class SearchResults:
    """Evidence merged across every page fetched for one query."""

    query: str
    found_names: list[str] = field(default_factory=list)
    relevant_text: list[str] = field(default_factory=list)
    sources_checked: list[str] = field(default_factory=list)
    sources_ok: list[str] = field(default_factory=list)

    @property
    def source_url(self) -> str | None:
        """First source that returned content, if any."""
        return self.sources_ok[0] if self.sources_ok else None


# ---------------------------------------------------------------------------
# DocumentFetcher
# ---------------------------------------------------------------------------


class DocumentFetcher:
    """Retrieves and parses pages from an allow-list of trusted domains.

    Parameters
    ----------
    trusted_domains:
        Domains accepted as sources.  Sub-domains are trusted too.
    search_url_templates:
        URL templates with a ``{query}`` placeholder used by
        :meth:`build_search_urls`.
    client:
        Optional pre-built ``httpx.AsyncClient`` (tests pass one backed by
        ``httpx.MockTransport``).  When omitted the fetcher owns a client.
    timeout:
        Per-request timeout in seconds for the owned client.
    max_relevant_sentences:
        Cap on sentences kept per page.
    """

    def __init__(
        self,
        trusted_domains: Iterable[str],
        search_url_templates: Iterable[str] = (),
        client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
        max_relevant_sentences: int = DEFAULT_SENTENCE_LIMIT,
    ) -> None:
        self._trusted_domains = frozenset(d.lower().strip(".") for d in trusted_domains)
        self._templates = tuple(search_url_templates)
        self._max_sentences = max_relevant_sentences
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers=_DEFAULT_HEADERS,
            follow_redirects=True,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Allow-list
    # ------------------------------------------------------------------

    @property
    def trusted_domains(self) -> frozenset[str]:
        return self._trusted_domains

    def is_trusted(self, url: str) -> bool:
        """True when *url* is http(s) and its host is on (or under) the allow-list."""
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https"):
            return False
        host = (parts.hostname or "").lower()
        if not host:
            return False
        return any(host == domain or host.endswith(f".{domain}") for domain in self._trusted_domains)

    def build_search_urls(self, query: str) -> list[str]:
        encoded = quote_plus(query)
        return [template.format(query=encoded) for template in self._templates]

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch(self, url: str, query: str) -> FetchResult:
        """Fetch *url* and extract names and sentences relevant to *query*.

        Never raises; every failure yields an empty :class:`FetchResult`.
        """
        if not self.is_trusted(url):
            logger.warning("fetcher.untrusted_url", url=url)
            return FetchResult(url=url)

        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("fetcher.http_error", url=url, error=str(exc))
            return FetchResult(url=url)

        if not response.is_success:
            logger.warning("fetcher.bad_status", url=url, status_code=response.status_code)
            return FetchResult(url=url)

        try:
            text = self._body_text(response.text)
        except Exception:
            logger.warning("fetcher.parse_failed", url=url, exc_info=True)
            return FetchResult(url=url)

        result = FetchResult(
            url=url,
            found_names=extract_names(text),
            relevant_text=extract_relevant_sentences(text, query, self._max_sentences),
            ok=True,
        )
        logger.debug(
            "fetcher.page_parsed",
            url=url,
            names=len(result.found_names),
            sentences=len(result.relevant_text),
        )
        return result

    async def search(self, query: str, urls: Iterable[str] | None = None) -> SearchResults:
        """Fetch every URL for *query* concurrently and merge the evidence.

        When *urls* is omitted the configured search templates are used.
        """
        targets = list(urls) if urls is not None else self.build_search_urls(query)
        pages = await asyncio.gather(*(self.fetch(url, query) for url in targets))

        merged = SearchResults(query=query)
        seen_names: dict[str, None] = {}
        for page in pages:
            merged.sources_checked.append(page.url)
            if not page.ok:
                continue
            merged.sources_ok.append(page.url)
            for name in page.found_names:
                seen_names.setdefault(name, None)
            merged.relevant_text.extend(page.relevant_text)
        merged.found_names = list(seen_names)
        return merged

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _body_text(html: str) -> str:
        soup = BeautifulSoup(html, "html.parser")
        for node in soup(["script", "style", "noscript"]):
            node.decompose()
        root = soup.body or soup
        return root.get_text(" ", strip=True)
