import asyncio
import datetime
import logging
import time
from http import HTTPStatus
from typing import AsyncIterator, List, Optional, Tuple
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from app.api.schemas import LinkCheck, LinkSummary, ScanResult
from app.core.config import settings
from app.core.exceptions import LinkCheckError, PageFetchError, QuotaError
from app.core.pricing import Plan
from app.services.entitlement import check_entitlement
from app.utils.url_utils import get_headers, is_blocked_url, prepare_targets, resolve_link

# HEAD answers that usually mean "HEAD not supported here" rather than "broken"
HEAD_FALLBACK_STATUSES = {400, 403, 405, 501}
HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")
MAX_PAGE_REDIRECTS = 10
DNS_FAILURE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated with hostname",
)


def utc_now():
    return datetime.datetime.now(datetime.timezone.utc)


def classify_status(status_code: int) -> Tuple[bool, bool, bool]:
    """Return (is_working, is_redirect, is_broken) for an HTTP status."""
    if 200 <= status_code <= 299:
        return True, False, False
    if 300 <= status_code <= 399:
        return False, True, False
    return False, False, True


def describe_failure(exc: Exception) -> str:
    """Human-readable reason for a request that never produced a status."""
    if isinstance(exc, httpx.TimeoutException):
        return "Connection timeout"
    if isinstance(exc, httpx.ConnectError):
        text = str(exc).lower()
        if any(marker in text for marker in DNS_FAILURE_MARKERS):
            return "DNS resolution failed"
        return "Connection failed"
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return "Invalid URL"
    if isinstance(exc, httpx.TooManyRedirects):
        return "Too many redirects"
    return f"Request failed: {str(exc) or exc.__class__.__name__}"


def extract_links(html: str, base_url: str) -> List[str]:
    """Distinct absolute http(s) link targets of a page, in discovery order."""
    soup = BeautifulSoup(html, "html.parser")
    links = []
    seen = set()
    for anchor in soup.find_all("a", href=True):
        link = resolve_link(base_url, anchor["href"])
        if link and link not in seen:
            seen.add(link)
            links.append(link)
    return links


def summarize(links: List[LinkCheck]) -> LinkSummary:
    return LinkSummary(
        working=sum(1 for link in links if link.is_working),
        broken=sum(1 for link in links if link.is_broken),
        redirects=sum(1 for link in links if link.is_redirect),
    )


class LinkScanner:
    """Fetches pages, extracts their links and checks each link's status."""

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        page_timeout: Optional[float] = None,
        link_timeout: Optional[float] = None,
        concurrency: Optional[int] = None,
        max_page_bytes: Optional[int] = None,
    ):
        self.transport = transport
        self.page_timeout = settings.PAGE_FETCH_TIMEOUT if page_timeout is None else page_timeout
        self.link_timeout = settings.LINK_CHECK_TIMEOUT if link_timeout is None else link_timeout
        self.concurrency = max(1, settings.LINK_CHECK_CONCURRENCY if concurrency is None else concurrency)
        self.max_page_bytes = settings.MAX_PAGE_BYTES if max_page_bytes is None else max_page_bytes

    def authorize(self, urls: List[str], plan: Plan, daily_used: int = 0) -> List[str]:
        """Validate the URL list and check it against the plan. No I/O."""
        targets = prepare_targets(urls)
        decision = check_entitlement(plan, len(targets), daily_used)
        if not decision.allowed:
            logging.warning(f"Scan of {len(targets)} URL(s) refused on plan {plan.tier}: {decision.reason}")
            raise QuotaError.from_decision(decision)
        return targets

    async def scan(self, urls: List[str], plan: Plan, daily_used: int = 0) -> List[ScanResult]:
        targets = self.authorize(urls, plan, daily_used)
        return await self.run(targets, plan)

    async def run(self, targets: List[str], plan: Plan) -> List[ScanResult]:
        return [result async for result in self.iter_scan(targets, plan)]

    async def iter_scan(self, targets: List[str], plan: Plan) -> AsyncIterator[ScanResult]:
        """Yield one result per target, in input order."""
        async with self._client() as client:
            for url in targets:
                yield await self.scan_url(client, url, plan.link_cap)

    def _client(self):
        return httpx.AsyncClient(
            headers=get_headers(),
            transport=self.transport,
            timeout=self.link_timeout,
            limits=httpx.Limits(max_connections=self.concurrency * 2),
        )

    async def scan_url(self, client: httpx.AsyncClient, url: str, link_cap: int) -> ScanResult:
        logging.info(f"Scanning page: {url} (link cap {link_cap})")
        try:
            page_status, final_url, html = await self.fetch_page(client, url)
        except PageFetchError as e:
            logging.error(f"Error checking broken links for {url}: {e.message}")
            return ScanResult(url=url, page_status=e.page_status, error=e.message, timestamp=utc_now())

        discovered = extract_links(html, final_url)
        to_check = discovered[:link_cap]
        if len(discovered) > len(to_check):
            logging.info(f"{url}: checking {len(to_check)} of {len(discovered)} links")

        links = await self.check_links(client, to_check)
        summary = summarize(links)
        logging.info(
            f"Finished {url}: {summary.working} working, {summary.broken} broken, {summary.redirects} redirects"
        )
        return ScanResult(
            url=url,
            page_status=page_status,
            total_links=len(discovered),
            links_checked=len(to_check),
            truncated=len(discovered) > len(to_check),
            links=links,
            summary=summary,
            timestamp=utc_now(),
        )

    async def fetch_page(self, client: httpx.AsyncClient, url: str) -> Tuple[int, str, str]:
        """GET the page, returning (status, final url, html).

        Redirects are followed one hop at a time; a hop to a private or
        localhost address fails the page.
        """
        current = url
        for _ in range(MAX_PAGE_REDIRECTS + 1):
            status_code, location, page = await self._fetch_hop(client, current)
            if location is None:
                return status_code, current, page

            try:
                next_url = urljoin(current, location)
            except ValueError:
                raise PageFetchError(f"Page redirected to an invalid location ({location})", status_code)
            if is_blocked_url(next_url):
                raise PageFetchError("Page redirected to a private or localhost URL", status_code)
            logging.info(f"Following redirect {current} -> {next_url}")
            current = next_url
        raise PageFetchError("Too many redirects", status_code)

    async def _fetch_hop(self, client: httpx.AsyncClient, url: str) -> Tuple[int, Optional[str], str]:
        """One GET without following redirects: (status, redirect location or None, html)."""
        try:
            async with client.stream("GET", url, follow_redirects=False, timeout=self.page_timeout) as response:
                if response.is_redirect:
                    logging.info(f"HTTP Request: GET {url} -> {response.status_code}")
                    return response.status_code, response.headers["location"], ""

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > self.max_page_bytes:
                        raise PageFetchError(
                            f"Page is larger than {self.max_page_bytes // 1024} KB",
                            response.status_code,
                        )
                logging.info(f"HTTP Request: GET {url} -> {response.status_code}")

                content_type = response.headers.get("content-type", "").lower()
                if content_type and not any(t in content_type for t in HTML_CONTENT_TYPES):
                    raise PageFetchError(
                        f"Page returned HTTP {response.status_code} with non-HTML content ({content_type})",
                        response.status_code,
                    )
                html = bytes(body).decode(response.encoding or "utf-8", errors="replace")
                return response.status_code, None, html
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise PageFetchError(describe_failure(e)) from e

    async def check_links(self, client: httpx.AsyncClient, links: List[str]) -> List[LinkCheck]:
        """Check links with at most `concurrency` requests in flight, keeping input order."""
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(link):
            async with semaphore:
                return await self.check_link(client, link)

        results = await asyncio.gather(*(bounded(link) for link in links), return_exceptions=True)

        # A failing check costs only its own link, never the page
        checks = []
        for link, result in zip(links, results):
            if isinstance(result, Exception):
                logging.error(f"Link check for {link} failed with error: {str(result)}")
                result = LinkCheck(url=link, is_broken=True, status_message=describe_failure(result))
            checks.append(result)
        return checks

    async def check_link(self, client: httpx.AsyncClient, url: str) -> LinkCheck:
        started = time.perf_counter()
        if is_blocked_url(url):
            logging.warning(f"Not checking private or localhost link {url}")
            return LinkCheck(url=url, is_broken=True, status_message="Private or localhost URL not checked")
        try:
            response, method = await self._request_status(client, url)
        except LinkCheckError as e:
            logging.warning(f"Link check failed for {e.url}: {e.message}")
            return LinkCheck(
                url=url,
                is_broken=True,
                status_message=e.message,
                response_time=_elapsed_ms(started),
            )

        status_code = response.status_code
        is_working, is_redirect, is_broken = classify_status(status_code)
        redirect_location = None
        location = response.headers.get("location")
        if is_redirect and location:
            try:
                redirect_location = urljoin(url, location)
            except ValueError:
                redirect_location = location

        return LinkCheck(
            url=url,
            status_code=status_code,
            is_working=is_working,
            is_redirect=is_redirect,
            is_broken=is_broken,
            status_message=response.reason_phrase or _reason_phrase(status_code),
            redirect_location=redirect_location,
            response_time=_elapsed_ms(started),
            checked_with=method,
        )

    async def _request_status(self, client: httpx.AsyncClient, url: str) -> Tuple[httpx.Response, str]:
        """Try HEAD, then GET when HEAD looks unsupported. Redirects are not followed."""
        try:
            response = await client.head(url, follow_redirects=False, timeout=self.link_timeout)
            logging.info(f"HTTP Request: HEAD {url} -> {response.status_code}")
            if response.status_code not in HEAD_FALLBACK_STATUSES:
                return response, "HEAD"

            logging.warning(f"HEAD failed for {url}, falling back to GET...")
            # Only the status line matters; the body is never read
            async with client.stream("GET", url, follow_redirects=False, timeout=self.link_timeout) as response:
                logging.info(f"HTTP Request: GET {url} -> {response.status_code}")
                return response, "GET"
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise LinkCheckError(url, describe_failure(e)) from e


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _reason_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return f"HTTP {status_code}"
