"""
Thread details extraction pipeline.

Given a thread identifier, the pipeline fetches the thread's first page,
reads the title, page count and author from it, works out where the last
page lives, fetches that page and reads who posted last and when. Every
step reports into one ``ApiResponse`` which is finalized exactly once:

    ResolveUrl -> FetchFirstPage -> ParseTitle -> ParsePageCount ->
    ParseCreatedBy -> ComputeLastPageId -> FetchLastPage ->
    ParseLastUpdatedBy -> ParseLastUpdatedOn -> OK

A step that cannot continue raises a ``ThreadMinerError``; the pipeline stops
at that step and the error's status becomes the outcome's status. The one
recoverable condition is a missing or empty pagination control, which adds a
warning and assumes a single page.

Target: https://www.gaiaonline.com/forum/
"""

import logging
from typing import List, Optional, Tuple

import httpx
from bs4 import ParserRejectedMarkup

from .document import ParsedDocument, load_document, query
from .errors import (
    InternalError,
    NotFoundError,
    ThreadMinerError,
    UpstreamMalformedError,
)
from .fetch import ALLOWED_DOMAINS, PageFetcher, validate_url
from .models import ThreadRecord
from .pagination import page_locator, parse_page_tokens
from .response import ApiResponse, Outcome
from .utils import parse_thread_id, parse_timestamp, to_utc_iso

logger = logging.getLogger(__name__)

# Forum URLs. "{id}" is replaced by the thread id or a page identifier ("42_16").
EDGE_OF_OBLIVION_THREAD_URL = (
    "https://www.gaiaonline.com/forum/barton-town-role-play/"
    "edge-of-oblivion-death-from-below-open/t.{id}/"
)
GAIA_THREAD_URL_TEMPLATE = "https://www.gaiaonline.com/forum/t.{id}/"
THREAD_URL_TEMPLATE = EDGE_OF_OBLIVION_THREAD_URL

NO_PAGES_WARNING = "No pages detected; Defaulting to 1 page"

# (selector, context, last) for each field
TITLE_QUERY = ("a", "#thread_title", False)
PAGINATION_QUERY = ("a", ".pagination_last", False)
CREATED_BY_QUERY = (".user_name", "#post-1", False)
LAST_UPDATED_BY_QUERY = (".user_name", "#content", True)
LAST_UPDATED_ON_QUERY = (".relative-timestamp", "#content", True)


class ThreadPipeline:
    """
    Extracts a ``ThreadRecord`` for one thread per call.

    The pipeline holds no per-request state: each call builds its own
    accumulator and documents, so one instance can serve many requests.

    Usage:
        async with PageFetcher() as fetcher:
            pipeline = ThreadPipeline(fetcher)
            outcome = await pipeline.get_thread_details("42")

    Args:
        fetcher: Performs the page GETs
        url_template: Thread page URL with an "{id}" placeholder
        allowed_domains: Hosts a resolved URL may point at
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        url_template: str = THREAD_URL_TEMPLATE,
        allowed_domains=ALLOWED_DOMAINS,
    ):
        self.fetcher = fetcher
        self.url_template = url_template
        self.allowed_domains = allowed_domains

    async def get_thread_details(self, raw_id: str) -> Outcome:
        """
        Look up a thread by its raw identifier.

        Always returns a finalized ``Outcome``; failures are reported through
        its status and errors rather than raised.
        """
        response = ApiResponse(fields=ThreadRecord.keys())

        try:
            thread_id = parse_thread_id(raw_id)
        except ThreadMinerError as e:
            logger.error("Rejected thread id %r: %s", raw_id, e.message)
            return response.fail_with(e)

        try:
            await self._run(thread_id, response)
        except ThreadMinerError as e:
            logger.error("Thread %s failed with HTTP %d: %s", thread_id, e.status, e.message)
            return response.fail_with(e)

        logger.info(
            "Thread %s: %s",
            thread_id,
            {key: response.get(key) for key in ThreadRecord.keys()},
        )
        return response.ok()

    async def _run(self, thread_id: int, response: ApiResponse):
        """Execute every step in order; the first failing step raises."""
        document = await self.load_page(str(thread_id))

        self.parse_title(thread_id, document, response)
        pages = self.parse_page_count(thread_id, document, response)
        self.parse_created_by(thread_id, document, response)

        # TODO: read the thread's created-on timestamp from #post-1 the same way as last_updated_on

        last_page_id = self.compute_last_page_id(thread_id, pages)
        document = await self.load_page(last_page_id)

        self.parse_last_updated_by(thread_id, document, response)
        self.parse_last_updated_on(thread_id, document, response)

    # -------------------------------------------------------
    # Fetching
    # -------------------------------------------------------

    def resolve_url(self, page_id: str) -> str:
        """Build the page URL for a thread id or page identifier."""
        try:
            url = self.url_template.format(id=page_id)
        except (KeyError, IndexError, ValueError) as e:
            raise InternalError(f"Failed to get Thread URL for Thread: {page_id}") from e

        if not validate_url(url, self.allowed_domains):
            logger.warning("Blocked fetch to non-allowed domain: %s", url)
            raise InternalError(f"Failed to get Thread URL for Thread: {page_id}")

        return url

    async def load_page(self, page_id: str) -> ParsedDocument:
        """Fetch one thread page and parse it."""
        logger.debug("Attempting to load page %s...", page_id)
        url = self.resolve_url(page_id)

        try:
            result = await self.fetcher.get(url)
        except httpx.HTTPError as e:
            raise InternalError(f"Request failed for Thread: {page_id}: {e}") from e

        if result.not_found:
            raise NotFoundError(f"No Thread found matching ID {page_id}")
        if not result.ok:
            logger.debug("Upstream answered HTTP %d for %s", result.status, url)
            raise UpstreamMalformedError(
                f"Unexpected Error processing request for Thread: {page_id}"
            )

        try:
            document = load_document(result.text, source=page_id)
        except (ParserRejectedMarkup, TypeError) as e:
            raise InternalError(f"Error parsing response text for Thread: {page_id}: {e}") from e

        logger.debug("Successfully loaded data from Thread %s", page_id)
        return document

    # -------------------------------------------------------
    # Field extraction
    # -------------------------------------------------------

    @staticmethod
    def _require_text(
        thread_id: int,
        document: ParsedDocument,
        label: str,
        field_query: Tuple[str, str, bool],
    ) -> str:
        """Run a query that must yield non-empty text."""
        selector, context, last = field_query
        value = query(document, selector, context=context, last=last)

        if value is None:
            raise InternalError(f"Unexpected Error parsing {label} for Thread: {thread_id}")
        if value == "":
            raise UpstreamMalformedError(f"Unable to determine {label} for Thread: {thread_id}")

        logger.debug("%s: %s", label, value)
        return value

    def parse_title(self, thread_id: int, document: ParsedDocument, response: ApiResponse):
        logger.debug("Parsing data for Thread %s Title...", thread_id)
        title = self._require_text(thread_id, document, "Title", TITLE_QUERY)
        response.data("name", title)

    def parse_page_count(
        self,
        thread_id: int,
        document: ParsedDocument,
        response: ApiResponse,
    ) -> List[str]:
        """
        Count the thread's pages from the pagination control.

        A missing control is treated like one that lists no pages.

        Returns:
            The page tokens; ["1"] when there are none
        """
        logger.debug("Parsing data for Thread %s Pages...", thread_id)
        selector, context, last = PAGINATION_QUERY
        text = query(document, selector, context=context, last=last)
        pages = parse_page_tokens(text) if text is not None else []
        logger.debug("Pages List: %s", pages)

        if not pages:
            logger.warning("Thread %s: %s", thread_id, NO_PAGES_WARNING)
            response.add_warning(NO_PAGES_WARNING)
            pages = ["1"]

        response.data("pageCount", len(pages))
        return pages

    def compute_last_page_id(self, thread_id: int, pages: List[str]) -> str:
        logger.debug("Calculating last page for Thread: %s...", thread_id)
        last_token = pages[-1]
        if not last_token.isdecimal() or int(last_token) < 1:
            raise InternalError(
                f"Unexpected Error parsing Pages for Thread: {thread_id}; "
                f"invalid page {last_token!r}"
            )

        locator = page_locator(thread_id, int(last_token))
        logger.debug("Last page ID calculated as %s...", locator.post_id)
        return locator.post_id

    def parse_created_by(self, thread_id: int, document: ParsedDocument, response: ApiResponse):
        logger.debug("Parsing data for Thread %s Created By...", thread_id)
        created_by = self._require_text(thread_id, document, "Created By", CREATED_BY_QUERY)
        response.data("createdBy", created_by)

    def parse_last_updated_by(self, thread_id: int, document: ParsedDocument, response: ApiResponse):
        logger.debug("Parsing data for Thread %s Last Updated By...", thread_id)
        last_updated_by = self._require_text(
            thread_id, document, "Last Updated By", LAST_UPDATED_BY_QUERY
        )
        response.data("lastUpdatedBy", last_updated_by)

    def parse_last_updated_on(self, thread_id: int, document: ParsedDocument, response: ApiResponse):
        logger.debug("Parsing data for Thread %s Last Updated On...", thread_id)
        timestamp = self._require_text(
            thread_id, document, "Last Updated On", LAST_UPDATED_ON_QUERY
        )

        moment = parse_timestamp(timestamp)
        if moment is None:
            raise InternalError(
                f"Unexpected Error parsing Last Updated On for Thread: {thread_id}; "
                f"unrecognised timestamp {timestamp!r}"
            )

        last_updated_on = to_utc_iso(moment)
        logger.debug("Last Updated On: %s", last_updated_on)
        response.data("lastUpdatedOn", last_updated_on)


async def fetch_thread_details(
    raw_id: str,
    url_template: str = THREAD_URL_TEMPLATE,
    client: Optional[httpx.AsyncClient] = None,
) -> Outcome:
    """Convenience wrapper: run the pipeline once with its own fetcher."""
    async with PageFetcher(client=client) as fetcher:
        return await ThreadPipeline(fetcher, url_template=url_template).get_thread_details(raw_id)
