"""
HTML Scraper Adapter for the book page scraper.
Fetches one book-detail page and runs it through the extraction layers.
"""
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from bookscraper.config import config
from bookscraper.layers.markup import MarkupFallbackLayer
from bookscraper.layers.normalization import NormalizationLayer
from bookscraper.layers.structured_data import StructuredDataLayer
from bookscraper.models.book import BookDraft, BookRecord
from bookscraper.utils.logger import LayerLogger


class BookFetchError(Exception):
    """The page could not be retrieved. status_code is None for network failures."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.message = message
        self.status_code = status_code


class BookPageScraper:
    """
    Scraper for a single book-detail page.
    Converts raw HTML into one BookRecord.
    """

    def __init__(
        self,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        normalizer: Optional[NormalizationLayer] = None,
    ):
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT
        self.transport = transport
        self.logger = LayerLogger("html_scraper")
        self.structured = StructuredDataLayer()
        self.markup = MarkupFallbackLayer()
        self.normalizer = normalizer or NormalizationLayer()

    async def fetch_and_parse(self, url: str) -> BookRecord:
        """
        Fetch a book page and extract its record.

        Raises:
            BookFetchError: on network failure or a non-2xx response
        """
        html = await self.fetch_html(url)
        return self.parse(html, url)

    async def fetch_html(self, url: str) -> str:
        self.logger.log_action("fetch_html", "started", url=url)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(url, headers=self._get_headers())
        except httpx.HTTPError as e:
            self.logger.log_error(
                f"Failed to fetch URL: {str(e)}",
                error_type="http_error",
                url=url
            )
            raise BookFetchError(url, f"Request failed: {str(e)}") from e

        if not response.is_success:
            self.logger.log_error(
                f"Unexpected status {response.status_code}",
                error_type="http_status",
                url=url,
                status_code=response.status_code
            )
            raise BookFetchError(
                url,
                f"Request failed with status code {response.status_code}",
                status_code=response.status_code,
            )

        html = response.text
        self.logger.log_action(
            "fetch_html",
            "completed",
            url=url,
            status_code=response.status_code,
            content_length=len(html)
        )
        return html

    def _get_headers(self) -> dict:
        """Get request headers mimicking a browser."""
        return {
            "User-Agent": config.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": config.ACCEPT_LANGUAGE,
        }

    def parse(self, html: str, url: Optional[str] = None) -> BookRecord:
        """Extract a BookRecord from an already fetched document."""
        self.logger.log_action("parse_html", "started", url=url)

        soup = BeautifulSoup(html, "lxml")
        draft = BookDraft()

        # Step 1: cheap tree-wide character capture, then the labelled section
        self.markup.harvest_character_links(soup, draft)
        self.markup.harvest_character_section(soup, draft)

        # Step 2: data island (highest precedence for the fields it carries)
        state = self.structured.apply_data_island(soup, draft)

        # Step 3: headline markup; authors fall back island -> title-section links
        self.markup.extract_title(soup, draft)
        if not self.markup.extract_authors(soup, draft):
            self.logger.log_fallback(
                from_source="author_names",
                to_source="data_island_authors",
                reason="no author-name elements",
                url=url
            )
            if not self.structured.apply_island_authors(state, draft):
                self.markup.extract_title_section_authors(soup, draft)
        self.markup.extract_headline(soup, draft)

        # Step 4: linked data for language/pages/authors still missing
        linked_data = self.structured.load_linked_data(soup)
        self.structured.apply_linked_data(linked_data, draft)

        # Step 5: detail sections and series fallbacks
        self.markup.extract_details(soup, draft)

        # Step 6: linked-data values for anything markup never produced
        self.structured.backfill_linked_data(linked_data, draft)

        self.normalizer.normalize(draft)

        self.logger.log_record_summary(
            url=url,
            fields_present=draft.present_fields(),
            fields_missing=draft.missing_fields(),
            sources=draft.sources,
        )
        return draft.to_record()
