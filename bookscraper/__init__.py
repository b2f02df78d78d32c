"""
Book page scraper.

Extracts structured metadata (title, authors, cover, summary, publication
info, genres, ratings, pages, language, series, characters) from a single
book-detail page.

    from bookscraper import scrape_book
    record = scrape_book("https://www.goodreads.com/book/show/12067.Good_Omens")
    print(record.to_dict())
"""
import asyncio
from typing import Optional

from bookscraper.adapters.html_scraper import BookFetchError, BookPageScraper
from bookscraper.models.book import BookRecord
from bookscraper.utils.logger import set_trace_id

__version__ = "1.0.0"


def scrape_book(url: str, timeout: Optional[int] = None) -> BookRecord:
    """
    Fetch and extract one book page synchronously.

    Raises:
        BookFetchError: when the page cannot be retrieved
    """
    set_trace_id()
    return asyncio.run(BookPageScraper(timeout=timeout).fetch_and_parse(url))


__all__ = ["BookFetchError", "BookPageScraper", "BookRecord", "scrape_book", "__version__"]
