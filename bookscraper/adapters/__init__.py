"""Adapters package initialization."""
from bookscraper.adapters.html_scraper import BookFetchError, BookPageScraper

__all__ = ["BookFetchError", "BookPageScraper"]
