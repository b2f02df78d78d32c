#!/usr/bin/env python3
"""Command-line entry point: scrape one book page and print its record as JSON."""
import argparse
import json
import sys
from typing import List, Optional

from bookscraper import __version__, scrape_book
from bookscraper.adapters.html_scraper import BookFetchError
from bookscraper.utils.logger import get_logger
from bookscraper.utils.validation import is_book_url

logger = get_logger("cli")

EXAMPLE_URL = "https://www.goodreads.com/book/show/12067.Good_Omens"


class BookArgumentParser(argparse.ArgumentParser):
    """Reports usage errors with exit code 1, like every other CLI failure."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = BookArgumentParser(
        prog="bookscraper",
        description="Extract structured metadata from a single book-detail page.",
        epilog=f"Example: bookscraper {EXAMPLE_URL}",
    )
    parser.add_argument("url", nargs="?", help="book page URL, e.g. https://<host>/book/show/<id>")
    parser.add_argument("--timeout", type=int, default=None, help="request timeout in seconds")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.url:
        parser.print_help(sys.stderr)
        return 1

    if not is_book_url(args.url):
        print("Error: Invalid book URL. URL should be in the format:", file=sys.stderr)
        print("https://<host>/book/show/[book_id]", file=sys.stderr)
        return 1

    logger.info("scrape_requested", url=args.url)

    try:
        record = scrape_book(args.url, timeout=args.timeout)
    except BookFetchError as e:
        print(f"Error scraping book: {e.message}", file=sys.stderr)
        if e.status_code is not None:
            print(f"Status: {e.status_code}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.error("scrape_failed", url=args.url, error=str(e))
        print(f"Error scraping book: {e}", file=sys.stderr)
        return 1

    print(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
