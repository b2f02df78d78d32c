"""Book URL validation shared by the CLI and the HTTP surface."""
import re

BOOK_URL_PATTERN = re.compile(r"^https?://[^/\s]+/book/show/\d+")


def is_book_url(url: str) -> bool:
    """True for http(s)://<host>/book/show/<numeric-id>... URLs."""
    return bool(url) and BOOK_URL_PATTERN.match(url) is not None
