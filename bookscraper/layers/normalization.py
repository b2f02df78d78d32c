"""
Normalization pass.

Runs once over the merged draft: series name/position cleanup, position
formatting and the ratings default. Running it again on its own output
changes nothing.
"""
import re
from typing import List, Optional, Tuple

from bookscraper.config import config
from bookscraper.layers.base import ExtractionLayer
from bookscraper.models.book import BookDraft
from bookscraper.utils.text import clean_text, format_position, strip_position_suffix

HASH_POSITION_SUFFIX = re.compile(r"\(?#([\d.,\-]*\d[\d.,\-]*)\)?$")
# Needs at least one digit: a bare trailing "." or "-" stays part of the name
TRAILING_POSITION_TOKEN = re.compile(r"#?\s*([\d/.\-]*\d[\d/.\-]*)$")

TEXT_FIELDS = (
    "book_name",
    "image_url",
    "book_summary",
    "publication_date",
    "publisher",
    "average_rating",
    "language",
)


def remove_ignore_words(name: str, ignore_words: List[str]) -> str:
    for word in ignore_words:
        name = re.sub(r"\s*" + re.escape(word) + r"\s*", " ", name, flags=re.IGNORECASE)
    return name.strip()


def clean_series(
    name: Optional[str],
    position: Optional[str],
    ignore_words: List[str],
) -> Tuple[Optional[str], Optional[str]]:
    """
    Return the cleaned (series_name, position_in_series) pair.

    Position-like tokens left on the end of the name are moved into the
    position (when it is still unset) and stripped. Stripping can expose
    another trailing token, so the cleanup repeats until the name stops
    changing.
    """
    name = clean_text(name)
    position = clean_text(position)
    if name is None:
        return None, None

    name = remove_ignore_words(name, ignore_words)
    while True:
        before = name

        if position is None:
            match = HASH_POSITION_SUFFIX.search(name)
            if match:
                position = match.group(1)
                name = name[:match.start()].strip()

        if position:
            name = strip_position_suffix(name, position)

        match = TRAILING_POSITION_TOKEN.search(name)
        if match:
            if position is None:
                position = match.group(1).strip()
            name = name[:match.start()].strip()

        if name == before:
            break

    if not name:
        return None, None
    return name, position


class NormalizationLayer(ExtractionLayer):
    """Reconciles and tidies the merged record before it is frozen."""

    layer_name = "normalization_layer"

    def __init__(self, ignore_words: Optional[List[str]] = None):
        super().__init__()
        self.ignore_words = config.series_ignore_words() if ignore_words is None else ignore_words

    def normalize(self, draft: BookDraft) -> BookDraft:
        for name in TEXT_FIELDS:
            value = getattr(draft, name)
            if isinstance(value, str):
                setattr(draft, name, clean_text(value))

        series_name, position = clean_series(
            draft.series_name,
            draft.position_in_series,
            self.ignore_words,
        )
        if (series_name, position) != (draft.series_name, draft.position_in_series):
            self.logger.log_action(
                "series_cleanup",
                "completed",
                raw_name=draft.series_name,
                name=series_name,
                position=position,
            )
        draft.series_name = series_name
        draft.position_in_series = format_position(position)

        if not draft.ratings:
            draft.ratings = "0"

        return draft
