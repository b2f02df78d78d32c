"""
Shared plumbing for extraction layers.
Every field write goes through here so precedence is enforced in one place.
"""
from typing import Any, Iterable

from bs4 import Tag

from bookscraper.models.book import BookDraft
from bookscraper.utils.logger import LayerLogger
from bookscraper.utils.text import append_unique


class ExtractionLayer:
    """
    Base class for a layer that contributes fields to a BookDraft.

    Writers never overwrite: a scalar already set, or a list that is
    already non-empty, belongs to a higher-precedence source.
    """

    layer_name = "extraction_layer"

    def __init__(self):
        self.logger = LayerLogger(self.layer_name)

    def fill(self, draft: BookDraft, name: str, value: Any, source: str) -> bool:
        """Set a scalar field if it is still unset. Empty values are ignored."""
        if value is None or value == "":
            return False
        if draft.is_set(name):
            return False
        setattr(draft, name, value)
        draft.sources.setdefault(name, source)
        self.logger.log_field(name, source)
        return True

    def fill_list(self, draft: BookDraft, name: str, values: Iterable[str], source: str) -> bool:
        """Populate a list field only while it is still empty."""
        if draft.is_set(name):
            return False
        return self.extend(draft, name, values, source) > 0

    def extend(self, draft: BookDraft, name: str, values: Iterable[str], source: str) -> int:
        """Append unique values to a list field regardless of its current size."""
        added = append_unique(getattr(draft, name), values)
        if added:
            draft.sources.setdefault(name, source)
            self.logger.log_field(name, source, added=added)
        return added

    @staticmethod
    def text_of(element: Any) -> str:
        """Trimmed text of an element, or '' when the element is missing."""
        if element is None:
            return ""
        return element.get_text().strip()

    @staticmethod
    def next_element(element: Tag, name: str = None, class_: str = None):
        """
        The immediate next sibling element, only if it matches name/class.
        Mirrors a jQuery-style `.next(selector)`.
        """
        sibling = element.find_next_sibling()
        if sibling is None:
            return None
        if name and sibling.name != name:
            return None
        if class_ and class_ not in (sibling.get("class") or []):
            return None
        return sibling
