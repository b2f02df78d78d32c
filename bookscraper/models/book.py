"""
Book record models.

BookDraft is the in-progress record threaded through every extraction
layer. BookRecord is the frozen result handed back to callers and
serialised by the CLI and the HTTP surface.
"""
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

LIST_FIELDS = ("authors", "genres", "characters")


@dataclass
class BookDraft:
    """Mutable builder for one scrape. Field names mirror BookRecord."""
    book_name: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    image_url: Optional[str] = None
    book_summary: Optional[str] = None
    publication_date: Optional[str] = None
    publisher: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    ratings: Optional[str] = None
    average_rating: Optional[str] = None
    number_of_pages: Optional[int] = None
    language: Optional[str] = None
    series_name: Optional[str] = None
    position_in_series: Optional[str] = None
    characters: List[str] = field(default_factory=list)

    # field name -> source that populated it (first writer wins)
    sources: Dict[str, str] = field(default_factory=dict)

    def is_set(self, name: str) -> bool:
        """A scalar is set when not None; a list when non-empty."""
        value = getattr(self, name)
        if name in LIST_FIELDS:
            return bool(value)
        return value is not None

    def record_fields(self) -> List[str]:
        return [f.name for f in fields(self) if f.name != "sources"]

    def present_fields(self) -> List[str]:
        return [name for name in self.record_fields() if self.is_set(name)]

    def missing_fields(self) -> List[str]:
        return [name for name in self.record_fields() if not self.is_set(name)]

    def to_record(self) -> "BookRecord":
        """Freeze the draft into the output model."""
        return BookRecord(
            book_name=self.book_name,
            authors=list(self.authors),
            image_url=self.image_url,
            book_summary=self.book_summary,
            publication_date=self.publication_date,
            publisher=self.publisher,
            genres=list(self.genres),
            ratings=self.ratings or "0",
            average_rating=self.average_rating,
            number_of_pages=self.number_of_pages,
            language=self.language,
            series_name=self.series_name,
            position_in_series=self.position_in_series,
            characters=list(self.characters),
        )


class BookRecord(BaseModel):
    """
    Structured metadata for one book-detail page.

    Serialises with the camelCase keys consumers expect
    (bookName, imageUrl, positionInSeries, ...).
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    book_name: Optional[str] = Field(default=None, alias="bookName")
    authors: List[str] = Field(default_factory=list)
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    book_summary: Optional[str] = Field(default=None, alias="bookSummary")
    publication_date: Optional[str] = Field(default=None, alias="publicationDate")
    publisher: Optional[str] = None
    genres: List[str] = Field(default_factory=list)
    ratings: str = Field(default="0", pattern=r"^\d+$")
    average_rating: Optional[str] = Field(default=None, alias="averageRating")
    number_of_pages: Optional[int] = Field(default=None, alias="numberOfPages")
    language: Optional[str] = None
    series_name: Optional[str] = Field(default=None, alias="seriesName")
    position_in_series: Optional[str] = Field(default=None, alias="positionInSeries")
    characters: List[str] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Return the record with camelCase keys; absent values stay as None."""
        return self.model_dump(by_alias=True)
