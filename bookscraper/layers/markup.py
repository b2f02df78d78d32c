"""
Markup fallback extraction.

Queries the rendered element tree with a prioritised chain of selector
strategies. The page has shipped several generations of markup, so most
fields have more than one place to look; a strategy only writes a field
that is still unset, which keeps structured-source values authoritative.
"""
import re
from typing import Optional

from bs4 import BeautifulSoup, Tag

from bookscraper.layers.base import ExtractionLayer
from bookscraper.models.book import BookDraft
from bookscraper.utils.text import (
    clean_text,
    first_int,
    parse_average_rating,
    parse_ratings_count,
    parse_series,
    split_publication_info,
)

TITLE = 'h1[data-testid="bookTitle"]'
AUTHOR_NAMES = 'span[data-testid="authorName"], .ContributorLink__name'
TITLE_SECTION_AUTHORS = '.BookPageTitleSection a[href*="/author/show/"]'
COVER_IMAGE = ".BookCover__image .ResponsiveImage"
DESCRIPTION = (
    ".BookPageMetadataSection__description "
    ".DetailsLayoutRightParagraph__widthConstrained .Formatted"
)
PUBLICATION_INFO = '[data-testid="publicationInfo"]'
PUBLISHER_LINE = '.BookDetails .PublisherLine [aria-label*="Publisher"]'
PUBLISHER_LINK = 'a[href*="/publisher/"]'
GENRE_LABELS = ".BookPageMetadataSection__genres .Button__labelItem"
RATINGS_COUNT = '[data-testid="ratingsCount"]'
RATING_STATISTIC = ".RatingStatistics__rating"
RATING_VALUE = '[data-testid="ratingValue"]'

KEY_DETAILS_LABELS = 'div[data-testid="KeyDetails"] .DetailsLayoutRightItem__label'
KEY_DETAILS_VALUE_CLASS = "DetailsLayoutRightItem__value"
FEATURED_DETAILS = ".BookDetails .FeaturedDetails"

SERIES_LINK = 'a[href*="/series/"]'
CHARACTER_LINK = 'a[href*="/characters/"]'
SERIES_FALLBACKS = (
    ("series_subtitle", '.Text__subdued.Text__regular.Text__italic.Text__title3.Text > a[href*="/series/"]'),
    ("featured_series_link", '.BookDetails .FeaturedDetails a[href*="/series/"]'),
    ("series_link_by_id", 'a[href*="/series/"][id*="bookSeries"]'),
)

GENRE_PLACEHOLDERS = {"Show all genres", "...more"}
BR_TAG = re.compile(r"<br\s*/?>", re.IGNORECASE)
PAGES_FORMAT = re.compile(r"(\d+)\s*pages", re.IGNORECASE)
PUBLISHED_BY = re.compile(r"^Published by\s+", re.IGNORECASE)


class MarkupFallbackLayer(ExtractionLayer):
    """Fills whatever the structured sources left unset, from visual markup."""

    layer_name = "markup_layer"

    # ------------------------------------------------------------------
    # Characters (run before anything else)
    # ------------------------------------------------------------------

    def harvest_character_links(self, soup: BeautifulSoup, draft: BookDraft) -> int:
        """Every anchor in the document whose href points at a character page."""
        names = [
            a.get_text().strip()
            for a in soup.find_all("a", href=True)
            if "/characters/" in a["href"]
        ]
        return self.extend(draft, "characters", names, "character_links")

    def harvest_character_section(self, soup: BeautifulSoup, draft: BookDraft) -> int:
        """Character links inside the <dd> that follows a <dt>Characters</dt>."""
        added = 0
        for dt in soup.find_all("dt"):
            if dt.get_text().strip() != "Characters":
                continue
            dd = self.next_element(dt, name="dd")
            if dd is None:
                continue
            names = [a.get_text() for a in dd.select(CHARACTER_LINK)]
            added += self.extend(draft, "characters", names, "characters_section")
        return added

    # ------------------------------------------------------------------
    # Headline fields
    # ------------------------------------------------------------------

    def extract_title(self, soup: BeautifulSoup, draft: BookDraft):
        self.fill(draft, "book_name", clean_text(self.text_of(soup.select_one(TITLE))), "title_heading")

    def extract_authors(self, soup: BeautifulSoup, draft: BookDraft) -> bool:
        """Author-name tagged elements, in document order."""
        if draft.is_set("authors"):
            return True
        names = [el.get_text() for el in soup.select(AUTHOR_NAMES)]
        return self.fill_list(draft, "authors", names, "author_names")

    def extract_title_section_authors(self, soup: BeautifulSoup, draft: BookDraft) -> bool:
        """Author profile links near the title, the last author strategy."""
        names = [a.get_text() for a in soup.select(TITLE_SECTION_AUTHORS)]
        return self.fill_list(draft, "authors", names, "title_section_links")

    def extract_image(self, soup: BeautifulSoup, draft: BookDraft):
        image = soup.select_one(COVER_IMAGE)
        if image is not None:
            self.fill(draft, "image_url", clean_text(image.get("src")), "cover_image")

    def extract_summary(self, soup: BeautifulSoup, draft: BookDraft):
        """
        Description text with reader-visible line breaks kept.

        <br> tags are turned into newlines before text extraction, since
        get_text() would otherwise run the paragraphs together.
        """
        if draft.is_set("book_summary"):
            return
        container = soup.select_one(DESCRIPTION)
        if container is None:
            return

        inner_html = container.decode_contents()
        if inner_html.strip():
            html = BR_TAG.sub("\n", inner_html)
            wrapper = BeautifulSoup(f"<div>{html}</div>", "lxml").div
            summary = wrapper.get_text() if wrapper is not None else container.get_text()
        else:
            summary = container.get_text()

        self.fill(draft, "book_summary", clean_text(summary), "description")

    def extract_publication(self, soup: BeautifulSoup, draft: BookDraft):
        """
        Publication date and publisher from the publication-info line,
        then three progressively looser publisher lookups.
        """
        info = soup.select_one(PUBLICATION_INFO)
        info_text = self.text_of(info)

        date, publisher = split_publication_info(info_text)
        self.fill(draft, "publication_date", date, "publication_info")
        self.fill(draft, "publisher", publisher, "publication_info")

        if not draft.is_set("publisher") and draft.is_set("publication_date") and " by " in info_text:
            tail = info_text[info_text.index(" by ") + 4:]
            self.fill(draft, "publisher", clean_text(tail), "publication_info_by")

        if not draft.is_set("publisher"):
            line = soup.select_one(PUBLISHER_LINE)
            if line is not None:
                text = self.text_of(line).replace("Published by ", "")
                self.fill(draft, "publisher", clean_text(text), "publisher_line")

        if not draft.is_set("publisher") and info is not None and info.parent is not None:
            link = info.parent.select_one(PUBLISHER_LINK)
            self.fill(draft, "publisher", clean_text(self.text_of(link)), "publisher_link")

    def extract_genres(self, soup: BeautifulSoup, draft: BookDraft):
        if draft.is_set("genres"):
            return
        labels = [el.get_text().strip() for el in soup.select(GENRE_LABELS)]
        labels = [label for label in labels if label not in GENRE_PLACEHOLDERS]
        self.fill_list(draft, "genres", labels, "genre_labels")

    def extract_ratings(self, soup: BeautifulSoup, draft: BookDraft):
        text = self.text_of(soup.select_one(RATINGS_COUNT))
        self.fill(draft, "ratings", parse_ratings_count(text), "ratings_count")

    def extract_average_rating(self, soup: BeautifulSoup, draft: BookDraft):
        text = self.text_of(soup.select_one(RATING_STATISTIC))
        source = "rating_statistics"
        if not text:
            text = self.text_of(soup.select_one(RATING_VALUE))
            source = "rating_value"
        self.fill(draft, "average_rating", parse_average_rating(text), source)

    def extract_headline(self, soup: BeautifulSoup, draft: BookDraft):
        """Cover, description, publication line, genres and ratings."""
        self.extract_image(soup, draft)
        self.extract_summary(soup, draft)
        self.extract_publication(soup, draft)
        self.extract_genres(soup, draft)
        self.extract_ratings(soup, draft)
        self.extract_average_rating(soup, draft)

    # ------------------------------------------------------------------
    # Details: pages, language, series, characters, publisher
    # ------------------------------------------------------------------

    def extract_details(self, soup: BeautifulSoup, draft: BookDraft):
        """Run the detail strategies from most to least specific."""
        self.extract_key_details(soup, draft)
        self.extract_featured_details(soup, draft)
        self.extract_legacy_details(soup, draft)
        self.extract_series_fallbacks(soup, draft)

    def extract_key_details(self, soup: BeautifulSoup, draft: BookDraft):
        """Label/value pairs in the KeyDetails section."""
        for label_el in soup.select(KEY_DETAILS_LABELS):
            value_el = self.next_element(label_el, class_=KEY_DETAILS_VALUE_CLASS)
            if value_el is None:
                continue
            value_text = value_el.get_text().strip()
            # A "...more" button trails the primary text; keep only the direct text
            if value_el.select_one(".Button") is not None:
                value_text = "".join(value_el.find_all(string=True, recursive=False)).strip()
            label = label_el.get_text().strip().lower()
            self._apply_labeled_detail(label, value_el, value_text, draft, "key_details")

    def extract_featured_details(self, soup: BeautifulSoup, draft: BookDraft):
        """Paragraphs tagged with data-testid inside FeaturedDetails."""
        container = soup.select_one(FEATURED_DETAILS)
        if container is None or draft.is_set("number_of_pages"):
            return
        for p in container.select("p[data-testid]"):
            if p.get("data-testid") != "pagesFormat":
                continue
            match = PAGES_FORMAT.search(p.get_text().strip())
            if match:
                self.fill(draft, "number_of_pages", int(match.group(1)), "featured_details")

    def extract_legacy_details(self, soup: BeautifulSoup, draft: BookDraft):
        """Older dt/dd definition list inside FeaturedDetails."""
        container = soup.select_one(FEATURED_DETAILS)
        if container is None:
            return
        for dt in container.find_all("dt"):
            dd = self.next_element(dt, name="dd")
            if dd is None:
                continue
            label = dt.get_text().strip().lower()
            self._apply_labeled_detail(label, dd, dd.get_text().strip(), draft, "legacy_details")

    def extract_series_fallbacks(self, soup: BeautifulSoup, draft: BookDraft):
        """Series links found outside the details sections."""
        for source, selector in SERIES_FALLBACKS:
            if draft.is_set("series_name"):
                return
            link = soup.select_one(selector)
            if link is not None:
                self._fill_series(draft, link.get_text(), source)

    def _apply_labeled_detail(
        self,
        label: str,
        value_el: Tag,
        value_text: str,
        draft: BookDraft,
        source: str,
    ):
        if "pages" in label:
            self.fill(draft, "number_of_pages", first_int(value_text), source)
        elif "language" in label:
            self.fill(draft, "language", clean_text(value_text), source)
        elif "series" in label:
            link = value_el.select_one(SERIES_LINK)
            if link is not None:
                self._fill_series(draft, link.get_text(), source)
        elif "characters" in label:
            names = [a.get_text() for a in value_el.select(CHARACTER_LINK)]
            self.fill_list(draft, "characters", names, source)
        elif "publisher" in label:
            self.fill(draft, "publisher", clean_text(PUBLISHED_BY.sub("", value_text)), source)

    def _fill_series(self, draft: BookDraft, text: Optional[str], source: str) -> bool:
        if draft.is_set("series_name"):
            return False
        name, position = parse_series(text)
        if not self.fill(draft, "series_name", name, source):
            return False
        self.fill(draft, "position_in_series", position, source)
        return True
