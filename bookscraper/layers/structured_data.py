"""
Structured-source extraction.

Reads the machine-readable payloads a book page embeds:
- the data island (<script id="__NEXT_DATA__">), a JSON snapshot of the
  page's initial application state whose apolloState map holds the book,
  its details, genres, characters and contributors;
- the linked-data block(s) (<script type="application/ld+json">).

Nothing in this layer raises on bad input. Malformed JSON yields None
from load_json and the affected fields are simply left for later layers.
"""
import json
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from bookscraper.layers.base import ExtractionLayer
from bookscraper.models.book import BookDraft
from bookscraper.utils.text import parse_average_rating, parse_ratings_count, to_int

DATA_ISLAND_SELECTOR = 'script#__NEXT_DATA__[type="application/json"]'

# Resilience scan: works on truncated or otherwise broken JSON text
CHARACTER_ARRAY = re.compile(r'"characters"\s*:\s*\[([\s\S]*?)\]')
CHARACTER_NAME = re.compile(r'"name"\s*:\s*"([^"]+)"')

CANDIDATE_MARKERS = ("bookGenres", "title", "name", "work")


def load_json(text: Optional[str]) -> Optional[Any]:
    """Parse JSON text, returning None instead of raising on bad input."""
    if not text:
        return None
    # deeply nested payloads exhaust the decoder stack (RecursionError)
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError, RecursionError):
        return None


def is_book_candidate(item: Any) -> bool:
    """
    True for state-map entries shaped like a book: a details object plus
    a genre list, title, name or work reference.
    """
    if not isinstance(item, dict):
        return False
    if not isinstance(item.get("details"), dict):
        return False
    return any(item.get(marker) for marker in CANDIDATE_MARKERS)


def scan_character_names(raw: Optional[str]) -> List[str]:
    """Pull character names out of every "characters": [...] array in raw JSON text."""
    names: List[str] = []
    if not raw:
        return names
    for array in CHARACTER_ARRAY.finditer(raw):
        for match in CHARACTER_NAME.finditer(array.group(1)):
            captured = match.group(1)
            decoded = load_json(f'"{captured}"')
            name = decoded if isinstance(decoded, str) else captured
            if name not in names:
                names.append(name)
    return names


def flatten_jsonld(data: Any) -> List[Dict[str, Any]]:
    """
    Flatten a linked-data payload into a list of nodes.

    Handles single objects, @graph containers and top-level arrays.
    """
    nodes: List[Dict[str, Any]] = []

    if isinstance(data, dict):
        graph = data.get("@graph")
        if isinstance(graph, list):
            for item in graph:
                nodes.extend(flatten_jsonld(item))
        if "@type" in data or "@graph" not in data:
            nodes.append(data)

    elif isinstance(data, list):
        for item in data:
            nodes.extend(flatten_jsonld(item))

    return nodes


def jsonld_types(node: Dict[str, Any]) -> List[str]:
    schema_type = node.get("@type")
    if isinstance(schema_type, list):
        return [str(t) for t in schema_type]
    return [str(schema_type)] if schema_type else []


def jsonld_author_names(author: Any) -> List[str]:
    """Author as a plain string, an object with a name, or a list of either."""
    if isinstance(author, str):
        return [author]
    if isinstance(author, dict):
        name = author.get("name")
        return [name] if isinstance(name, str) else []
    if isinstance(author, list):
        names: List[str] = []
        for item in author:
            if isinstance(item, (str, dict)):
                names.extend(jsonld_author_names(item))
        return names
    return []


def jsonld_image_url(image: Any) -> Optional[str]:
    if isinstance(image, str):
        return image
    if isinstance(image, dict):
        url = image.get("url") or image.get("contentUrl")
        return url if isinstance(url, str) else None
    if isinstance(image, list):
        for item in image:
            url = jsonld_image_url(item)
            if url:
                return url
    return None


class StructuredDataLayer(ExtractionLayer):
    """Populates precedence fields from the data island and linked-data block."""

    layer_name = "structured_data_layer"

    # ------------------------------------------------------------------
    # Data island
    # ------------------------------------------------------------------

    def find_data_island(self, soup: BeautifulSoup) -> Optional[str]:
        """Raw JSON text of the data island, or None when the page has none."""
        script = soup.select_one(DATA_ISLAND_SELECTOR)
        if script is None or not script.string:
            return None
        return str(script.string)

    def load_state_map(self, raw: Optional[str]) -> Optional[Dict[str, Any]]:
        """props.pageProps.apolloState from the island, if it parses and is shaped as expected."""
        data = load_json(raw)
        if not isinstance(data, dict):
            return None
        state: Any = data
        for key in ("props", "pageProps", "apolloState"):
            state = state.get(key) if isinstance(state, dict) else None
        return state if isinstance(state, dict) else None

    def apply_character_scan(self, raw: Optional[str], draft: BookDraft) -> int:
        """Merge names found by the regex scan into the character set."""
        added = self.extend(draft, "characters", scan_character_names(raw), "data_island_scan")
        if added:
            self.logger.log_action("character_scan", "completed", added=added)
        return added

    def apply_data_island(self, soup: BeautifulSoup, draft: BookDraft) -> Optional[Dict[str, Any]]:
        """
        Run both data-island techniques and return the state map for
        later author lookups (None when missing or malformed).
        """
        raw = self.find_data_island(soup)
        if raw is None:
            self.logger.log_action("data_island", "not_found")
            return None

        self.apply_character_scan(raw, draft)

        state = self.load_state_map(raw)
        if state is None:
            self.logger.log_fallback(
                from_source="data_island",
                to_source="markup",
                reason="data island JSON malformed or missing apolloState",
            )
            return None

        candidates = 0
        for item in state.values():
            if is_book_candidate(item):
                candidates += 1
                self._apply_candidate(item, draft)

        self.logger.log_action(
            "data_island",
            "completed",
            entries=len(state),
            candidates=candidates,
        )
        return state

    def _apply_candidate(self, item: Dict[str, Any], draft: BookDraft):
        details = item["details"]
        source = "data_island"

        publisher = details.get("publisher")
        if isinstance(publisher, str):
            self.fill(draft, "publisher", publisher.strip(), source)

        language = details.get("language")
        if isinstance(language, dict) and isinstance(language.get("name"), str):
            self.fill(draft, "language", language["name"].strip(), source)

        self.fill(draft, "number_of_pages", to_int(details.get("numPages")), source)

        genres = item.get("bookGenres")
        if isinstance(genres, list):
            names = [
                bg["genre"].get("name")
                for bg in genres
                if isinstance(bg, dict) and isinstance(bg.get("genre"), dict)
            ]
            self.fill_list(draft, "genres", names, source)

        characters = details.get("characters")
        if isinstance(characters, list):
            names = [c.get("name") for c in characters if isinstance(c, dict)]
            self.fill_list(draft, "characters", names, source)

    def apply_island_authors(self, state: Optional[Dict[str, Any]], draft: BookDraft) -> bool:
        """
        Collect authors from state-map entries: a direct author object,
        an author list, or contributors with the AUTHOR role.
        """
        if not state or draft.is_set("authors"):
            return False

        source = "data_island_authors"
        for item in state.values():
            if not isinstance(item, dict):
                continue
            author = item.get("author")
            if isinstance(author, dict) and author.get("name"):
                self.extend(draft, "authors", [author["name"]], source)
            elif isinstance(item.get("authors"), list):
                names = [a.get("name") for a in item["authors"] if isinstance(a, dict)]
                self.extend(draft, "authors", names, source)
            elif isinstance(item.get("contributors"), list):
                names = [
                    c.get("name")
                    for c in item["contributors"]
                    if isinstance(c, dict) and c.get("role") == "AUTHOR"
                ]
                self.extend(draft, "authors", names, source)

        return draft.is_set("authors")

    # ------------------------------------------------------------------
    # Linked data
    # ------------------------------------------------------------------

    def load_linked_data(self, soup: BeautifulSoup) -> Optional[Dict[str, Any]]:
        """
        Parse every linked-data block once and pick the node describing
        the book: a node typed Book if there is one, else the first node.
        """
        nodes: List[Dict[str, Any]] = []
        for script in soup.find_all("script", type="application/ld+json"):
            data = load_json(script.string)
            if data is None:
                self.logger.log_fallback(
                    from_source="linked_data",
                    to_source="markup",
                    reason="linked-data block is not valid JSON",
                )
                continue
            try:
                nodes.extend(flatten_jsonld(data))
            except RecursionError:
                self.logger.log_fallback(
                    from_source="linked_data",
                    to_source="markup",
                    reason="linked-data block nested too deeply",
                )

        if not nodes:
            return None

        for node in nodes:
            if "Book" in jsonld_types(node):
                self.logger.log_decision("book_node", reason="node typed Book", nodes=len(nodes))
                return node
        self.logger.log_decision("first_node", reason="no node typed Book", nodes=len(nodes))
        return nodes[0]

    def apply_linked_data(self, node: Optional[Dict[str, Any]], draft: BookDraft):
        """Fill language, page count and authors still missing after the data island."""
        if not node:
            return
        source = "linked_data"

        language = node.get("inLanguage")
        if isinstance(language, dict):
            language = language.get("name")
        if isinstance(language, str):
            self.fill(draft, "language", language.strip(), source)

        self.fill(draft, "number_of_pages", to_int(node.get("numberOfPages")), source)

        if not draft.is_set("authors"):
            self.extend(draft, "authors", jsonld_author_names(node.get("author")), source)

    def backfill_linked_data(self, node: Optional[Dict[str, Any]], draft: BookDraft):
        """Last-resort title, cover and rating values for fields markup left unset."""
        if not node:
            return
        source = "linked_data_backfill"

        name = node.get("name")
        if isinstance(name, str):
            self.fill(draft, "book_name", name.strip(), source)

        self.fill(draft, "image_url", jsonld_image_url(node.get("image")), source)

        rating = node.get("aggregateRating")
        if isinstance(rating, dict):
            value = rating.get("ratingValue")
            if value is not None:
                self.fill(draft, "average_rating", parse_average_rating(str(value)), source)
            count = rating.get("ratingCount")
            if count is not None:
                self.fill(draft, "ratings", parse_ratings_count(str(count)), source)
