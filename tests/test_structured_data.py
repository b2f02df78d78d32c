"""Tests for data-island and linked-data extraction."""
from bs4 import BeautifulSoup

from bookscraper.layers.structured_data import (
    StructuredDataLayer,
    flatten_jsonld,
    is_book_candidate,
    jsonld_author_names,
    load_json,
    scan_character_names,
)
from bookscraper.models.book import BookDraft
from pages import apollo, book_entry, data_island, linked_data, page


def soup_of(html):
    return BeautifulSoup(html, "lxml")


def test_load_json_returns_none_on_bad_input():
    assert load_json('{"a": 1}') == {"a": 1}
    assert load_json('{"a": ') is None
    assert load_json("") is None
    assert load_json(None) is None


def test_is_book_candidate_requires_details_and_a_marker():
    assert is_book_candidate({"details": {}, "title": "Good Omens"})
    assert is_book_candidate({"details": {"numPages": 1}, "work": {"__ref": "Work:1"}})
    assert not is_book_candidate({"title": "Good Omens"})
    assert not is_book_candidate({"details": {}, "id": "x"})
    assert not is_book_candidate(["details"])


def test_scan_character_names_survives_truncated_json():
    raw = (
        '{"props": {"pageProps": {"apolloState": {"Book:1": {"details": '
        '{"characters": [{"__typename": "Character", "name": "Crowley"}, '
        '{"__typename": "Character", "name": "Aziraphale"}], "numPa'
    )
    assert load_json(raw) is None
    assert scan_character_names(raw) == ["Crowley", "Aziraphale"]


def test_scan_character_names_unescapes_json_strings():
    raw = '{"characters": [{"name": "Ren\\u00e9e"}, {"name": "Ren\\u00e9e"}]}'
    assert scan_character_names(raw) == ["Renée"]


def test_data_island_populates_precedence_fields():
    state = {
        "Book:kca://book/1": book_entry(
            publisher="Ace Books",
            language={"name": "English"},
            numPages=288,
            characters=[{"name": "Crowley"}, {"name": "Aziraphale"}],
        ),
        "ROOT_QUERY": {"__typename": "Query"},
    }
    state["Book:kca://book/1"]["bookGenres"] = [
        {"genre": {"name": "Fantasy"}},
        {"genre": {"name": "Humor"}},
        {"genre": {"name": "Fantasy"}},
    ]
    soup = soup_of(page(data_island(apollo(state))))
    draft = BookDraft()

    result = StructuredDataLayer().apply_data_island(soup, draft)

    assert result is not None
    assert draft.publisher == "Ace Books"
    assert draft.language == "English"
    assert draft.number_of_pages == 288
    assert draft.genres == ["Fantasy", "Humor"]
    assert draft.characters == ["Crowley", "Aziraphale"]
    assert draft.sources["publisher"] == "data_island"


def test_data_island_scans_every_candidate():
    state = {
        "Book:1": book_entry(publisher="Ace Books"),
        "Book:2": book_entry(publisher="Other Press", language={"name": "English"}, numPages="412"),
    }
    draft = BookDraft()

    StructuredDataLayer().apply_data_island(soup_of(page(data_island(apollo(state)))), draft)

    assert draft.publisher == "Ace Books"
    assert draft.language == "English"
    assert draft.number_of_pages == 412


def test_data_island_does_not_overwrite_existing_values():
    state = {"Book:1": book_entry(publisher="Ace Books", language={"name": "German"})}
    draft = BookDraft(language="English", characters=["Crowley"])
    state["Book:1"]["details"]["characters"] = [{"name": "Aziraphale"}]

    StructuredDataLayer().apply_data_island(soup_of(page(data_island(apollo(state)))), draft)

    assert draft.language == "English"
    assert draft.publisher == "Ace Books"
    # the regex scan still merges names it finds
    assert draft.characters == ["Crowley", "Aziraphale"]


def test_malformed_data_island_is_skipped_silently():
    raw = '{"props": {"pageProps": {"apolloState": {"characters": [{"name": "Crowley"}]'
    draft = BookDraft()

    result = StructuredDataLayer().apply_data_island(soup_of(page(data_island(raw))), draft)

    assert result is None
    assert draft.publisher is None
    assert draft.characters == ["Crowley"]


def test_missing_data_island_returns_none():
    draft = BookDraft()
    assert StructuredDataLayer().apply_data_island(soup_of(page("<p>nothing</p>")), draft) is None
    assert draft == BookDraft()


def test_island_authors_from_each_shape():
    state = {
        "Work:1": {"author": {"name": "Terry Pratchett"}},
        "Series:1": {"authors": [{"name": "Neil Gaiman"}, {"name": "Terry Pratchett"}]},
        "Edition:1": {
            "contributors": [
                {"name": "Stephen Briggs", "role": "ILLUSTRATOR"},
                {"name": "Neil Gaiman", "role": "AUTHOR"},
            ]
        },
    }
    draft = BookDraft()

    assert StructuredDataLayer().apply_island_authors(state, draft)
    assert draft.authors == ["Terry Pratchett", "Neil Gaiman"]


def test_island_authors_skipped_when_authors_known():
    draft = BookDraft(authors=["Terry Pratchett"])
    state = {"Work:1": {"author": {"name": "Someone Else"}}}

    assert not StructuredDataLayer().apply_island_authors(state, draft)
    assert draft.authors == ["Terry Pratchett"]


def test_jsonld_author_names_shapes():
    assert jsonld_author_names("Terry Pratchett") == ["Terry Pratchett"]
    assert jsonld_author_names({"@type": "Person", "name": "Neil Gaiman"}) == ["Neil Gaiman"]
    assert jsonld_author_names(["Terry Pratchett", {"name": "Neil Gaiman"}, 7]) == [
        "Terry Pratchett",
        "Neil Gaiman",
    ]
    assert jsonld_author_names(None) == []


def test_flatten_jsonld_handles_graph_and_arrays():
    data = {"@context": "https://schema.org", "@graph": [{"@type": "WebPage"}, {"@type": "Book"}]}
    assert [n["@type"] for n in flatten_jsonld(data)] == ["WebPage", "Book"]
    assert len(flatten_jsonld([{"@type": "Book"}, {"@type": "Person"}])) == 2


def test_linked_data_fills_only_missing_fields():
    head = linked_data({
        "@context": "https://schema.org",
        "@type": "Book",
        "name": "Good Omens",
        "inLanguage": "English",
        "numberOfPages": 491,
        "author": [{"@type": "Person", "name": "Terry Pratchett"}, {"@type": "Person", "name": "Neil Gaiman"}],
    })
    layer = StructuredDataLayer()
    draft = BookDraft(number_of_pages=288)

    node = layer.load_linked_data(soup_of(page(head=head)))
    layer.apply_linked_data(node, draft)

    assert draft.language == "English"
    assert draft.number_of_pages == 288
    assert draft.authors == ["Terry Pratchett", "Neil Gaiman"]


def test_linked_data_prefers_book_node_and_skips_bad_blocks():
    head = (
        linked_data("{not json")
        + linked_data({"@type": "WebSite", "name": "Site"})
        + linked_data({"@type": "Book", "name": "Good Omens", "inLanguage": "English"})
    )

    node = StructuredDataLayer().load_linked_data(soup_of(page(head=head)))

    assert node["name"] == "Good Omens"


def test_linked_data_backfill():
    node = {
        "@type": "Book",
        "name": "Good Omens",
        "image": {"url": "https://images.example.com/cover.jpg"},
        "aggregateRating": {"ratingValue": 4.25, "ratingCount": 712345},
    }
    draft = BookDraft(book_name="From Markup")

    StructuredDataLayer().backfill_linked_data(node, draft)

    assert draft.book_name == "From Markup"
    assert draft.image_url == "https://images.example.com/cover.jpg"
    assert draft.average_rating == "4.25"
    assert draft.ratings == "712345"


def test_apply_linked_data_without_node_is_a_no_op():
    draft = BookDraft()
    StructuredDataLayer().apply_linked_data(None, draft)
    StructuredDataLayer().backfill_linked_data(None, draft)
    assert draft == BookDraft()



def test_load_json_survives_deep_nesting():
    assert load_json("[" * 50000) is None


def test_flatten_jsonld_ignores_non_list_graph():
    assert flatten_jsonld({"@context": "https://schema.org", "@graph": None}) == []
    assert flatten_jsonld({"@graph": {"@type": "Book"}}) == []


def test_linked_data_with_null_graph_yields_no_node():
    head = linked_data({"@context": "https://schema.org", "@graph": None})
    assert StructuredDataLayer().load_linked_data(soup_of(page(head=head))) is None


def test_deeply_nested_linked_data_is_skipped():
    head = linked_data("[" * 50000) + linked_data({"@type": "Book", "name": "Good Omens"})

    node = StructuredDataLayer().load_linked_data(soup_of(page(head=head)))

    assert node["name"] == "Good Omens"


def test_deeply_nested_data_island_is_skipped():
    draft = BookDraft()

    result = StructuredDataLayer().apply_data_island(soup_of(page(data_island("[" * 50000))), draft)

    assert result is None
    assert draft == BookDraft()
