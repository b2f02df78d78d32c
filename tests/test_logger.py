"""Tests for the layer-bound structured logger."""
from structlog.testing import capture_logs

from bookscraper.utils.logger import LayerLogger, add_trace_id, set_trace_id


def test_layer_name_is_bound_to_every_event():
    with capture_logs() as logs:
        logger = LayerLogger("markup_layer")
        logger.log_fallback(from_source="author_names", to_source="data_island_authors", reason="none found")
        logger.log_decision("book_node", reason="node typed Book", nodes=2)

    assert [entry["event"] for entry in logs] == ["fallback_triggered", "decision_made"]
    assert all(entry["layer"] == "markup_layer" for entry in logs)
    assert logs[1]["nodes"] == 2


def test_trace_id_is_stamped_from_the_current_context():
    trace_id = set_trace_id()

    assert len(trace_id) == 8
    assert add_trace_id(None, "info", {})["trace_id"] == trace_id
    assert set_trace_id("abc12345") == "abc12345"
    assert add_trace_id(None, "info", {})["trace_id"] == "abc12345"
