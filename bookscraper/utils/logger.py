"""
Structured logging for the book page scraper.

Every event carries the layer that emitted it and the trace id of the
scrape it belongs to, so one page can be followed through the pipeline.
Events go to stderr; stdout is reserved for the CLI's JSON record.
"""
import sys
import uuid
import logging
import structlog
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

from bookscraper.config import config

trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Start a new trace for the current scrape and return its id."""
    trace_id = trace_id or uuid.uuid4().hex[:8]
    trace_id_var.set(trace_id)
    return trace_id


def add_trace_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor: stamp the current trace id, opening one if needed."""
    event_dict["trace_id"] = trace_id_var.get() or set_trace_id()
    return event_dict


def configure_logging():
    renderer = (
        structlog.processors.JSONRenderer()
        if config.LOG_FORMAT == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_id,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


class LayerLogger:
    """
    Logger bound to one pipeline layer.

    Event names are fixed per method so a scrape's log reads as a
    sequence of actions, fallbacks, field fills and a final summary.
    """

    def __init__(self, layer_name: str):
        self.layer_name = layer_name
        self.logger = get_logger(layer_name).bind(layer=layer_name)

    def log_action(self, action: str, status: str = "started", **extra):
        self.logger.info(f"action_{status}", action=action, **extra)

    def log_decision(self, decision: str, reason: str, **extra):
        """Record which of several candidate sources a layer went with."""
        self.logger.info("decision_made", decision=decision, reason=reason, **extra)

    def log_fallback(self, from_source: str, to_source: str, reason: str, **extra):
        self.logger.info(
            "fallback_triggered",
            from_source=from_source,
            to_source=to_source,
            reason=reason,
            **extra
        )

    def log_error(self, error: str, error_type: str = "unknown", **extra):
        self.logger.error("error_occurred", error=error, error_type=error_type, **extra)

    def log_field(self, field: str, source: str, **extra):
        """Debug-level provenance: which source populated a record field."""
        self.logger.debug("field_filled", field=field, source=source, **extra)

    def log_record_summary(
        self,
        url: Optional[str],
        fields_present: List[str],
        fields_missing: List[str],
        **extra
    ):
        self.logger.info(
            "record_extracted",
            url=url,
            fields_present=fields_present,
            fields_missing=fields_missing,
            **extra
        )


configure_logging()
