"""Utils package initialization."""
from bookscraper.utils.logger import get_logger, LayerLogger, set_trace_id

__all__ = ["get_logger", "LayerLogger", "set_trace_id"]
