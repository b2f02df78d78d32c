"""Layers package initialization."""
from bookscraper.layers.structured_data import StructuredDataLayer
from bookscraper.layers.markup import MarkupFallbackLayer
from bookscraper.layers.normalization import NormalizationLayer

__all__ = [
    "StructuredDataLayer",
    "MarkupFallbackLayer",
    "NormalizationLayer",
]
