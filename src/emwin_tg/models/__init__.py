"""Pydantic models for emwin-tg."""

from emwin_tg.models.base import EmwinModel
from emwin_tg.models.feed import FeedDescriptor, ValidatorState
from emwin_tg.models.product import MIME_TYPES, Product, ProductResult

__all__ = [
    "EmwinModel",
    # Feeds
    "FeedDescriptor",
    "ValidatorState",
    # Products
    "MIME_TYPES",
    "Product",
    "ProductResult",
]
