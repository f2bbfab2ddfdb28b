"""Product model - one named file extracted from an EMWIN archive.

Example:
    >>> from emwin_tg.models.product import Product
    >>> p = Product(filename="a_wmo.txt", contents=b"hello")
    >>> p.filename
    'A_WMO.TXT'
    >>> p.mime_type
    'text/plain'
    >>> p.text
    'hello'
"""

from __future__ import annotations

import logging

from pydantic import ConfigDict, Field, field_validator

from emwin_tg.core.exceptions import EmwinError
from emwin_tg.models.base import EmwinModel

logger = logging.getLogger(__name__)

# Keyed by uppercase suffix, without the dot.
MIME_TYPES: dict[str, str] = {
    "TXT": "text/plain",
    "GIF": "image/gif",
    "JPG": "image/jpeg",
    "PNG": "image/png",
}


class Product(EmwinModel):
    """A data product from an EMWIN archive.

    Products are immutable once created. The filename is normalized to
    uppercase, which is how EMWIN names products.

    Example:
        >>> from emwin_tg.models.product import Product
        >>> p = Product(filename="RADAR.GIF", contents=b"GIF89a")
        >>> p.extension
        'GIF'
        >>> p.mime_type
        'image/gif'
        >>> Product(filename="README", contents=b"").mime_type is None
        True
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    filename: str = Field(..., min_length=1, description="Product filename, uppercase")
    contents: bytes = Field(..., description="Binary contents of the product")

    @field_validator("filename")
    @classmethod
    def _uppercase(cls, value: str) -> str:
        return value.upper()

    @property
    def extension(self) -> str | None:
        """Filename suffix without the dot, or None if there is none."""
        _, dot, suffix = self.filename.rpartition(".")
        if not dot or not suffix:
            return None
        return suffix.upper()

    @property
    def mime_type(self) -> str | None:
        """The expected MIME type of this product, if known."""
        extension = self.extension
        if extension is None:
            return None
        return MIME_TYPES.get(extension)

    @property
    def text(self) -> str:
        """Contents decoded as UTF-8, replacing invalid sequences."""
        try:
            return self.contents.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("%s was not valid UTF-8; converting lossily", self.filename)
            return self.contents.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"Product(filename={self.filename!r}, size={len(self.contents)})"


# What a stream yields: a product, or the error that stood in for one.
ProductResult = Product | EmwinError
