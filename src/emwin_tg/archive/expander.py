"""Archive expansion - from fetched bytes to named products.

EMWIN publishes batches of products as ZIP archives. Individual products
inside may themselves be wrapped in a single-member ZIP, so extraction
unwraps nested containers until it reaches a plain file.

Example:
    >>> import io, zipfile
    >>> from emwin_tg.archive.expander import ArchiveExpander
    >>> buf = io.BytesIO()
    >>> with zipfile.ZipFile(buf, "w") as zf:
    ...     zf.writestr("b.txt", "second")
    ...     zf.writestr("a.txt", "first")
    >>> expander = ArchiveExpander()
    >>> archive = expander.open(buf.getvalue())
    >>> expander.expand(archive)
    ['a.txt', 'b.txt']
    >>> expander.extract(archive, "a.txt").filename
    'A.TXT'
"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib

from emwin_tg.core.config import MAX_MEMBER_SIZE
from emwin_tg.core.exceptions import ArchiveFormatError, ArchiveMemberError
from emwin_tg.models.product import Product

logger = logging.getLogger(__name__)

NESTED_SUFFIX = ".ZIP"

# Errors zipfile raises while opening or reading a damaged archive.
_ZIP_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    OSError,
    ValueError,
    NotImplementedError,
    RuntimeError,
)


class ArchiveExpander:
    """Lists and extracts the members of an EMWIN archive.

    Member reads are clamped to ``max_member_size`` bytes. A member whose
    declared size is larger than what was read is reported as a failure
    rather than delivered truncated.

    Args:
        max_member_size: Largest member, in bytes, that will be read.
    """

    def __init__(self, max_member_size: int = MAX_MEMBER_SIZE) -> None:
        if max_member_size < 1:
            raise ValueError("max_member_size must be positive")
        self.max_member_size = max_member_size

    def open(self, payload: bytes) -> zipfile.ZipFile:
        """Open a fetched payload as an archive.

        Raises:
            ArchiveFormatError: If the payload is not a readable archive.
        """
        try:
            return zipfile.ZipFile(io.BytesIO(payload))
        except _ZIP_ERRORS as e:
            raise ArchiveFormatError(str(e)) from e

    def expand(self, archive: zipfile.ZipFile) -> list[str]:
        """List member names in ascending order.

        Python orders strings by code point, which is the same order as
        their UTF-8 bytes.
        """
        return sorted(archive.namelist())

    def extract(self, archive: zipfile.ZipFile, name: str) -> Product:
        """Read one member into a Product, unwrapping nested archives.

        Raises:
            ArchiveMemberError: If the member is missing, unreadable, too
                large, or a nested archive without exactly one member.
        """
        try:
            info = archive.getinfo(name)
        except KeyError as e:
            raise ArchiveMemberError(name.upper(), "no such member") from e
        return self._extract(archive, info)

    def _extract(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> Product:
        filename = info.filename.upper()
        contents = self._read(archive, info, filename)

        if not filename.endswith(NESTED_SUFFIX):
            return Product(filename=filename, contents=contents)

        try:
            inner = zipfile.ZipFile(io.BytesIO(contents))
        except _ZIP_ERRORS as e:
            raise ArchiveMemberError(filename, str(e)) from e

        with inner:
            members = inner.infolist()
            if len(members) != 1:
                raise ArchiveMemberError(
                    filename, f"expected 1 inner member, found {len(members)}"
                )
            return self._extract(inner, members[0])

    def _read(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo, filename: str) -> bytes:
        try:
            with archive.open(info) as member:
                contents = member.read(self.max_member_size)
        except _ZIP_ERRORS as e:
            raise ArchiveMemberError(filename, str(e)) from e

        if info.file_size > len(contents):
            if info.file_size > self.max_member_size:
                reason = f"{info.file_size} bytes exceeds limit of {self.max_member_size}"
            else:
                reason = f"read {len(contents)} of {info.file_size} bytes"
            raise ArchiveMemberError(filename, reason)
        return contents
