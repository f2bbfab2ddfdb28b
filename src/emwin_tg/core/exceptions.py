"""Custom exceptions.

emwin-tg uses a small hierarchy of exceptions. Every failure that happens
while a stream is running is delivered to the consumer as a value of the
stream rather than raised out of it:

Example:
    >>> from emwin_tg.core.exceptions import ArchiveMemberError, EmwinError
    >>> err = ArchiveMemberError("ARCH.ZIP", "expected 1 member, found 2")
    >>> isinstance(err, EmwinError)
    True
    >>> err.member
    'ARCH.ZIP'
"""

from __future__ import annotations


class EmwinError(Exception):
    """Base exception for emwin-tg.

    Example:
        >>> from emwin_tg.core.exceptions import EmwinError
        >>> e = EmwinError("something went wrong")
        >>> str(e)
        'something went wrong'
    """


class FetchError(EmwinError):
    """An HTTP exchange with a feed failed.

    Covers request construction, transport failures, and any status that is
    neither a success nor an expected ``304 Not Modified``.

    Example:
        >>> from emwin_tg.core.exceptions import FetchError
        >>> err = FetchError("https://example.com/a.zip", "HTTP 503", status_code=503)
        >>> err.status_code
        503
        >>> str(err)
        'HTTP error: HTTP 503 (https://example.com/a.zip)'
    """

    def __init__(
        self,
        url: str,
        reason: str,
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"HTTP error: {reason} ({url})")


class ArchiveFormatError(EmwinError):
    """The retrieved archive could not be opened.

    Example:
        >>> from emwin_tg.core.exceptions import ArchiveFormatError
        >>> str(ArchiveFormatError("File is not a zip file"))
        'archive format error: File is not a zip file'
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"archive format error: {reason}")


class ArchiveMemberError(EmwinError):
    """A member within an archive could not be processed.

    Example:
        >>> from emwin_tg.core.exceptions import ArchiveMemberError
        >>> str(ArchiveMemberError("ARCH.ZIP"))
        "inner archive format error in 'ARCH.ZIP'"
    """

    def __init__(self, member: str, reason: str | None = None) -> None:
        self.member = member
        self.reason = reason
        message = f"inner archive format error in {member!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ConfigurationError(EmwinError):
    """Configuration is invalid.

    Example:
        >>> from emwin_tg.core.exceptions import ConfigurationError
        >>> raise ConfigurationError("duplicate feed")  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        ConfigurationError: duplicate feed
    """


class ChannelClosedError(EmwinError):
    """The product channel was closed and will deliver nothing further."""


class RetryExhausted(EmwinError):
    """Raised when all retry attempts have been exhausted."""

    def __init__(self, last_error: Exception, attempts: int) -> None:
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(
            f"All {attempts} attempts exhausted. Last error: {last_error}"
        )
