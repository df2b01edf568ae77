"""Exception types shared across fetchers and the translation adapter."""

from __future__ import annotations


class KriptoHaberError(Exception):
    """Base error."""


class SourceUnavailable(KriptoHaberError):
    """A source could not be fetched or parsed (network, status, timeout)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TranslationUnavailable(KriptoHaberError):
    """No trustworthy Turkish output could be produced; callers skip the item."""
