"""Exceptions raised while loading questions from external sources."""

from __future__ import annotations


class QuestionLoaderError(Exception):
    """Base class for every failure reported by a question loader."""


class FetchError(QuestionLoaderError):
    """The source responded with a non-success status or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmptyResultError(QuestionLoaderError):
    """A fetched page did not contain any candidate questions."""


class ParseError(QuestionLoaderError):
    """The payload was fetched but could not be decoded or segmented."""


class UnknownSourceError(QuestionLoaderError, ValueError):
    """An unsupported question source identifier was requested."""
