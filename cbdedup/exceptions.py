"""Exceptions raised by cbdedup."""


class DedupError(Exception):
    """Base class for cbdedup errors."""


class HistoryStoreError(DedupError):
    """Message history could not be read or written."""
