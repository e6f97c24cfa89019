"""
Custom exceptions for the fingerspelling client.
"""


class FingerspellError(Exception):
    """Base exception for fingerspelling client errors."""
    pass


class ClassifierError(FingerspellError):
    """Raised when a classifier request fails (unreachable, non-2xx, bad JSON)."""
    pass


class MalformedResponseError(ClassifierError):
    """Raised when a classifier response cannot be decoded into probabilities."""
    pass


class WordDictionaryError(FingerspellError):
    """Raised when a word dictionary file is invalid."""
    pass


class DetectorError(FingerspellError):
    """Raised when the hand landmark detector cannot be created."""
    pass
