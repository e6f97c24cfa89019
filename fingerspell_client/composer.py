"""
Word Composer - Combines accepted signs into two-character words.

Holds at most one pending sign. Each new sign either completes a word with
the pending sign or becomes the new pending sign.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union

from .exceptions import WordDictionaryError

logger = logging.getLogger(__name__)

# Built-in dictionary of two-sign words
DEFAULT_WORDS: Dict[str, str] = {
    "さき": "先",
    "かき": "柿",
    "かさ": "傘",
    "さけ": "酒",
    "あさ": "朝",
    "くさ": "草",
    "くせ": "癖",
    "さお": "竿",
}

WORD_KEY_LENGTH = 2


def validate_word_dictionary(words: Mapping[str, str]) -> Dict[str, str]:
    """
    Check that every entry maps a two-character key to a non-empty word.

    Returns:
        A plain dict copy of the mapping

    Raises:
        WordDictionaryError: On any invalid entry
    """
    checked: Dict[str, str] = {}
    for key, word in words.items():
        if not isinstance(key, str) or len(key) != WORD_KEY_LENGTH:
            raise WordDictionaryError(
                f"Dictionary key {key!r} must be exactly {WORD_KEY_LENGTH} characters"
            )
        if not isinstance(word, str) or not word:
            raise WordDictionaryError(f"Dictionary value for {key!r} must be a non-empty string")
        checked[key] = word
    return checked


def load_word_dictionary(path: Union[str, Path]) -> Dict[str, str]:
    """
    Load a word dictionary from a JSON object file.

    Args:
        path: Path to a UTF-8 JSON file of {"さき": "先", ...}

    Returns:
        Validated dictionary

    Raises:
        WordDictionaryError: If the file is missing, not JSON, or invalid
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise WordDictionaryError(f"Cannot read word dictionary {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise WordDictionaryError(f"Word dictionary {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise WordDictionaryError(f"Word dictionary {path} must be a JSON object")

    words = validate_word_dictionary(data)
    logger.info(f"Loaded {len(words)} words from {path}")
    return words


class WordComposer:
    """
    Two-slot state machine resolving sign pairs against a dictionary.

    - No pending sign: the new sign becomes pending.
    - Pending sign p: p + sign is looked up. On a hit the word is returned
      and pending is cleared; on a miss the new sign replaces pending.
    """

    def __init__(self, words: Optional[Mapping[str, str]] = None):
        self.words: Dict[str, str] = validate_word_dictionary(
            DEFAULT_WORDS if words is None else words
        )
        self._pending: Optional[str] = None
        self.last_resolved: Optional[Tuple[str, str]] = None

    @property
    def pending(self) -> Optional[str]:
        """The sign waiting for its second half, if any."""
        return self._pending

    def accept(self, sign: str) -> Optional[str]:
        """
        Feed one accepted sign.

        Args:
            sign: Single sign character

        Returns:
            The resolved word if the sign completed a dictionary entry
        """
        if self._pending is None:
            self._pending = sign
            return None

        combined = self._pending + sign
        word = self.words.get(combined)
        if word is not None:
            self._pending = None
            self.last_resolved = (combined, word)
            return word

        self._pending = sign
        return None

    def reset(self) -> None:
        """Clear the pending sign."""
        self._pending = None
