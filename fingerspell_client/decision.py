"""
Sign Decision - Turns classifier probabilities into an accepted sign.

Picks the most probable sign and accepts it only when its probability is
strictly above the confidence threshold.
"""

import math
import numbers
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .exceptions import MalformedResponseError

# ============================================================================
# Sign Alphabet (classifier output order)
# ============================================================================

SIGNS: Tuple[str, ...] = (
    "あ", "い", "う", "え", "お",
    "か", "き", "く", "け", "こ",
    "さ", "し", "す", "せ", "そ",
    "た", "ち", "つ", "て", "と",
    "な", "に", "ぬ", "ね",
    "は", "ひ", "ふ", "へ", "ほ",
    "ま", "み", "む", "め",
    "や", "ゆ", "よ",
    "ら", "る", "れ", "ろ",
)

# Romanized labels, index-aligned with SIGNS (OpenCV fonts are ASCII only)
ROMAJI: Tuple[str, ...] = (
    "a", "i", "u", "e", "o",
    "ka", "ki", "ku", "ke", "ko",
    "sa", "shi", "su", "se", "so",
    "ta", "chi", "tsu", "te", "to",
    "na", "ni", "nu", "ne",
    "ha", "hi", "fu", "he", "ho",
    "ma", "mi", "mu", "me",
    "ya", "yu", "yo",
    "ra", "ru", "re", "ro",
)

DEFAULT_CONFIDENCE_THRESHOLD = 0.5


def romanize(text: str) -> str:
    """Romanize a string of alphabet signs; unknown characters are kept."""
    return "".join(ROMAJI[SIGNS.index(ch)] if ch in SIGNS else ch for ch in text)


@dataclass(frozen=True)
class SignCandidate:
    """An accepted sign with its classifier probability."""
    sign: str
    probability: float
    index: int


class SignDecider:
    """
    Confidence-gated argmax over the sign alphabet.

    Ties are broken by the lowest index. A probability equal to the
    threshold is rejected.
    """

    def __init__(
        self,
        threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        alphabet: Sequence[str] = SIGNS,
    ):
        """
        Initialize decider.

        Args:
            threshold: Minimum probability (exclusive) to accept a sign
            alphabet: Sign characters in classifier output order
        """
        if not 0.0 <= threshold < 1.0:
            raise ValueError(f"threshold must be in [0, 1), got {threshold}")
        self.threshold = threshold
        self.alphabet = tuple(alphabet)

    def decide(self, probabilities: Sequence[float]) -> Optional[SignCandidate]:
        """
        Decide which sign, if any, a classifier response represents.

        Args:
            probabilities: One probability per alphabet entry

        Returns:
            SignCandidate when the best probability exceeds the threshold,
            None otherwise

        Raises:
            MalformedResponseError: Wrong length or non-numeric values
        """
        values = self._validate(probabilities)

        best_index = 0
        best = values[0]
        for i, p in enumerate(values):
            if p > best:
                best_index = i
                best = p

        if best > self.threshold:
            return SignCandidate(
                sign=self.alphabet[best_index],
                probability=best,
                index=best_index,
            )
        return None

    def _validate(self, probabilities: Sequence[float]) -> Tuple[float, ...]:
        """Check shape and value types, returning plain floats."""
        try:
            probabilities = list(probabilities)
        except TypeError:
            raise MalformedResponseError(
                f"Prediction is not a sequence: {type(probabilities).__name__}"
            )

        if len(probabilities) != len(self.alphabet):
            raise MalformedResponseError(
                f"Expected {len(self.alphabet)} probabilities, got {len(probabilities)}"
            )

        values = []
        for i, p in enumerate(probabilities):
            if isinstance(p, bool) or not isinstance(p, numbers.Real):
                raise MalformedResponseError(
                    f"Probability at index {i} is not numeric: {p!r}"
                )
            p = float(p)
            if not math.isfinite(p):
                raise MalformedResponseError(f"Probability at index {i} is not finite")
            values.append(p)
        return tuple(values)
