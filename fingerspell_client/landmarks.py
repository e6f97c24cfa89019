"""
Landmark handling and feature normalization.

Converts detector output into the translation/scale invariant feature
vector sent to the sign classifier.
"""

import math
from typing import Any, Iterable, List, NamedTuple, Sequence

import numpy as np

# ============================================================================
# MediaPipe Landmark Layout
# ============================================================================

LANDMARKS_PER_HAND = 21
WRIST = 0


class Landmark(NamedTuple):
    """One hand keypoint in normalized image coordinates (z is relative depth)."""
    x: float
    y: float
    z: float


# ============================================================================
# Conversion Helpers
# ============================================================================

def to_landmark(point: Any) -> Landmark:
    """
    Convert a detector point into a Landmark.

    Accepts Landmark instances, plain (x, y, z) sequences, or objects with
    x/y/z attributes such as MediaPipe NormalizedLandmark.
    """
    if isinstance(point, Landmark):
        return point
    if hasattr(point, "x") and hasattr(point, "y") and hasattr(point, "z"):
        return Landmark(float(point.x), float(point.y), float(point.z))
    x, y, z = point
    return Landmark(float(x), float(y), float(z))


def flatten_hands(hands: Iterable[Sequence[Any]]) -> List[Landmark]:
    """
    Concatenate all detected hands into a single landmark list.

    Order follows the detector's hand order, then landmark index 0-20
    within each hand.

    Args:
        hands: Detector output, one landmark sequence per hand

    Returns:
        Flat list of Landmarks (empty when no hands were detected)
    """
    flat: List[Landmark] = []
    for hand in hands:
        flat.extend(to_landmark(p) for p in hand)
    return flat


# ============================================================================
# Feature Normalization
# ============================================================================

def normalize_landmarks(landmarks: Sequence[Any]) -> np.ndarray:
    """
    Normalize a landmark sequence into a feature vector.

    The first landmark is the origin. Every later landmark becomes an offset
    from it, and all offsets are divided by the largest offset length. When
    every landmark coincides with the origin the raw offsets are returned
    as-is, so no division by zero happens.

    Translation and uniform scale invariant. Rotation is not normalized.

    Args:
        landmarks: Ordered landmarks (Landmark, (x, y, z) or .x/.y/.z objects)

    Returns:
        Array of shape (len(landmarks) - 1, 3); shape (0, 3) for empty input
    """
    if len(landmarks) == 0:
        return np.zeros((0, 3), dtype=np.float64)

    points = np.array([to_landmark(p) for p in landmarks], dtype=np.float64)
    offsets = points[1:] - points[0]
    if offsets.shape[0] == 0:
        return offsets

    scale_sq = float(np.max(np.sum(offsets * offsets, axis=1)))
    if scale_sq <= 0:
        return offsets

    return offsets / math.sqrt(scale_sq)
