"""
Hand Landmark Detector - MediaPipe HandLandmarker in VIDEO mode.

Wraps MediaPipe processing to catch exceptions and track failures, and
returns plain Landmark lists so nothing downstream depends on MediaPipe
result types.
"""

import logging
from pathlib import Path
from typing import List, Optional

import mediapipe as mp
import numpy as np
from mediapipe.tasks import python as mp_tasks
from mediapipe.tasks.python import vision

from .exceptions import DetectorError
from .landmarks import Landmark, to_landmark

logger = logging.getLogger(__name__)


class MediaPipeHandDetector:
    """
    Detector port: detect(frame, timestamp_ms) -> hands x 21 landmarks.

    MediaPipe VIDEO mode rejects repeated timestamps, so equal or older
    timestamps are bumped to last + 1 ms.
    """

    def __init__(
        self,
        model_path: str = "hand_landmarker.task",
        num_hands: int = 2,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        max_consecutive_failures: int = 5,
    ):
        """
        Initialize detector.

        Args:
            model_path: Path to the hand_landmarker.task model bundle
            num_hands: Maximum number of hands to detect
            min_detection_confidence: Minimum hand detection confidence
            min_tracking_confidence: Minimum landmark tracking confidence
            max_consecutive_failures: Failures before the stream is flagged
        """
        self.model_path = model_path
        self.num_hands = num_hands
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self.max_consecutive_failures = max_consecutive_failures

        self._landmarker: Optional[vision.HandLandmarker] = None
        self._last_ts: Optional[int] = None
        self._consecutive_failures = 0
        self._total_failures = 0
        self._total_successes = 0

    def start(self) -> None:
        """Create the MediaPipe landmarker."""
        path = Path(self.model_path)
        if not path.is_file():
            raise DetectorError(f"Hand landmarker model not found: {path}")

        options = vision.HandLandmarkerOptions(
            base_options=mp_tasks.BaseOptions(model_asset_path=str(path)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=self.num_hands,
            min_hand_detection_confidence=self.min_detection_confidence,
            min_hand_presence_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence,
        )
        try:
            self._landmarker = vision.HandLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            raise DetectorError(f"Failed to create hand landmarker: {e}") from e

        logger.info(f"Hand landmarker loaded: {path.name} (num_hands={self.num_hands})")

    def detect(self, rgb_frame: np.ndarray, timestamp_ms: float) -> List[List[Landmark]]:
        """
        Detect hands in an RGB frame.

        Args:
            rgb_frame: HxWx3 uint8 RGB image
            timestamp_ms: Frame timestamp in milliseconds

        Returns:
            One list of 21 Landmarks per detected hand (possibly empty)
        """
        if self._landmarker is None:
            raise DetectorError("Detector not started")

        ts = int(timestamp_ms)
        if self._last_ts is not None and ts <= self._last_ts:
            ts = self._last_ts + 1

        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb_frame))
        try:
            result = self._landmarker.detect_for_video(image, ts)
        except Exception as e:
            self._consecutive_failures += 1
            self._total_failures += 1
            logger.warning(f"MediaPipe processing error: {e}")
            return []

        self._last_ts = ts
        self._consecutive_failures = 0
        self._total_successes += 1
        return [[to_landmark(p) for p in hand] for hand in result.hand_landmarks]

    def is_stream_problematic(self) -> bool:
        """Check if the stream has too many consecutive failures."""
        return self._consecutive_failures >= self.max_consecutive_failures

    def close(self) -> None:
        """Release the MediaPipe landmarker."""
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None

    def get_stats(self) -> dict:
        """Get processing statistics."""
        total = self._total_successes + self._total_failures
        return {
            "total_processed": total,
            "successes": self._total_successes,
            "failures": self._total_failures,
            "success_rate": self._total_successes / total if total > 0 else 0.0,
            "consecutive_failures": self._consecutive_failures,
        }
