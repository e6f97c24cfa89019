import numpy as np
import pytest

from fingerspell_client.detector import MediaPipeHandDetector
from fingerspell_client.exceptions import DetectorError
from fingerspell_client.landmarks import LANDMARKS_PER_HAND, Landmark


class _Point:
    def __init__(self, x, y, z):
        self.x, self.y, self.z = x, y, z


class _Result:
    def __init__(self, hand_landmarks):
        self.hand_landmarks = hand_landmarks


class FakeLandmarker:
    """Stands in for vision.HandLandmarker; records timestamps, optionally fails."""

    def __init__(self, hands=None, fail_times=0):
        self.hands = hands or []
        self.fail_times = fail_times
        self.timestamps = []
        self.closed = False

    def detect_for_video(self, image, ts):
        self.timestamps.append(ts)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("graph error")
        return _Result(self.hands)

    def close(self):
        self.closed = True


FRAME = np.zeros((8, 8, 3), dtype=np.uint8)


def make_detector(landmarker, **kwargs):
    detector = MediaPipeHandDetector(**kwargs)
    detector._landmarker = landmarker
    return detector


def test_timestamps_forced_strictly_increasing():
    landmarker = FakeLandmarker()
    detector = make_detector(landmarker)
    for ts in (10, 10, 5, 40.7):
        detector.detect(FRAME, ts)
    assert landmarker.timestamps == [10, 11, 12, 40]


def test_returns_landmarks_per_hand():
    hand = [_Point(0.1 * i, 0.2, -0.01) for i in range(LANDMARKS_PER_HAND)]
    detector = make_detector(FakeLandmarker(hands=[hand, hand]))
    hands = detector.detect(FRAME, 0)
    assert len(hands) == 2
    assert len(hands[0]) == LANDMARKS_PER_HAND
    assert hands[0][3] == Landmark(pytest.approx(0.3), 0.2, -0.01)


def test_failures_counted_and_return_no_hands():
    landmarker = FakeLandmarker(fail_times=3)
    detector = make_detector(landmarker, max_consecutive_failures=3)

    assert detector.detect(FRAME, 0) == []
    assert detector.detect(FRAME, 1) == []
    assert not detector.is_stream_problematic()
    assert detector.detect(FRAME, 2) == []
    assert detector.is_stream_problematic()

    stats = detector.get_stats()
    assert stats["failures"] == 3
    assert stats["successes"] == 0
    assert stats["consecutive_failures"] == 3


def test_success_clears_failure_streak():
    detector = make_detector(FakeLandmarker(fail_times=2), max_consecutive_failures=2)
    detector.detect(FRAME, 0)
    detector.detect(FRAME, 1)
    assert detector.is_stream_problematic()

    assert detector.detect(FRAME, 2) == []
    assert not detector.is_stream_problematic()
    stats = detector.get_stats()
    assert stats["successes"] == 1
    assert stats["total_processed"] == 3
    assert stats["success_rate"] == pytest.approx(1 / 3)


def test_failed_timestamp_is_not_consumed():
    landmarker = FakeLandmarker(fail_times=1)
    detector = make_detector(landmarker)
    detector.detect(FRAME, 50)
    detector.detect(FRAME, 50)
    assert landmarker.timestamps == [50, 50]


def test_detect_before_start_raises():
    with pytest.raises(DetectorError):
        MediaPipeHandDetector().detect(FRAME, 0)


def test_start_without_model_file(tmp_path):
    detector = MediaPipeHandDetector(model_path=str(tmp_path / "missing.task"))
    with pytest.raises(DetectorError):
        detector.start()


def test_close_releases_landmarker():
    landmarker = FakeLandmarker()
    detector = make_detector(landmarker)
    detector.close()
    assert landmarker.closed
    with pytest.raises(DetectorError):
        detector.detect(FRAME, 0)
