import numpy as np
import pytest

from fingerspell_client.landmarks import (
    LANDMARKS_PER_HAND,
    Landmark,
    flatten_hands,
    normalize_landmarks,
    to_landmark,
)


def make_hand(dx=0.0, dy=0.0, dz=0.0):
    return [
        Landmark(0.5 + 0.013 * i + dx, 0.4 - 0.021 * (i % 5) + dy, -0.004 * i + dz)
        for i in range(LANDMARKS_PER_HAND)
    ]


class _Point:
    def __init__(self, x, y, z):
        self.x, self.y, self.z = x, y, z


def test_output_length_is_input_minus_one():
    for n in (1, 2, 21, 42):
        hand = (make_hand() * 2)[:n]
        assert normalize_landmarks(hand).shape == (n - 1, 3)


def test_empty_input_gives_empty_output():
    out = normalize_landmarks([])
    assert out.shape == (0, 3)


def test_translation_invariance():
    base = normalize_landmarks(make_hand())
    shifted = normalize_landmarks(make_hand(dx=0.2, dy=-0.1, dz=0.05))
    assert np.allclose(base, shifted)


def test_uniform_scale_invariance():
    hand = make_hand()
    origin = np.array(hand[0])
    scaled = [tuple(origin + 2.5 * (np.array(p) - origin)) for p in hand]
    assert np.allclose(normalize_landmarks(hand), normalize_landmarks(scaled))


def test_largest_offset_has_unit_length():
    out = normalize_landmarks(make_hand())
    assert np.isclose(np.max(np.linalg.norm(out, axis=1)), 1.0)


def test_coincident_landmarks_return_zero_offsets():
    hand = [Landmark(0.3, 0.3, 0.0)] * LANDMARKS_PER_HAND
    with np.errstate(all="raise"):
        out = normalize_landmarks(hand)
    assert out.shape == (20, 3)
    assert not out.any()


def test_not_rotation_invariant():
    hand = make_hand()
    rotated = [Landmark(-p.y, p.x, p.z) for p in hand]
    assert not np.allclose(normalize_landmarks(hand), normalize_landmarks(rotated))


def test_accepts_attribute_objects_and_tuples():
    points = [_Point(0.0, 0.0, 0.0), (0.0, 2.0, 0.0), _Point(1.0, 0.0, 0.0)]
    out = normalize_landmarks(points)
    assert np.allclose(out, [[0.0, 1.0, 0.0], [0.5, 0.0, 0.0]])


def test_to_landmark_converts_objects():
    assert to_landmark(_Point(1, 2, 3)) == Landmark(1.0, 2.0, 3.0)
    assert to_landmark([4, 5, 6]) == Landmark(4.0, 5.0, 6.0)


def test_flatten_hands_keeps_detector_order():
    first, second = make_hand(), make_hand(dx=0.3)
    flat = flatten_hands([first, second])
    assert len(flat) == 2 * LANDMARKS_PER_HAND
    assert flat[0] == first[0]
    assert flat[LANDMARKS_PER_HAND] == second[0]
    assert flatten_hands([]) == []


def test_two_hands_normalize_against_first_wrist():
    flat = flatten_hands([make_hand(), make_hand(dx=0.3)])
    out = normalize_landmarks(flat)
    assert out.shape == (41, 3)
    # the second wrist is an ordinary offset from the first wrist
    assert out[LANDMARKS_PER_HAND - 1][0] > 0


@pytest.mark.parametrize("factor", [0.01, 1.0, 100.0])
def test_scale_invariance_over_magnitudes(factor):
    hand = [Landmark(p.x * factor, p.y * factor, p.z * factor) for p in make_hand()]
    assert np.allclose(normalize_landmarks(hand), normalize_landmarks(make_hand()))
