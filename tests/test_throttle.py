import numpy as np
import pytest

from fingerspell_client.throttle import DispatchGate

FEATURES = np.zeros((20, 3))


def test_default_interval_is_500ms():
    assert DispatchGate().request_interval_ms == 500.0


def test_first_offer_dispatches():
    ticket = DispatchGate().maybe_dispatch(FEATURES, now_ms=10.0)
    assert ticket is not None
    assert ticket.seq == 1
    assert ticket.issued_at_ms == 10.0


def test_two_offers_within_interval_dispatch_once():
    gate = DispatchGate(requests_per_second=2)
    assert gate.maybe_dispatch(FEATURES, now_ms=1000.0) is not None
    assert gate.maybe_dispatch(FEATURES, now_ms=1200.0) is None
    assert gate.get_stats()["dispatched"] == 1
    assert gate.get_stats()["throttled"] == 1


def test_interval_boundary_is_strict():
    gate = DispatchGate(requests_per_second=2)
    gate.maybe_dispatch(FEATURES, now_ms=1000.0)
    assert gate.maybe_dispatch(FEATURES, now_ms=1500.0) is None
    assert gate.maybe_dispatch(FEATURES, now_ms=1500.5) is not None


def test_throttled_offer_does_not_move_last_dispatch():
    gate = DispatchGate(requests_per_second=2)
    gate.maybe_dispatch(FEATURES, now_ms=0.0)
    gate.maybe_dispatch(FEATURES, now_ms=400.0)
    assert gate.last_dispatch_ms == 0.0
    assert gate.maybe_dispatch(FEATURES, now_ms=501.0) is not None


def test_sequence_numbers_increase_across_reset():
    gate = DispatchGate(requests_per_second=10)
    seqs = [gate.maybe_dispatch(FEATURES, now_ms=t).seq for t in (0.0, 200.0, 400.0)]
    gate.reset()
    seqs.append(gate.maybe_dispatch(FEATURES, now_ms=401.0).seq)
    assert seqs == [1, 2, 3, 4]


def test_rate_must_be_positive():
    with pytest.raises(ValueError):
        DispatchGate(requests_per_second=0)
