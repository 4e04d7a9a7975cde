"""
Confidence Signal Tests
"""

import pytest

from mediation_engine.errors import InvalidInputError
from mediation_engine.posture import default_posture
from mediation_engine.signals import (
    ConfidenceSmoother,
    Signal,
    adaptive_confidence,
    aggregate_signals,
    coerce_signals,
    signals_to_confidence,
)


def test_signal_value_range_enforced():
    with pytest.raises(InvalidInputError):
        Signal("bad", 1.5)
    with pytest.raises(InvalidInputError):
        Signal("bad", 0.5, weight=-1)


def test_invalid_input_is_also_value_error():
    with pytest.raises(ValueError):
        Signal("bad", -2.0)


def test_coerce_accepts_dicts():
    signals = coerce_signals([{"name": "a", "value": 0.5}, Signal("b", -0.5, 2.0)])
    assert signals[0] == Signal("a", 0.5, 1.0)
    assert signals[1].weight == 2.0


def test_confidence_maps_minus_one_one_to_zero_one():
    assert signals_to_confidence([]) == 0.5
    assert signals_to_confidence([Signal("a", 1.0)]) == 1.0
    assert signals_to_confidence([Signal("a", -1.0)]) == 0.0
    assert signals_to_confidence([Signal("a", 1.0), Signal("b", -1.0)]) == 0.5


def test_aggregate_is_weighted_mean():
    assert aggregate_signals([Signal("a", 1.0, 3.0), Signal("b", -1.0, 1.0)]) == pytest.approx(0.5)
    assert aggregate_signals([Signal("a", 1.0, 0.0)]) == 0.0


def test_adaptive_confidence_uses_posture_weights():
    signals = [Signal("factual", 1.0), Signal("semantic", -1.0)]
    assert adaptive_confidence(signals, default_posture()) == pytest.approx((0.2 / 1.8 + 1) / 2)
    assert adaptive_confidence([], default_posture()) == 0.5


def test_smoother_moves_toward_input():
    smoother = ConfidenceSmoother(alpha=0.5)
    assert smoother.update(1.0) == pytest.approx(0.75)
    assert smoother.update(1.0) == pytest.approx(0.875)
    assert smoother.updates == 2


def test_smoother_reset():
    smoother = ConfidenceSmoother(alpha=0.3)
    smoother.update(0.0)
    smoother.reset()
    assert smoother.value == 0.5
    assert smoother.to_dict() == {"alpha": 0.3, "value": 0.5, "updates": 0}
