"""
Confidence Moderation Tests

Moderation never adds confidence: moderated = raw * (1 - withheld),
with withholding driven by gap distance, bridgeability and type.
"""

import pytest

from mediation_engine.errors import InvalidInputError
from mediation_engine.gap import GapSummary, GapType
from mediation_engine.moderation import moderate, moderation_permits, withholding


def test_no_gap_withholds_nothing():
    result = moderate(0.9, GapSummary(0.0, GapType.NONE, True))
    assert result.withheld == 0.0
    assert result.moderated == pytest.approx(0.9)


def test_ontological_withholds_almost_everything():
    result = moderate(1.0, GapSummary(1.0, GapType.ONTOLOGICAL, False))
    assert result.withheld == pytest.approx(0.95)
    assert result.moderated == pytest.approx(0.05)


def test_withholding_grows_with_distance_and_type():
    semantic = withholding(GapSummary(0.5, GapType.SEMANTIC, True))
    factual = withholding(GapSummary(0.5, GapType.FACTUAL, True))
    logical = withholding(GapSummary(0.5, GapType.LOGICAL, True))
    assert semantic == pytest.approx(0.35)
    assert factual == pytest.approx(0.40)
    assert logical == pytest.approx(0.45)


def test_unbridgeable_adds_restraint():
    bridgeable = withholding(GapSummary(0.5, GapType.SEMANTIC, True))
    unbridgeable = withholding(GapSummary(0.5, GapType.SEMANTIC, False))
    assert unbridgeable == pytest.approx(bridgeable + 0.2)


def test_withholding_is_clamped():
    assert withholding(GapSummary(1.0, GapType.LOGICAL, False)) == pytest.approx(1.0)
    assert withholding(GapSummary(1.0, GapType.LOGICAL, False)) <= 1.0


@pytest.mark.parametrize("raw", [0.0, 0.3, 0.77, 1.0])
@pytest.mark.parametrize("gap_type", [GapType.SEMANTIC, GapType.FACTUAL, GapType.LOGICAL, GapType.ONTOLOGICAL])
def test_moderation_never_exceeds_raw(raw, gap_type):
    result = moderate(raw, GapSummary(0.6, gap_type, True))
    assert 0.0 <= result.moderated <= raw
    assert result.withheld + result.retained == pytest.approx(1.0)


@pytest.mark.parametrize("raw", [-0.1, 1.5])
def test_out_of_range_confidence_rejected(raw):
    with pytest.raises(InvalidInputError):
        moderate(raw, GapSummary(0.0, GapType.NONE, True))


def test_rationale_mentions_unbridgeable():
    result = moderate(0.5, GapSummary(0.9, GapType.FACTUAL, False))
    assert "cannot be bridged" in result.rationale
    assert "factual" in result.rationale


def test_moderation_permits_threshold():
    assert moderation_permits(moderate(0.9, GapSummary(0.0, GapType.NONE, True)))
    assert not moderation_permits(moderate(1.0, GapSummary(1.0, GapType.ONTOLOGICAL, False)))
