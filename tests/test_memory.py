"""
Experiential Memory Tests

Memory distills each decided cycle into wisdom, consolidates recurring
patterns, and deepens receptivity to the gap types it has met.
"""

from datetime import datetime, timedelta, timezone

import pytest

from mediation_engine.gap import GapResult, GapType, detect_gap
from mediation_engine.memory import (
    DistilledExperience,
    GapPattern,
    consolidate,
    create_memory,
    distill_wisdom,
    identify_characteristics,
    integrate,
    is_mature,
    recall_wisdom,
    receptivity_for,
)
from mediation_engine.modes import MediationMode


def _factual_gap():
    return detect_gap("What is the capital of France?", "Berlin", ground_truth={"capital": "Paris"})


def test_fresh_memory():
    memory = create_memory()
    assert memory.distilled == []
    assert memory.cycles_completed == 0
    assert memory.receptivity.overall == 0.5
    assert not is_mature(memory)


def test_integrate_records_experience():
    memory = integrate(create_memory(), False, _factual_gap(), MediationMode.REDEMPTIVE)
    assert memory.cycles_completed == 1
    assert len(memory.distilled) == 1
    exp = memory.distilled[0]
    assert exp.pattern.type is GapType.FACTUAL
    assert "factual:contradictory" in exp.pattern.characteristics
    assert "contradiction_detected" in exp.pattern.characteristics
    assert exp.wisdom.startswith("Factual gap remained")


def test_integrate_returns_new_memory():
    memory = create_memory()
    integrate(memory, True, _factual_gap(), MediationMode.STEP_UP)
    assert memory.cycles_completed == 0
    assert memory.distilled == []


def test_no_gap_only_counts_the_cycle():
    memory = integrate(create_memory(), True, detect_gap("What is 2+2?", "4"), MediationMode.DIRECT_ALLOW)
    assert memory.cycles_completed == 1
    assert memory.distilled == []
    assert memory.receptivity.overall == 0.5


def test_receptivity_deepens_by_type():
    memory = integrate(create_memory(), True, _factual_gap(), MediationMode.STEP_UP)
    assert memory.receptivity.factual == pytest.approx(0.55)
    assert memory.receptivity.overall == pytest.approx(0.51)

    failed = integrate(create_memory(), False, _factual_gap(), MediationMode.REDEMPTIVE)
    assert failed.receptivity.factual == pytest.approx(0.52)


def test_ontological_receptivity():
    memory = integrate(create_memory(), False, detect_gap("Can AI feel pain?", "Yes"), MediationMode.ONTOLOGICAL_BLOCK)
    assert memory.receptivity.ontological == pytest.approx(0.6)
    assert memory.receptivity.overall == pytest.approx(0.54)
    assert receptivity_for(memory, GapType.ONTOLOGICAL) == pytest.approx(0.6)
    assert "Humility required" in memory.distilled[0].wisdom


def test_receptivity_is_capped():
    memory = create_memory()
    gap = detect_gap("Can AI feel pain?", "Yes")
    for _ in range(10):
        memory = integrate(memory, False, gap, MediationMode.ONTOLOGICAL_BLOCK)
    assert memory.receptivity.ontological == 1.0


# =============================================================================
# Consolidation
# =============================================================================

def test_three_observations_stay_verbatim():
    memory = create_memory()
    for _ in range(3):
        memory = integrate(memory, True, _factual_gap(), MediationMode.STEP_UP)
    assert len(memory.distilled) == 3


def test_fourth_observation_consolidates():
    memory = create_memory()
    for _ in range(4):
        memory = integrate(memory, True, _factual_gap(), MediationMode.STEP_UP)
    assert len(memory.distilled) == 1
    merged = memory.distilled[0]
    assert merged.observations == 4
    assert "observed 4 times" in merged.wisdom
    assert merged.succeeded


def test_consolidated_entries_keep_counting():
    memory = create_memory()
    for _ in range(5):
        memory = integrate(memory, False, _factual_gap(), MediationMode.REDEMPTIVE)
    assert len(memory.distilled) == 1
    assert memory.distilled[0].observations == 5
    assert "resist mediation" in memory.distilled[0].wisdom


def test_consolidation_keeps_latest_mode_and_timestamp():
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    pattern = GapPattern(GapType.LOGICAL, ["logical:invalid"])
    group = [
        DistilledExperience(pattern, i % 2 == 0, "w", MediationMode.REDEMPTIVE, base + timedelta(minutes=i))
        for i in range(3)
    ]
    group.append(DistilledExperience(pattern, False, "w", MediationMode.STEP_UP, base + timedelta(minutes=10)))
    merged = consolidate(group)
    assert len(merged) == 1
    assert merged[0].mode is MediationMode.STEP_UP
    assert merged[0].timestamp == base + timedelta(minutes=10)
    assert "50% success" in merged[0].wisdom


def test_different_patterns_are_not_merged():
    a = GapPattern(GapType.LOGICAL, ["logical:invalid"])
    b = GapPattern(GapType.SEMANTIC, ["conceptual_drift"])
    experiences = [DistilledExperience(p, True, "w", MediationMode.STEP_UP) for p in (a, a, b, b)]
    assert len(consolidate(experiences)) == 4


# =============================================================================
# Recall
# =============================================================================

def test_recall_by_shared_characteristic():
    gap = _factual_gap()
    memory = integrate(create_memory(), False, gap, MediationMode.REDEMPTIVE)
    assert len(recall_wisdom(memory, gap)) == 1
    assert recall_wisdom(memory, detect_gap("Can AI feel pain?", "Yes")) == []


def test_identify_characteristics_for_unfilled_gap():
    gap = GapResult(overall_distance=0.5, bridgeable=True, dominant_type=GapType.LOGICAL, reason="x")
    assert identify_characteristics(gap) == []


def test_distill_wisdom_mentions_mode():
    gap = _factual_gap()
    assert "STEP_UP" in distill_wisdom(gap, True, MediationMode.STEP_UP)
